"""Pricing calculator — turns a cart snapshot into order totals.

    subtotal = round2(Σ unit_price × quantity)
    tax      = provider quote, or round2(subtotal × default rate)
    shipping = zone quote with an address, flat threshold policy without
    discount = coupon discount, capped at the subtotal
    total    = round2(subtotal + tax + shipping − discount)

Subtotal comes first; tax, shipping and discount each depend only on it (and
the cart), so their combination does not depend on evaluation order.

Two entry points differ only in how they treat the coupon:

* ``calculate_order_preview`` is lenient: an invalid or unknown coupon
  simply yields no discount.
* ``price_checkout`` is strict: the coupon is redeemed and any problem
  fails the call with ``CouponValidationError``.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from checkout.config import get_settings
from checkout.coupon.ledger import CouponLedger
from checkout.exceptions import EmptyCartError
from checkout.pricing.cart import CartItem
from checkout.shared.money import non_negative, round2
from checkout.shipping.address import DeliveryAddress
from checkout.shipping.engine import ShippingEngine
from checkout.tax import get_tax_provider
from checkout.tax.port import TaxProvider

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderPreview:
    subtotal: float
    tax: float
    shipping_cost: float
    discount: float
    total: float
    items: tuple[CartItem, ...]
    coupon_code: str | None = None  # set only when a discount was granted

    def totals(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping_cost": self.shipping_cost,
            "discount": self.discount,
            "total": self.total,
        }

    def to_dict(self) -> dict:
        return {
            **self.totals(),
            "coupon_code": self.coupon_code,
            "items": [item.to_dict() for item in self.items],
        }


class PricingCalculator:
    def __init__(
        self,
        shipping_engine: ShippingEngine | None = None,
        coupon_ledger: CouponLedger | None = None,
        tax_provider: TaxProvider | None = None,
    ) -> None:
        self.shipping_engine = shipping_engine or ShippingEngine()
        self.coupon_ledger = coupon_ledger or CouponLedger()
        self._tax_provider = tax_provider

    @property
    def tax_provider(self) -> TaxProvider | None:
        return self._tax_provider or get_tax_provider()

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def calculate_order_preview(
        self,
        user_id: str,
        cart_items: Iterable[CartItem | Mapping[str, Any]],
        coupon_code: str | None = None,
        shipping_address: DeliveryAddress | Mapping[str, Any] | None = None,
    ) -> OrderPreview:
        return self._price(user_id, cart_items, coupon_code, shipping_address, self._preview_discount)

    def price_checkout(
        self,
        user_id: str,
        cart_items: Iterable[CartItem | Mapping[str, Any]],
        coupon_code: str | None = None,
        shipping_address: DeliveryAddress | Mapping[str, Any] | None = None,
    ) -> OrderPreview:
        return self._price(user_id, cart_items, coupon_code, shipping_address, self._redeemed_discount)

    # -------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------
    def calculate_subtotal(self, items: Iterable[CartItem]) -> float:
        return round2(sum(item.line_total for item in items))

    def calculate_tax(self, subtotal: float, shipping_address: DeliveryAddress | None = None) -> float:
        """Provider quote when possible; the flat default rate otherwise.

        Tax is best-effort: no provider failure ever reaches the caller.
        """
        provider = self.tax_provider
        if provider is not None and shipping_address is not None:
            try:
                return round2(non_negative(provider.calculate_tax(subtotal, shipping_address.to_dict()), "tax"))
            except Exception as exc:
                logger.warning(
                    "Tax provider unavailable, using fallback rate",
                    provider=type(provider).__name__,
                    subtotal=subtotal,
                    error=str(exc),
                )
        return round2(subtotal * get_settings().default_tax_rate)

    def calculate_shipping_cost(
        self,
        subtotal: float,
        items: Iterable[CartItem],
        shipping_address: DeliveryAddress | None = None,
    ) -> float:
        if shipping_address is not None:
            return self.shipping_engine.quote(shipping_address, items)
        return self.shipping_engine.calculate_shipping_cost_by_threshold(subtotal)

    # -------------------------------------------------------------------
    # Discount policies
    # -------------------------------------------------------------------
    def _preview_discount(self, subtotal: float, coupon_code: str | None) -> tuple[float, str | None]:
        if not coupon_code:
            return 0.0, None

        validation = self.coupon_ledger.validate(coupon_code, subtotal)
        if not validation.is_valid:
            logger.info("Coupon ignored for preview", coupon_code=coupon_code, reason=validation.message)
            return 0.0, None
        return self.coupon_ledger.calculate_discount_amount(validation.coupon, subtotal), validation.coupon.code

    def _redeemed_discount(self, subtotal: float, coupon_code: str | None) -> tuple[float, str | None]:
        if not coupon_code:
            return 0.0, None

        redemption = self.coupon_ledger.apply_coupon(coupon_code, subtotal)
        return redemption.discount_amount, redemption.coupon.code

    # -------------------------------------------------------------------
    # Composition
    # -------------------------------------------------------------------
    def _price(
        self,
        user_id: str,
        cart_items: Iterable[CartItem | Mapping[str, Any]],
        coupon_code: str | None,
        shipping_address: DeliveryAddress | Mapping[str, Any] | None,
        resolve_discount: Callable[[float, str | None], tuple[float, str | None]],
    ) -> OrderPreview:
        items = tuple(CartItem.coerce(item) for item in cart_items or ())
        logger.info("Calculating order totals", user_id=user_id, item_count=len(items))
        if not items:
            raise EmptyCartError()

        address = DeliveryAddress.coerce(shipping_address)

        subtotal = self.calculate_subtotal(items)
        tax = self.calculate_tax(subtotal, address)
        shipping_cost = self.calculate_shipping_cost(subtotal, items, address)
        discount, applied_code = resolve_discount(subtotal, coupon_code)

        total = round2(subtotal + tax + shipping_cost - discount)

        preview = OrderPreview(
            subtotal=subtotal,
            tax=tax,
            shipping_cost=shipping_cost,
            discount=discount,
            total=total,
            items=items,
            coupon_code=applied_code,
        )
        logger.info("Order totals calculated", user_id=user_id, **preview.totals())
        return preview
