"""Coupon aggregate (CQRS) — discount codes with usage limits.

Validity is a predicate over the coupon's current state, not a state machine.
``current_uses`` is the one field written concurrently by checkouts; it is
only ever changed through the conditional updates in ``CouponRepository``,
never by saving a loaded aggregate.
"""

import json
import re
from datetime import datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from checkout.coupon.events import CouponCreated, CouponDeactivated, CouponUpdated
from checkout.domain import checkout
from checkout.shared.clock import as_utc, utcnow
from checkout.shared.money import format_amount, round2

CODE_PATTERN = re.compile(r"^[A-Z0-9_-]{3,50}$")

# Optional terms an administrator may remove from a coupon
CLEARABLE_TERMS = ("expires_at", "max_uses", "minimum_purchase_amount", "applicable_products")


class CouponType(Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


@checkout.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    coupon_type = String(required=True, choices=CouponType)
    value = Float(required=True)
    expires_at = DateTime()
    max_uses = Integer(min_value=1)  # None ⇒ unlimited
    current_uses = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    minimum_purchase_amount = Float(min_value=0.0)
    applicable_products = Text()  # JSON array of product ids; advisory only
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def code_must_be_well_formed(self):
        if not CODE_PATTERN.match(self.code or ""):
            raise ValidationError(
                {"code": ["Code must be 3-50 uppercase letters, numbers, underscores or hyphens"]}
            )

    @invariant.post
    def value_must_suit_coupon_type(self):
        if self.coupon_type == CouponType.PERCENTAGE.value and not 0 < self.value <= 100:
            raise ValidationError({"value": ["Percentage value must be between 0 and 100"]})
        if self.coupon_type == CouponType.FIXED_AMOUNT.value and self.value <= 0:
            raise ValidationError({"value": ["Fixed amount must be greater than zero"]})

    @invariant.post
    def uses_cannot_exceed_limit(self):
        if self.max_uses is not None and (self.current_uses or 0) > self.max_uses:
            raise ValidationError({"max_uses": ["Usage limit cannot be below the number of redemptions"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        coupon_type,
        value,
        expires_at=None,
        max_uses=None,
        is_active=True,
        minimum_purchase_amount=None,
        applicable_products=None,
    ):
        now = utcnow()
        coupon = cls(
            code=normalize_code(code),
            coupon_type=CouponType(coupon_type).value,
            value=value,
            expires_at=expires_at,
            max_uses=max_uses,
            current_uses=0,
            is_active=is_active,
            minimum_purchase_amount=minimum_purchase_amount,
            applicable_products=json.dumps(list(applicable_products)) if applicable_products else None,
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                coupon_type=coupon.coupon_type,
                value=coupon.value,
                max_uses=coupon.max_uses,
                expires_at=coupon.expires_at,
                created_at=now,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def product_ids(self) -> list[str]:
        return json.loads(self.applicable_products) if self.applicable_products else []

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= as_utc(now or utcnow())

    def has_remaining_uses(self) -> bool:
        return self.max_uses is None or (self.current_uses or 0) < self.max_uses

    def ineligibility_reason(self, subtotal: float, now: datetime | None = None) -> str | None:
        """First failed redemption rule for ``subtotal``, or None when redeemable.

        Rules are checked in a fixed order so shoppers always see the same
        message for the same coupon.
        """
        if not self.is_active:
            return "Coupon is inactive"
        if self.is_expired(now):
            return "Coupon has expired"
        if not self.has_remaining_uses():
            return "Coupon usage limit reached"
        if self.minimum_purchase_amount is not None and subtotal < self.minimum_purchase_amount:
            return f"Minimum purchase amount of {format_amount(self.minimum_purchase_amount)} required"
        return None

    def discount_for(self, subtotal: float) -> float:
        """Discount this coupon grants on ``subtotal``; never more than the subtotal."""
        if self.coupon_type == CouponType.PERCENTAGE.value:
            discount = round2(subtotal * self.value / 100)
        else:
            discount = round2(self.value)
        return min(discount, round2(subtotal))

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def update_terms(
        self,
        coupon_type=None,
        value=None,
        expires_at=None,
        max_uses=None,
        is_active=None,
        minimum_purchase_amount=None,
        applicable_products=None,
        clear=(),
    ) -> list[str]:
        """Apply a partial update and return the names of the fields that changed.

        Arguments left as None are not touched. Optional terms named in
        ``clear`` are removed: no expiry, no usage limit, no minimum purchase
        or no product list.
        """
        unknown = set(clear) - set(CLEARABLE_TERMS)
        if unknown:
            raise ValidationError({name: ["This term cannot be cleared"] for name in sorted(unknown)})

        changes = {
            "coupon_type": CouponType(coupon_type).value if coupon_type is not None else None,
            "value": value,
            "expires_at": expires_at,
            "max_uses": max_uses,
            "is_active": is_active,
            "minimum_purchase_amount": minimum_purchase_amount,
            "applicable_products": json.dumps(list(applicable_products)) if applicable_products is not None else None,
        }
        changes = {name: new_value for name, new_value in changes.items() if new_value is not None}
        changes.update({name: None for name in clear})
        if not changes:
            return []

        changed_fields = list(changes)
        was_active = self.is_active
        now = utcnow()
        with atomic_change(self):
            for name, new_value in changes.items():
                setattr(self, name, new_value)
            self.updated_at = now

        self.raise_(
            CouponUpdated(
                coupon_id=str(self.id),
                code=self.code,
                changed_fields=",".join(changed_fields),
                updated_at=now,
            )
        )
        if was_active and not self.is_active:
            self.raise_(
                CouponDeactivated(
                    coupon_id=str(self.id),
                    code=self.code,
                    deactivated_at=now,
                )
            )
        return changed_fields
