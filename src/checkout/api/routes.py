"""FastAPI routes for the Checkout domain — checkout sessions and coupons."""

import json
import os

from fastapi import APIRouter, HTTPException
from protean.utils.globals import current_domain

from checkout.api.schemas import (
    CheckoutSessionResponse,
    CompleteCheckoutSessionRequest,
    ConfigureTaxProviderRequest,
    CouponIdResponse,
    CouponListResponse,
    CouponRedemptionResponse,
    CouponResponse,
    CouponSubtotalRequest,
    CouponValidationResponse,
    CreateCheckoutSessionRequest,
    CreateCouponRequest,
    ExpiredCountResponse,
    ExpireLapsedSessionsRequest,
    FailCheckoutSessionRequest,
    OrderPreviewRequest,
    OrderPreviewResponse,
    SessionIdResponse,
    ShippingOptionsRequest,
    ShippingOptionsResponse,
    StatusResponse,
    TaxProviderConfigResponse,
    UpdateCouponRequest,
)
from checkout.coupon.administration import CreateCoupon, DeleteCoupon, UpdateCoupon
from checkout.coupon.coupon import CLEARABLE_TERMS, Coupon
from checkout.coupon.ledger import CouponLedger
from checkout.coupon.redemption import ApplyCoupon
from checkout.pricing.calculator import PricingCalculator
from checkout.pricing.cart import CartItem
from checkout.session.completion import complete_checkout
from checkout.session.creation import CreateCheckoutSession
from checkout.session.expiration import ExpireCheckoutSession, ExpireLapsedCheckoutSessions
from checkout.session.failure import FailCheckoutSession
from checkout.session.session import CheckoutSession
from checkout.shipping.address import DeliveryAddress
from checkout.shipping.engine import ShippingEngine
from checkout.tax import get_tax_provider, set_tax_provider
from checkout.tax.fake_adapter import FakeTaxProvider


def _cart_items(items):
    return [item.model_dump(exclude_none=True) for item in items]


def _address(address):
    return address.model_dump(exclude_none=True) if address else None


def _session_response(session: CheckoutSession) -> CheckoutSessionResponse:
    return CheckoutSessionResponse(
        session_id=str(session.id),
        user_id=session.user_id,
        status=session.status,
        items=[
            {
                "product_id": item.product_id,
                "name": item.name,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "metadata": json.loads(item.item_metadata) if item.item_metadata else {},
            }
            for item in session.items
        ],
        totals=session.totals.to_dict(),
        discount_code=session.discount_code,
        shipping_address=session.shipping_address.to_dict() if session.shipping_address else None,
        billing_address=session.billing_address.to_dict() if session.billing_address else None,
        payment_intent_id=session.payment_intent_id,
        failure_reason=session.failure_reason,
        expires_at=session.expires_at,
        completed_at=session.completed_at,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def _coupon_response(coupon: Coupon) -> CouponResponse:
    return CouponResponse(
        coupon_id=str(coupon.id),
        code=coupon.code,
        coupon_type=coupon.coupon_type,
        value=coupon.value,
        expires_at=coupon.expires_at,
        max_uses=coupon.max_uses,
        current_uses=coupon.current_uses or 0,
        is_active=coupon.is_active,
        minimum_purchase_amount=coupon.minimum_purchase_amount,
        applicable_products=coupon.product_ids,
        created_at=coupon.created_at,
        updated_at=coupon.updated_at,
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


# Pricing routes are plain functions: the tax lookup is a blocking HTTP call
# and FastAPI runs them in its threadpool.
@checkout_router.post("/preview", response_model=OrderPreviewResponse)
def preview_order(body: OrderPreviewRequest) -> OrderPreviewResponse:
    """Price a cart without redeeming anything. Unusable coupons are ignored."""
    preview = PricingCalculator().calculate_order_preview(
        body.user_id,
        _cart_items(body.items),
        coupon_code=body.coupon_code,
        shipping_address=_address(body.shipping_address),
    )
    return OrderPreviewResponse(**preview.to_dict())


@checkout_router.post("/shipping-options", response_model=ShippingOptionsResponse)
async def shipping_options(body: ShippingOptionsRequest) -> ShippingOptionsResponse:
    """Shipping methods for an address, cheapest first, with delivery dates."""
    plan = ShippingEngine().plan_delivery(
        DeliveryAddress.from_dict(_address(body.address)),
        items=[CartItem.from_dict(item) for item in _cart_items(body.items)],
        order_weight=body.order_weight,
    )
    return ShippingOptionsResponse(
        options=[
            {
                **option.to_dict(),
                "estimated_delivery": {"earliest": estimate.earliest, "latest": estimate.latest},
            }
            for option, estimate in plan
        ]
    )


@checkout_router.post("/sessions", status_code=201, response_model=SessionIdResponse)
def create_checkout_session(body: CreateCheckoutSessionRequest) -> SessionIdResponse:
    """Freeze cart totals into a pending session. The coupon is redeemed here."""
    command = CreateCheckoutSession(
        user_id=body.user_id,
        items=json.dumps(_cart_items(body.items)),
        coupon_code=body.coupon_code,
        shipping_address=json.dumps(_address(body.shipping_address)) if body.shipping_address else None,
        billing_address=json.dumps(_address(body.billing_address)) if body.billing_address else None,
    )
    session_id = current_domain.process(command, asynchronous=False)
    return SessionIdResponse(session_id=session_id)


@checkout_router.post("/sessions/expire-lapsed", response_model=ExpiredCountResponse)
async def expire_lapsed_sessions(body: ExpireLapsedSessionsRequest | None = None) -> ExpiredCountResponse:
    """Maintenance sweep, triggered by an external scheduler."""
    body = body or ExpireLapsedSessionsRequest()
    command = ExpireLapsedCheckoutSessions(**body.model_dump(exclude_none=True))
    expired_count = current_domain.process(command, asynchronous=False)
    return ExpiredCountResponse(expired_count=expired_count)


@checkout_router.get("/sessions/{session_id}", response_model=CheckoutSessionResponse)
async def get_checkout_session(session_id: str) -> CheckoutSessionResponse:
    session = current_domain.repository_for(CheckoutSession).get(session_id)
    return _session_response(session)


@checkout_router.post("/sessions/{session_id}/complete", response_model=CheckoutSessionResponse)
async def complete_checkout_session(session_id: str, body: CompleteCheckoutSessionRequest) -> CheckoutSessionResponse:
    """Record payment. A lapsed session answers 410 and is expired instead."""
    session = complete_checkout(session_id, body.payment_intent_id)
    return _session_response(session)


@checkout_router.post("/sessions/{session_id}/expire", response_model=StatusResponse)
async def expire_checkout_session(session_id: str) -> StatusResponse:
    status = current_domain.process(ExpireCheckoutSession(session_id=session_id), asynchronous=False)
    return StatusResponse(status=status)


@checkout_router.post("/sessions/{session_id}/fail", response_model=StatusResponse)
async def fail_checkout_session(session_id: str, body: FailCheckoutSessionRequest) -> StatusResponse:
    command = FailCheckoutSession(session_id=session_id, reason=body.reason)
    status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=status)


@checkout_router.post("/tax/configure", response_model=TaxProviderConfigResponse)
async def configure_tax_provider(body: ConfigureTaxProviderRequest) -> TaxProviderConfigResponse:
    """Configure the FakeTaxProvider behavior (non-production only).

    Installs a FakeTaxProvider when no tax service is configured, so the
    fallback path can be exercised by hand.
    """
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Tax provider configuration not available in production")

    provider = get_tax_provider()
    if provider is None:
        provider = FakeTaxProvider()
        set_tax_provider(provider)
    if not isinstance(provider, FakeTaxProvider):
        raise HTTPException(status_code=400, detail="Tax provider configuration only available for FakeTaxProvider")

    provider.configure(
        should_succeed=body.should_succeed,
        rate=body.rate,
        failure_reason=body.failure_reason,
    )
    return TaxProviderConfigResponse(
        provider=type(provider).__name__,
        should_succeed=provider.should_succeed,
        rate=provider.rate,
        failure_reason=provider.failure_reason,
    )


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    command = CreateCoupon(
        code=body.code,
        coupon_type=body.coupon_type,
        value=body.value,
        expires_at=body.expires_at,
        max_uses=body.max_uses,
        is_active=body.is_active,
        minimum_purchase_amount=body.minimum_purchase_amount,
        applicable_products=json.dumps(body.applicable_products) if body.applicable_products is not None else None,
    )
    coupon_id = current_domain.process(command, asynchronous=False)
    return CouponIdResponse(coupon_id=coupon_id)


@coupon_router.get("", response_model=CouponListResponse)
async def list_coupons(
    page: int = 1,
    limit: int = 20,
    is_active: bool | None = None,
    coupon_type: str | None = None,
) -> CouponListResponse:
    page, limit = max(page, 1), min(max(limit, 1), 100)
    coupons, total = current_domain.repository_for(Coupon).list_coupons(
        page=page,
        limit=limit,
        is_active=is_active,
        coupon_type=coupon_type,
    )
    return CouponListResponse(
        coupons=[_coupon_response(coupon) for coupon in coupons],
        total=total,
        page=page,
        limit=limit,
    )


@coupon_router.post("/validate", response_model=CouponValidationResponse)
async def validate_coupon(body: CouponSubtotalRequest) -> CouponValidationResponse:
    """Check a coupon against a subtotal without redeeming it."""
    ledger = CouponLedger()
    validation = ledger.validate(body.code, body.subtotal)
    if not validation.is_valid:
        return CouponValidationResponse(is_valid=False, message=validation.message)

    return CouponValidationResponse(
        is_valid=True,
        discount_amount=ledger.calculate_discount_amount(validation.coupon, body.subtotal),
        coupon=_coupon_response(validation.coupon),
    )


@coupon_router.post("/apply", response_model=CouponRedemptionResponse)
async def apply_coupon(body: CouponSubtotalRequest) -> CouponRedemptionResponse:
    """Redeem one use of a coupon. Refusals answer 400 with the reason."""
    result = current_domain.process(ApplyCoupon(code=body.code, subtotal=body.subtotal), asynchronous=False)
    return CouponRedemptionResponse(**result)


@coupon_router.get("/{code}", response_model=CouponResponse)
async def get_coupon(code: str) -> CouponResponse:
    coupon = CouponLedger().find(code)
    if coupon is None:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return _coupon_response(coupon)


@coupon_router.put("/{coupon_id}", response_model=StatusResponse)
async def update_coupon(coupon_id: str, body: UpdateCouponRequest) -> StatusResponse:
    """Partial update. Sending null for an optional term removes it."""
    sent = body.model_dump(exclude_unset=True)
    cleared = [name for name in CLEARABLE_TERMS if name in sent and sent[name] is None]
    command = UpdateCoupon(
        coupon_id=coupon_id,
        coupon_type=body.coupon_type,
        value=body.value,
        expires_at=body.expires_at,
        max_uses=body.max_uses,
        is_active=body.is_active,
        minimum_purchase_amount=body.minimum_purchase_amount,
        applicable_products=json.dumps(body.applicable_products) if body.applicable_products is not None else None,
        cleared_fields=json.dumps(cleared) if cleared else None,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="updated")


@coupon_router.delete("/{coupon_id}", response_model=StatusResponse)
async def delete_coupon(coupon_id: str) -> StatusResponse:
    current_domain.process(DeleteCoupon(coupon_id=coupon_id), asynchronous=False)
    return StatusResponse(status="deleted")
