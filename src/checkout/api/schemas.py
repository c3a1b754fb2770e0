"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    unit_price: float | None = Field(default=None, ge=0)
    price: float | None = Field(default=None, ge=0)  # accepted in place of unit_price
    name: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AddressSchema(BaseModel):
    country: str = Field(min_length=2, max_length=2)
    pincode: str | None = None
    state: str | None = None
    city: str | None = None
    line1: str | None = None
    line2: str | None = None


class PriceTotalsSchema(BaseModel):
    subtotal: float
    tax: float
    shipping_cost: float
    discount: float
    total: float


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class OrderPreviewRequest(BaseModel):
    user_id: str
    items: list[CartItemSchema]
    coupon_code: str | None = None
    shipping_address: AddressSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "items": [
                        {"product_id": "prod-001", "quantity": 2, "unit_price": 25.0, "name": "Mug"},
                    ],
                    "coupon_code": "SAVE10",
                    "shipping_address": {"country": "US", "pincode": "94105"},
                }
            ]
        }
    }


class ShippingOptionsRequest(BaseModel):
    address: AddressSchema
    items: list[CartItemSchema] = Field(default_factory=list)
    order_weight: float | None = Field(default=None, gt=0)


class CreateCheckoutSessionRequest(OrderPreviewRequest):
    billing_address: AddressSchema | None = None


class CompleteCheckoutSessionRequest(BaseModel):
    payment_intent_id: str = Field(min_length=1)


class FailCheckoutSessionRequest(BaseModel):
    reason: str | None = None


class ExpireLapsedSessionsRequest(BaseModel):
    as_of: datetime | None = None
    batch_size: int | None = Field(default=None, gt=0)


class ConfigureTaxProviderRequest(BaseModel):
    should_succeed: bool = True
    rate: float | None = Field(default=None, ge=0)
    failure_reason: str = "Tax service unavailable"


# ---------------------------------------------------------------------------
# Coupon Request Schemas
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str = Field(min_length=3, max_length=50)
    coupon_type: Literal["PERCENTAGE", "FIXED_AMOUNT"]
    value: float = Field(gt=0)
    expires_at: datetime | None = None
    max_uses: int | None = Field(default=None, gt=0)
    is_active: bool = True
    minimum_purchase_amount: float | None = Field(default=None, ge=0)
    applicable_products: list[str] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "SAVE10",
                    "coupon_type": "PERCENTAGE",
                    "value": 10,
                    "max_uses": 100,
                    "minimum_purchase_amount": 50,
                }
            ]
        }
    }


class UpdateCouponRequest(BaseModel):
    coupon_type: Literal["PERCENTAGE", "FIXED_AMOUNT"] | None = None
    value: float | None = Field(default=None, gt=0)
    expires_at: datetime | None = None
    max_uses: int | None = Field(default=None, gt=0)
    is_active: bool | None = None
    minimum_purchase_amount: float | None = Field(default=None, ge=0)
    applicable_products: list[str] | None = None


class CouponSubtotalRequest(BaseModel):
    code: str
    subtotal: float = Field(ge=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderPreviewResponse(PriceTotalsSchema):
    coupon_code: str | None = None
    items: list[CartItemSchema]


class DeliveryEstimateSchema(BaseModel):
    earliest: datetime
    latest: datetime


class ShippingOptionSchema(BaseModel):
    method: str
    carrier: str
    estimated_days: str
    min_days: int
    max_days: int
    cost: float
    estimated_delivery: DeliveryEstimateSchema


class ShippingOptionsResponse(BaseModel):
    options: list[ShippingOptionSchema]


class SessionIdResponse(BaseModel):
    session_id: str


class CheckoutItemSchema(BaseModel):
    product_id: str
    name: str | None = None
    quantity: int
    unit_price: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class CheckoutSessionResponse(BaseModel):
    session_id: str
    user_id: str
    status: str
    items: list[CheckoutItemSchema]
    totals: PriceTotalsSchema
    discount_code: str | None = None
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    payment_intent_id: str | None = None
    failure_reason: str | None = None
    expires_at: datetime
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StatusResponse(BaseModel):
    status: str


class ExpiredCountResponse(BaseModel):
    expired_count: int


class TaxProviderConfigResponse(BaseModel):
    provider: str
    should_succeed: bool
    rate: float
    failure_reason: str


class CouponIdResponse(BaseModel):
    coupon_id: str


class CouponResponse(BaseModel):
    coupon_id: str
    code: str
    coupon_type: str
    value: float
    expires_at: datetime | None = None
    max_uses: int | None = None
    current_uses: int
    is_active: bool
    minimum_purchase_amount: float | None = None
    applicable_products: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CouponListResponse(BaseModel):
    coupons: list[CouponResponse]
    total: int
    page: int
    limit: int


class CouponValidationResponse(BaseModel):
    is_valid: bool
    message: str | None = None
    discount_amount: float = 0.0
    coupon: CouponResponse | None = None


class CouponRedemptionResponse(BaseModel):
    coupon_id: str
    code: str
    discount_amount: float
    current_uses: int
