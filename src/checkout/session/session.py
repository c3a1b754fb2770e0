"""CheckoutSession aggregate (CQRS) — a priced cart awaiting payment.

A session freezes the cart and its totals at creation; nothing about the
price changes afterwards. It lives for a fixed TTL and then lapses.

State Machine:
    PENDING → COMPLETED   (payment confirmed before ``expires_at``)
    PENDING → EXPIRED     (lapsed, or expired explicitly by a sweeper)
    PENDING → FAILED      (payment failed)

All three outcomes are terminal.
"""

import json
from datetime import datetime, timedelta
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Integer, String, Text, ValueObject

from checkout.domain import checkout
from checkout.exceptions import InvalidTransition, SessionExpired
from checkout.session.events import (
    CheckoutSessionCompleted,
    CheckoutSessionCreated,
    CheckoutSessionExpired,
    CheckoutSessionFailed,
)
from checkout.shared.clock import as_utc, utcnow


class CheckoutStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    EXPIRED = "Expired"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    CheckoutStatus.PENDING: {CheckoutStatus.COMPLETED, CheckoutStatus.EXPIRED, CheckoutStatus.FAILED},
    CheckoutStatus.COMPLETED: set(),  # Terminal
    CheckoutStatus.EXPIRED: set(),  # Terminal
    CheckoutStatus.FAILED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="CheckoutSession")
class PriceTotals:
    """Totals computed when the session was opened. Never recomputed."""

    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)


@checkout.value_object(part_of="CheckoutSession")
class Address:
    country = String(required=True, max_length=2)
    pincode = String(max_length=20)
    state = String(max_length=100)
    city = String(max_length=100)
    line1 = String(max_length=255)
    line2 = String(max_length=255)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="CheckoutSession")
class CheckoutItem:
    """A cart line exactly as it was priced."""

    product_id = String(required=True, max_length=255)
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    item_metadata = Text()  # JSON object


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@checkout.aggregate
class CheckoutSession:
    user_id = String(required=True, max_length=255)
    items = HasMany(CheckoutItem)
    totals = ValueObject(PriceTotals)
    discount_code = String(max_length=50)
    status = String(choices=CheckoutStatus, default=CheckoutStatus.PENDING.value)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    payment_intent_id = String(max_length=255)
    failure_reason = String(max_length=500)
    expires_at = DateTime(required=True)
    completed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id, preview, ttl_minutes, shipping_address=None, billing_address=None):
        """Open a pending session from an ``OrderPreview``.

        Args:
            user_id: The shopper checking out.
            preview: Priced cart; its items and totals are frozen as-is.
            ttl_minutes: Minutes until the session lapses.
            shipping_address: Optional ``DeliveryAddress``.
            billing_address: Optional ``DeliveryAddress``.
        """
        now = utcnow()
        session = cls(
            user_id=str(user_id),
            items=[
                CheckoutItem(
                    product_id=item.product_id,
                    name=item.name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    item_metadata=json.dumps(dict(item.metadata)),
                )
                for item in preview.items
            ],
            totals=PriceTotals(**preview.totals()),
            discount_code=preview.coupon_code,
            status=CheckoutStatus.PENDING.value,
            shipping_address=Address(**shipping_address.to_dict()) if shipping_address else None,
            billing_address=Address(**billing_address.to_dict()) if billing_address else None,
            expires_at=now + timedelta(minutes=ttl_minutes),
            created_at=now,
            updated_at=now,
        )
        session.raise_(
            CheckoutSessionCreated(
                session_id=str(session.id),
                user_id=session.user_id,
                subtotal=preview.subtotal,
                total=preview.total,
                discount_code=session.discount_code,
                expires_at=session.expires_at,
                created_at=now,
            )
        )
        return session

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def has_lapsed(self, now: datetime | None = None) -> bool:
        return as_utc(now or utcnow()) >= as_utc(self.expires_at)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = CheckoutStatus(self.status)
        if target_status not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(f"Checkout session is already {current.value.lower()}")

    def complete(self, payment_intent_id, now=None):
        """Record payment. A pending session past its expiry is expired instead.

        Raises ``SessionExpired`` after moving a lapsed session to EXPIRED;
        the caller is expected to persist that change.
        """
        now = now or utcnow()
        if self.status == CheckoutStatus.PENDING.value and self.has_lapsed(now):
            self.expire(now)
            raise SessionExpired("Checkout session has expired")

        self._assert_can_transition(CheckoutStatus.COMPLETED)
        self.status = CheckoutStatus.COMPLETED.value
        self.payment_intent_id = payment_intent_id
        self.completed_at = now
        self.updated_at = now

        self.raise_(
            CheckoutSessionCompleted(
                session_id=str(self.id),
                user_id=self.user_id,
                payment_intent_id=payment_intent_id,
                total=self.totals.total if self.totals else 0.0,
                completed_at=now,
            )
        )

    def expire(self, now=None) -> bool:
        """Move to EXPIRED. Returns False when the session already was."""
        if self.status == CheckoutStatus.EXPIRED.value:
            return False

        self._assert_can_transition(CheckoutStatus.EXPIRED)
        now = now or utcnow()
        self.status = CheckoutStatus.EXPIRED.value
        self.updated_at = now

        self.raise_(
            CheckoutSessionExpired(
                session_id=str(self.id),
                user_id=self.user_id,
                discount_code=self.discount_code,
                expired_at=now,
            )
        )
        return True

    def fail(self, reason=None):
        self._assert_can_transition(CheckoutStatus.FAILED)
        now = utcnow()
        self.status = CheckoutStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = now

        self.raise_(
            CheckoutSessionFailed(
                session_id=str(self.id),
                user_id=self.user_id,
                reason=reason,
                failed_at=now,
            )
        )
