"""Domain events for the CheckoutSession aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="CheckoutSession")
class CheckoutSessionCreated:
    """Cart totals were frozen into a new pending checkout session."""

    __version__ = 1

    session_id = Identifier(required=True)
    user_id = String(required=True, max_length=255)
    subtotal = Float(required=True)
    total = Float(required=True)
    discount_code = String(max_length=50)
    expires_at = DateTime(required=True)
    created_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class CheckoutSessionCompleted:
    """Payment was confirmed for the session before it lapsed."""

    __version__ = 1

    session_id = Identifier(required=True)
    user_id = String(required=True, max_length=255)
    payment_intent_id = String(required=True, max_length=255)
    total = Float(required=True)
    completed_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class CheckoutSessionExpired:
    __version__ = 1

    session_id = Identifier(required=True)
    user_id = String(required=True, max_length=255)
    discount_code = String(max_length=50)
    expired_at = DateTime(required=True)


@checkout.event(part_of="CheckoutSession")
class CheckoutSessionFailed:
    __version__ = 1

    session_id = Identifier(required=True)
    user_id = String(required=True, max_length=255)
    reason = String(max_length=500)
    failed_at = DateTime(required=True)
