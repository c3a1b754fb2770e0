"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Coupon")
class CouponCreated:
    """A new coupon was issued."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    coupon_type = String(required=True)
    value = Float(required=True)
    max_uses = Integer()
    expires_at = DateTime()
    created_at = DateTime(required=True)


@checkout.event(part_of="Coupon")
class CouponUpdated:
    """Coupon terms were changed by an administrator."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    changed_fields = String(required=True)  # comma-separated field names
    updated_at = DateTime(required=True)


@checkout.event(part_of="Coupon")
class CouponDeactivated:
    """A coupon stopped being redeemable."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    deactivated_at = DateTime(required=True)
