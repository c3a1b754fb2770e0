"""Explicit coupon redemption — command and handler.

Unlike the order preview, which shrugs off a bad coupon, this fails loudly:
the shopper asked for the discount and must be told why it was refused.
"""

from protean import handle
from protean.fields import Float, String

from checkout.coupon.coupon import Coupon
from checkout.coupon.ledger import CouponLedger
from checkout.domain import checkout


@checkout.command(part_of="Coupon")
class ApplyCoupon:
    """Redeem a coupon against a cart subtotal."""

    code = String(required=True, max_length=50)
    subtotal = Float(required=True, min_value=0.0)


@checkout.command_handler(part_of=Coupon)
class ApplyCouponHandler:
    @handle(ApplyCoupon)
    def apply_coupon(self, command):
        redemption = CouponLedger().apply_coupon(command.code, command.subtotal)
        return {
            "coupon_id": str(redemption.coupon.id),
            "code": redemption.coupon.code,
            "discount_amount": redemption.discount_amount,
            "current_uses": redemption.coupon.current_uses,
        }
