"""Coupon ledger — validation, discount computation, redemption and release.

``validate`` is a read: it never changes the coupon. ``apply_coupon`` is the
strict entry point: it fails with ``CouponValidationError`` and, on success,
takes one use of the coupon atomically. ``release_coupon`` is a compensating
action for sessions that never completed; a freed use may be taken by another
shopper before the releasing session could ask for it again.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.utils.globals import current_domain

from checkout.coupon.coupon import Coupon, normalize_code
from checkout.exceptions import CouponValidationError
from checkout.shared.money import non_negative

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CouponValidation:
    is_valid: bool
    message: str | None = None
    coupon: Coupon | None = None


@dataclass(frozen=True)
class CouponRedemption:
    discount_amount: float
    coupon: Coupon


class CouponLedger:
    @property
    def repository(self):
        return current_domain.repository_for(Coupon)

    def find(self, code: str) -> Coupon | None:
        if not normalize_code(code):
            return None
        return self.repository.find_by_code(code)

    def validate(self, code: str, subtotal: float, now: datetime | None = None) -> CouponValidation:
        subtotal = non_negative(subtotal, "subtotal")
        coupon = self.find(code)
        if coupon is None:
            return CouponValidation(is_valid=False, message="Coupon not found")

        reason = coupon.ineligibility_reason(subtotal, now)
        if reason is not None:
            return CouponValidation(is_valid=False, message=reason, coupon=coupon)
        return CouponValidation(is_valid=True, coupon=coupon)

    @staticmethod
    def calculate_discount_amount(coupon: Coupon, subtotal: float) -> float:
        return coupon.discount_for(non_negative(subtotal, "subtotal"))

    def apply_coupon(self, code: str, subtotal: float) -> CouponRedemption:
        validation = self.validate(code, subtotal)
        if not validation.is_valid:
            raise CouponValidationError(validation.message or "Invalid coupon")

        coupon = validation.coupon
        discount_amount = self.calculate_discount_amount(coupon, subtotal)

        if not self.repository.increment_uses(str(coupon.id), coupon.current_uses, coupon.max_uses):
            logger.info("Coupon redemption lost to a concurrent checkout", code=coupon.code)
            raise CouponValidationError("Coupon usage limit reached")

        logger.info(
            "Coupon redeemed",
            code=coupon.code,
            discount_amount=discount_amount,
            subtotal=subtotal,
        )
        return CouponRedemption(
            discount_amount=discount_amount,
            coupon=self.repository.get(str(coupon.id)),
        )

    def release_coupon(self, code: str) -> bool:
        coupon = self.find(code)
        if coupon is None:
            logger.warning("Release requested for unknown coupon", code=normalize_code(code))
            return False

        released = self.repository.decrement_uses(str(coupon.id))
        if released:
            logger.info("Coupon use released", code=coupon.code)
        return released
