"""Repository for the Coupon aggregate.

Usage counters are changed with compare-and-swap updates::

    UPDATE coupon SET current_uses = n + 1 WHERE id = ? AND current_uses = n

A concurrent redemption that got there first makes the update match zero
rows; the counter is then re-read and the guard re-evaluated. The database
provider executes the bulk update as a single conditional statement, so the
guard holds across processes without any in-process locking.

Administrative edits go through ``save_terms``, which writes only the
columns that changed and so never carries a stale ``current_uses`` back.
"""

import structlog
from protean.utils.globals import current_uow
from protean.utils.query import Q

from checkout.coupon.coupon import Coupon, normalize_code
from checkout.domain import checkout
from checkout.exceptions import CouponValidationError
from checkout.shared.clock import utcnow

logger = structlog.get_logger(__name__)

MAX_CAS_ATTEMPTS = 10


@checkout.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code: str) -> Coupon | None:
        return self._dao.query.filter(code=normalize_code(code)).all().first

    def list_coupons(
        self,
        page: int = 1,
        limit: int = 20,
        is_active: bool | None = None,
        coupon_type: str | None = None,
    ) -> tuple[list[Coupon], int]:
        """One page of coupons, newest first, and the total number of matches."""
        query = self._dao.query
        if is_active is not None:
            query = query.filter(is_active=is_active)
        if coupon_type is not None:
            query = query.filter(coupon_type=coupon_type)

        results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

    def _swap_uses(self, coupon_id: str, observed: int, new: int) -> bool:
        updated = self._dao._update_all(
            Q(id=coupon_id, current_uses=observed),
            current_uses=new,
            updated_at=utcnow(),
        )
        return bool(updated)

    def increment_uses(self, coupon_id: str, observed_uses: int, max_uses: int | None) -> bool:
        """Take one use of the coupon. False once ``max_uses`` has been reached.

        ``observed_uses`` is the counter value the caller validated against.
        """
        uses = observed_uses or 0
        for _ in range(MAX_CAS_ATTEMPTS):
            if max_uses is not None and uses >= max_uses:
                return False

            if self._swap_uses(coupon_id, uses, uses + 1):
                return True

            uses = self._dao.get(coupon_id).current_uses or 0
            logger.debug("Coupon redemption raced, retrying", coupon_id=coupon_id, current_uses=uses)

        logger.warning("Coupon redemption contention exhausted retries", coupon_id=coupon_id)
        raise CouponValidationError("Coupon is in high demand, please try again")

    def decrement_uses(self, coupon_id: str) -> bool:
        """Give one use back to the pool, never going below zero."""
        for _ in range(MAX_CAS_ATTEMPTS):
            uses = self._dao.get(coupon_id).current_uses or 0
            if uses <= 0:
                return False

            if self._swap_uses(coupon_id, uses, uses - 1):
                return True

        logger.warning("Coupon release contention exhausted retries", coupon_id=coupon_id)
        return False

    def save_terms(self, coupon: Coupon, fields: list[str]) -> None:
        """Persist the named fields of ``coupon`` and queue its pending events."""
        if not fields:
            return

        values = {name: getattr(coupon, name) for name in fields}
        self._dao._update_all(Q(id=str(coupon.id)), updated_at=coupon.updated_at, **values)

        # Registered with the unit of work so its events are published on commit
        if current_uow and current_uow.in_progress:
            current_uow._add_to_identity_map(coupon)
