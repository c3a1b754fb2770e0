"""Repository for the CheckoutSession aggregate."""

from datetime import datetime

from checkout.domain import checkout
from checkout.session.session import CheckoutSession, CheckoutStatus
from checkout.shared.clock import as_utc

SWEEP_BATCH_SIZE = 500


@checkout.repository(part_of=CheckoutSession)
class CheckoutSessionRepository:
    def find_lapsed(self, as_of: datetime, limit: int = SWEEP_BATCH_SIZE) -> list[CheckoutSession]:
        """Pending sessions whose ``expires_at`` is before ``as_of``, oldest first."""
        return (
            self._dao.query.filter(
                status=CheckoutStatus.PENDING.value,
                expires_at__lt=as_utc(as_of),
            )
            .order_by("expires_at")
            .limit(limit)
            .all()
            .items
        )
