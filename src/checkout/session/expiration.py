"""Checkout session expiration — commands and handler.

``ExpireCheckoutSession`` expires one session and gives its coupon use back.
``ExpireLapsedCheckoutSessions`` is the maintenance sweep: an external
scheduler (cron, K8s CronJob) triggers it through the maintenance endpoint,
and it expires every pending session past ``expires_at``.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer
from protean.utils.globals import current_domain

from checkout.coupon.ledger import CouponLedger
from checkout.domain import checkout
from checkout.exceptions import CheckoutError
from checkout.session.repository import SWEEP_BATCH_SIZE
from checkout.session.session import CheckoutSession
from checkout.shared.clock import utcnow

logger = structlog.get_logger(__name__)


@checkout.command(part_of="CheckoutSession")
class ExpireCheckoutSession:
    session_id = Identifier(required=True)


@checkout.command(part_of="CheckoutSession")
class ExpireLapsedCheckoutSessions:
    """Expire pending sessions that lapsed before ``as_of``."""

    as_of = DateTime()  # Optional: defaults to now
    batch_size = Integer(default=SWEEP_BATCH_SIZE, min_value=1)


def release_session_coupon(session):
    """Hand back the coupon use taken when ``session`` was priced."""
    if not session.discount_code:
        return False
    released = CouponLedger().release_coupon(session.discount_code)
    logger.info(
        "Released coupon for expired checkout session",
        session_id=str(session.id),
        discount_code=session.discount_code,
        released=released,
    )
    return released


@checkout.command_handler(part_of=CheckoutSession)
class ExpireCheckoutSessionHandler:
    @handle(ExpireCheckoutSession)
    def expire_checkout_session(self, command):
        repo = current_domain.repository_for(CheckoutSession)
        session = repo.get(command.session_id)

        if not session.expire():
            logger.debug("Checkout session already expired", session_id=str(session.id))
            return session.status

        repo.add(session)
        release_session_coupon(session)
        logger.info("Checkout session expired", session_id=str(session.id), user_id=session.user_id)
        return session.status

    @handle(ExpireLapsedCheckoutSessions)
    def expire_lapsed_checkout_sessions(self, command):
        as_of = command.as_of or utcnow()
        lapsed = current_domain.repository_for(CheckoutSession).find_lapsed(
            as_of, limit=command.batch_size or SWEEP_BATCH_SIZE
        )

        if not lapsed:
            logger.info("No lapsed checkout sessions found", as_of=as_of.isoformat())
            return 0

        expired_count = 0
        for session in lapsed:
            try:
                current_domain.process(
                    ExpireCheckoutSession(session_id=str(session.id)),
                    asynchronous=False,
                )
                expired_count += 1
            except (CheckoutError, ValidationError) as exc:
                logger.warning(
                    "Failed to expire lapsed checkout session",
                    session_id=str(session.id),
                    error=str(exc),
                )

        logger.info("Lapsed checkout session sweep complete", expired_count=expired_count)
        return expired_count
