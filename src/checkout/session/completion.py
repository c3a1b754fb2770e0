"""Checkout session completion — command, handler and service function."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.exceptions import SessionExpired
from checkout.session.expiration import release_session_coupon
from checkout.session.session import CheckoutSession, CheckoutStatus
from checkout.shared.clock import utcnow

logger = structlog.get_logger(__name__)


@checkout.command(part_of="CheckoutSession")
class CompleteCheckoutSession:
    session_id = Identifier(required=True)
    payment_intent_id = String(required=True, max_length=255)


@checkout.command_handler(part_of=CheckoutSession)
class CompleteCheckoutSessionHandler:
    @handle(CompleteCheckoutSession)
    def complete_checkout_session(self, command):
        """Returns the resulting status.

        A session that lapsed before payment arrived is stored as EXPIRED
        and ``"Expired"`` is returned; raising here would roll the
        expiration back with the rest of the unit of work.
        """
        repo = current_domain.repository_for(CheckoutSession)
        session = repo.get(command.session_id)

        try:
            session.complete(command.payment_intent_id, now=utcnow())
        except SessionExpired:
            repo.add(session)
            release_session_coupon(session)
            logger.info(
                "Payment arrived after checkout session lapsed",
                session_id=str(session.id),
                expires_at=str(session.expires_at),
            )
            return session.status

        repo.add(session)
        logger.info(
            "Checkout session completed",
            session_id=str(session.id),
            payment_intent_id=command.payment_intent_id,
        )
        return session.status


def complete_checkout(session_id: str, payment_intent_id: str) -> CheckoutSession:
    """Complete a session and return it; ``SessionExpired`` if it had lapsed."""
    status = current_domain.process(
        CompleteCheckoutSession(session_id=session_id, payment_intent_id=payment_intent_id),
        asynchronous=False,
    )
    if status == CheckoutStatus.EXPIRED.value:
        raise SessionExpired("Checkout session has expired")
    return current_domain.repository_for(CheckoutSession).get(session_id)
