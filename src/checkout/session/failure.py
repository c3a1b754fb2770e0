"""Checkout session failure — command and handler.

A failed payment keeps the coupon use it took; only expiration releases it.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.session.session import CheckoutSession

logger = structlog.get_logger(__name__)


@checkout.command(part_of="CheckoutSession")
class FailCheckoutSession:
    session_id = Identifier(required=True)
    reason = String(max_length=500)


@checkout.command_handler(part_of=CheckoutSession)
class FailCheckoutSessionHandler:
    @handle(FailCheckoutSession)
    def fail_checkout_session(self, command):
        repo = current_domain.repository_for(CheckoutSession)
        session = repo.get(command.session_id)
        session.fail(command.reason)
        repo.add(session)

        logger.warning(
            "Checkout session failed",
            session_id=str(session.id),
            reason=command.reason or "No reason provided",
        )
        return session.status
