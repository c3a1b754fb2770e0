"""Checkout session creation — command and handler.

Creation prices the cart strictly: the coupon, when given, is redeemed here,
and a coupon the shopper cannot use fails the whole command.
"""

import json

import structlog
from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from checkout.config import get_settings
from checkout.domain import checkout
from checkout.pricing.calculator import PricingCalculator
from checkout.session.session import CheckoutSession
from checkout.shipping.address import DeliveryAddress

logger = structlog.get_logger(__name__)


@checkout.command(part_of="CheckoutSession")
class CreateCheckoutSession:
    user_id = String(required=True, max_length=255)
    items = Text(required=True)  # JSON: list of cart item dicts
    coupon_code = String(max_length=50)
    shipping_address = Text()  # JSON: address dict
    billing_address = Text()  # JSON: address dict


def _json(value):
    return json.loads(value) if isinstance(value, str) else value


@checkout.command_handler(part_of=CheckoutSession)
class CreateCheckoutSessionHandler:
    @handle(CreateCheckoutSession)
    def create_checkout_session(self, command):
        shipping_address = DeliveryAddress.coerce(_json(command.shipping_address))
        billing_address = DeliveryAddress.coerce(_json(command.billing_address))

        preview = PricingCalculator().price_checkout(
            command.user_id,
            _json(command.items) or [],
            coupon_code=command.coupon_code,
            shipping_address=shipping_address,
        )

        session = CheckoutSession.create(
            user_id=command.user_id,
            preview=preview,
            ttl_minutes=get_settings().session_ttl_minutes,
            shipping_address=shipping_address,
            billing_address=billing_address,
        )
        current_domain.repository_for(CheckoutSession).add(session)

        logger.info(
            "Checkout session created",
            session_id=str(session.id),
            user_id=command.user_id,
            total=preview.total,
            discount_code=preview.coupon_code,
        )
        return str(session.id)
