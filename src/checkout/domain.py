"""Checkout bounded context — Pricing, Coupons and Checkout Sessions.

Turns a cart snapshot into authoritative order totals, redeems discount
coupons under concurrency, prices shipping across geographic zones, and owns
the checkout session lifecycle (pending → completed/expired/failed).
"""

import structlog
from protean.domain import Domain

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
