"""Coupon administration — commands and handler.

Issuing, amending and withdrawing coupons. Redemption counters are not
editable here; they move only through the ledger.
"""

import json

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.coupon.coupon import Coupon, normalize_code
from checkout.domain import checkout
from checkout.exceptions import CouponConflict

logger = structlog.get_logger(__name__)


def _product_list(raw):
    if raw is None:
        return None
    return json.loads(raw) if isinstance(raw, str) else list(raw)


@checkout.command(part_of="Coupon")
class CreateCoupon:
    """Issue a new coupon."""

    code = String(required=True, max_length=50)
    coupon_type = String(required=True, max_length=20)
    value = Float(required=True)
    expires_at = DateTime()
    max_uses = Integer()
    is_active = Boolean(default=True)
    minimum_purchase_amount = Float()
    applicable_products = Text()  # JSON array of product ids


@checkout.command(part_of="Coupon")
class UpdateCoupon:
    """Change the terms of a coupon.

    Omitted fields keep their value. ``cleared_fields`` is a JSON array naming
    optional terms to remove, such as ``["max_uses", "expires_at"]``.
    """

    coupon_id = Identifier(required=True)
    coupon_type = String(max_length=20)
    value = Float()
    expires_at = DateTime()
    max_uses = Integer()
    is_active = Boolean()
    minimum_purchase_amount = Float()
    applicable_products = Text()
    cleared_fields = Text()


@checkout.command(part_of="Coupon")
class DeleteCoupon:
    """Withdraw a coupon permanently."""

    coupon_id = Identifier(required=True)


@checkout.command_handler(part_of=Coupon)
class CouponAdministrationHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.find_by_code(command.code) is not None:
            raise CouponConflict(f"Coupon code {normalize_code(command.code)} already exists")

        coupon = Coupon.create(
            code=command.code,
            coupon_type=command.coupon_type,
            value=command.value,
            expires_at=command.expires_at,
            max_uses=command.max_uses,
            is_active=command.is_active if command.is_active is not None else True,
            minimum_purchase_amount=command.minimum_purchase_amount,
            applicable_products=_product_list(command.applicable_products),
        )
        repo.add(coupon)
        logger.info("Coupon created", coupon_id=str(coupon.id), code=coupon.code)
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        changed_fields = coupon.update_terms(
            coupon_type=command.coupon_type,
            value=command.value,
            expires_at=command.expires_at,
            max_uses=command.max_uses,
            is_active=command.is_active,
            minimum_purchase_amount=command.minimum_purchase_amount,
            applicable_products=_product_list(command.applicable_products),
            clear=json.loads(command.cleared_fields) if command.cleared_fields else (),
        )
        repo.save_terms(coupon, changed_fields)
        logger.info("Coupon updated", coupon_id=str(coupon.id), changed_fields=changed_fields)

    @handle(DeleteCoupon)
    def delete_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        repo._dao.delete(coupon)
        logger.info("Coupon deleted", coupon_id=str(coupon.id), code=coupon.code)
