"""Application tests for the coupon ledger: validation, redemption and release."""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest
from checkout.coupon.administration import CreateCoupon
from checkout.coupon.coupon import Coupon, CouponType
from checkout.coupon.ledger import CouponLedger
from checkout.coupon.redemption import ApplyCoupon
from checkout.exceptions import CouponValidationError, InvalidAmount
from protean import current_domain


def _create_coupon(**overrides):
    defaults = {
        "code": "SAVE20",
        "coupon_type": CouponType.PERCENTAGE.value,
        "value": 20.0,
    }
    defaults.update(overrides)
    return current_domain.process(CreateCoupon(**defaults), asynchronous=False)


def _uses(coupon_id):
    return current_domain.repository_for(Coupon).get(coupon_id).current_uses


@pytest.fixture()
def ledger():
    return CouponLedger()


class TestValidate:
    def test_unknown_code(self, ledger):
        validation = ledger.validate("NOPE", 50.0)
        assert validation.is_valid is False
        assert validation.message == "Coupon not found"

    def test_lookup_is_case_insensitive(self, ledger):
        _create_coupon()
        assert ledger.validate("save20", 50.0).is_valid is True

    def test_minimum_purchase_message(self, ledger):
        _create_coupon(minimum_purchase_amount=100.0)
        validation = ledger.validate("SAVE20", 50.0)
        assert validation.is_valid is False
        assert validation.message == "Minimum purchase amount of 100 required"

    def test_expired_coupon(self, ledger):
        _create_coupon(expires_at=datetime.now(UTC) - timedelta(hours=1))
        assert ledger.validate("SAVE20", 50.0).message == "Coupon has expired"

    def test_validation_does_not_consume_uses(self, ledger):
        coupon_id = _create_coupon(max_uses=1)
        ledger.validate("SAVE20", 50.0)
        ledger.validate("SAVE20", 50.0)
        assert _uses(coupon_id) == 0

    def test_negative_subtotal_rejected(self, ledger):
        _create_coupon()
        with pytest.raises(InvalidAmount):
            ledger.validate("SAVE20", -1.0)

    def test_discount_for_valid_coupon(self, ledger):
        _create_coupon()
        validation = ledger.validate("SAVE20", 50.0)
        assert ledger.calculate_discount_amount(validation.coupon, 50.0) == 10.00


class TestApplyCoupon:
    def test_redemption_takes_one_use(self, ledger):
        coupon_id = _create_coupon(max_uses=3)
        redemption = ledger.apply_coupon("SAVE20", 50.0)
        assert redemption.discount_amount == 10.00
        assert _uses(coupon_id) == 1

    def test_invalid_coupon_raises_with_reason(self, ledger):
        _create_coupon(minimum_purchase_amount=100.0)
        with pytest.raises(CouponValidationError) as exc:
            ledger.apply_coupon("SAVE20", 50.0)
        assert exc.value.message == "Minimum purchase amount of 100 required"

    def test_limit_is_enforced(self, ledger):
        coupon_id = _create_coupon(max_uses=2)
        ledger.apply_coupon("SAVE20", 50.0)
        ledger.apply_coupon("SAVE20", 50.0)
        with pytest.raises(CouponValidationError) as exc:
            ledger.apply_coupon("SAVE20", 50.0)
        assert exc.value.message == "Coupon usage limit reached"
        assert _uses(coupon_id) == 2

    def test_apply_command(self):
        coupon_id = _create_coupon()
        result = current_domain.process(ApplyCoupon(code="SAVE20", subtotal=80.0), asynchronous=False)
        assert result["coupon_id"] == coupon_id
        assert result["discount_amount"] == 16.00
        assert _uses(coupon_id) == 1


class TestConcurrentRedemption:
    def test_stale_snapshot_loses_the_last_use(self):
        coupon_id = _create_coupon(max_uses=1)
        repo = current_domain.repository_for(Coupon)

        # Two checkouts validated the coupon against the same counter value
        first = repo.get(coupon_id)
        second = repo.get(coupon_id)

        assert repo.increment_uses(coupon_id, first.current_uses, first.max_uses) is True
        assert repo.increment_uses(coupon_id, second.current_uses, second.max_uses) is False
        assert _uses(coupon_id) == 1

    def test_stale_snapshot_retries_when_uses_remain(self):
        coupon_id = _create_coupon(max_uses=5)
        repo = current_domain.repository_for(Coupon)
        first = repo.get(coupon_id)
        second = repo.get(coupon_id)

        assert repo.increment_uses(coupon_id, first.current_uses, first.max_uses) is True
        assert repo.increment_uses(coupon_id, second.current_uses, second.max_uses) is True
        assert _uses(coupon_id) == 2

    def test_unlimited_coupon(self):
        coupon_id = _create_coupon()
        repo = current_domain.repository_for(Coupon)
        for _ in range(3):
            assert repo.increment_uses(coupon_id, _uses(coupon_id), None) is True
        assert _uses(coupon_id) == 3

    def test_counter_write_is_conditional(self):
        coupon_id = _create_coupon(max_uses=3)
        repo = current_domain.repository_for(Coupon)

        assert repo._swap_uses(coupon_id, observed=1, new=2) is False
        assert repo._swap_uses(coupon_id, observed=0, new=1) is True
        assert _uses(coupon_id) == 1


def _uses_sql_database():
    return current_domain.providers["default"].conn_info["provider"] in ("sqlite", "postgresql")


class TestParallelRedemption:
    """Redemptions racing from separate threads."""

    @pytest.fixture(autouse=True)
    def _require_sql_database(self):
        # The memory provider's bulk update reads then writes outside any lock
        if not _uses_sql_database():
            pytest.skip("needs a SQL database, run with --env sqlite")

    def test_single_use_coupon_redeemed_exactly_once(self):
        _create_coupon(max_uses=1)
        domain = current_domain._get_current_object()

        def redeem(_):
            with domain.domain_context():
                try:
                    CouponLedger().apply_coupon("SAVE20", 50.0)
                    return "redeemed"
                except CouponValidationError as exc:
                    return exc.message

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(redeem, range(8)))

        assert outcomes.count("redeemed") == 1
        assert outcomes.count("Coupon usage limit reached") == 7
        assert current_domain.repository_for(Coupon).find_by_code("SAVE20").current_uses == 1

    def test_limited_coupon_never_oversold(self):
        _create_coupon(max_uses=3)
        domain = current_domain._get_current_object()

        def redeem(_):
            with domain.domain_context():
                try:
                    CouponLedger().apply_coupon("SAVE20", 50.0)
                    return True
                except CouponValidationError:
                    return False

        with ThreadPoolExecutor(max_workers=6) as pool:
            outcomes = list(pool.map(redeem, range(10)))

        assert outcomes.count(True) == 3
        assert current_domain.repository_for(Coupon).find_by_code("SAVE20").current_uses == 3


class TestReleaseCoupon:
    def test_release_gives_a_use_back(self, ledger):
        coupon_id = _create_coupon(max_uses=1)
        ledger.apply_coupon("SAVE20", 50.0)
        assert ledger.release_coupon("SAVE20") is True
        assert _uses(coupon_id) == 0
        # The freed use can be redeemed again
        ledger.apply_coupon("SAVE20", 50.0)
        assert _uses(coupon_id) == 1

    def test_release_floors_at_zero(self, ledger):
        coupon_id = _create_coupon()
        assert ledger.release_coupon("SAVE20") is False
        assert _uses(coupon_id) == 0

    def test_release_unknown_coupon(self, ledger):
        assert ledger.release_coupon("GHOST") is False
