"""Tests for currency rounding and amount guards."""

from decimal import Decimal

import pytest
from checkout.exceptions import InvalidAmount
from checkout.shared.money import format_amount, non_negative, positive_quantity, round2


class TestRound2:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            (2.675, 2.68),
            (1.005, 1.01),
            (0.125, 0.13),
            (10, 10.0),
            (19.994, 19.99),
            (Decimal("3.335"), 3.34),
        ],
    )
    def test_rounds_halves_away_from_zero(self, amount, expected):
        assert round2(amount) == expected

    def test_negative_halves_round_away_from_zero(self):
        assert round2(-2.675) == -2.68

    def test_result_is_float(self):
        assert isinstance(round2(5), float)

    def test_negative_zero_is_normalized(self):
        assert str(round2(-0.001)) == "0.0"

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
    def test_rejects_non_finite(self, amount):
        with pytest.raises(InvalidAmount):
            round2(amount)

    @pytest.mark.parametrize("amount", ["1.00", None, True])
    def test_rejects_non_numbers(self, amount):
        with pytest.raises(InvalidAmount):
            round2(amount)


class TestGuards:
    def test_non_negative_accepts_zero(self):
        assert non_negative(0) == 0.0

    def test_non_negative_rejects_negative(self):
        with pytest.raises(InvalidAmount, match="subtotal"):
            non_negative(-0.01, "subtotal")

    def test_positive_quantity_rejects_zero(self):
        with pytest.raises(InvalidAmount):
            positive_quantity(0)

    def test_positive_quantity_rejects_fractions(self):
        with pytest.raises(InvalidAmount):
            positive_quantity(1.5)


class TestFormatAmount:
    def test_whole_amounts_drop_the_decimal(self):
        assert format_amount(100.0) == "100"

    def test_fractional_amounts_are_kept(self):
        assert format_amount(49.5) == "49.5"
