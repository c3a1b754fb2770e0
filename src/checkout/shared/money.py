"""Currency-safe rounding and amount guards.

Every derived amount (subtotal, tax, shipping, discount, total) passes through
``round2`` so that float error never accumulates past a cent.
"""

import math
from decimal import ROUND_HALF_UP, Decimal

from checkout.exceptions import InvalidAmount

CENT = Decimal("0.01")


def round2(amount: float) -> float:
    """Round to 2 decimal places, halves away from zero.

    The value is quantized from its shortest decimal representation, so
    ``round2(2.675) == 2.68`` even though the binary float is slightly below.
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise InvalidAmount(f"Amount must be a number, got {amount!r}")
    if not math.isfinite(amount):
        raise InvalidAmount(f"Amount must be finite, got {amount!r}")

    rounded = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    return float(rounded) + 0.0  # normalizes -0.0


def non_negative(amount: float, field: str = "amount") -> float:
    """Return ``amount`` as a float, rejecting negative or non-finite values."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise InvalidAmount(f"{field} must be a number, got {amount!r}")
    if not math.isfinite(amount) or amount < 0:
        raise InvalidAmount(f"{field} must be a non-negative amount, got {amount!r}")
    return float(amount)


def positive_quantity(quantity: int, field: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidAmount(f"{field} must be an integer, got {quantity!r}")
    if quantity <= 0:
        raise InvalidAmount(f"{field} must be greater than zero, got {quantity!r}")
    return quantity


def format_amount(amount: float) -> str:
    """Render an amount for shopper-facing messages: ``100.0`` → ``"100"``."""
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)
