"""Error taxonomy for the checkout domain.

Domain errors propagate to the caller unmodified. ``TaxProviderUnavailable``
is the one infrastructure error; adapters raise it and the pricing calculator
always absorbs it with the fallback tax rate.
"""


class CheckoutError(Exception):
    """Base class for checkout domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidAmount(CheckoutError):
    """A monetary amount or quantity is negative, non-finite or malformed."""


class EmptyCartError(CheckoutError):
    """Totals were requested for a cart without items."""

    def __init__(self, message: str = "Cart is empty") -> None:
        super().__init__(message)


class CouponValidationError(CheckoutError):
    """A coupon could not be redeemed. ``message`` is safe to show to shoppers."""


class CouponConflict(CheckoutError):
    """A coupon with the same code already exists."""


class InvalidTransition(CheckoutError):
    """A checkout session was asked to leave a terminal state."""


class SessionExpired(CheckoutError):
    """A pending checkout session outlived its expiry time."""


class UnsupportedShippingMethod(CheckoutError):
    """A shipping method is not offered for the destination's region."""


class TaxProviderUnavailable(CheckoutError):
    """The external tax provider timed out, errored or answered nonsense."""


class InvalidAddress(CheckoutError):
    """A delivery address has an unknown country format or a bad pincode."""
