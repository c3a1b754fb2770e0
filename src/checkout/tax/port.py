"""Tax provider port (abstract interface).

The engine never authors tax rules; it asks an external provider and falls
back to a flat rate when the provider cannot answer. Adapters signal any
failure by raising ``TaxProviderUnavailable``.
"""

from abc import ABC, abstractmethod


class TaxProvider(ABC):
    """Abstract tax provider interface."""

    @abstractmethod
    def calculate_tax(self, subtotal: float, address: dict) -> float:
        """Return the tax owed on ``subtotal`` for a delivery to ``address``.

        Raises:
            TaxProviderUnavailable: on timeout, transport error, non-2xx
                status or an unusable response body.
        """
        ...
