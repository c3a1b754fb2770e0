"""Configurable fake tax provider for development and testing.

Answers with ``subtotal × rate`` or, when configured to fail, raises
``TaxProviderUnavailable`` the way the HTTP adapter does on a timeout.
"""

from checkout.exceptions import TaxProviderUnavailable
from checkout.tax.port import TaxProvider


class FakeTaxProvider(TaxProvider):
    def __init__(self, rate: float = 0.08) -> None:
        self.rate = rate
        self.should_succeed: bool = True
        self.failure_reason: str = "Tax service timed out"
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        rate: float | None = None,
        failure_reason: str = "Tax service timed out",
    ) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        if rate is not None:
            self.rate = rate

    def calculate_tax(self, subtotal: float, address: dict) -> float:
        self.calls.append({"subtotal": subtotal, "address": address})

        if not self.should_succeed:
            raise TaxProviderUnavailable(self.failure_reason)
        return subtotal * self.rate
