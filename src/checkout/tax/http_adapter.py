"""HTTP tax provider adapter.

Contract: ``POST {base_url}/calculate`` with ``{"subtotal", "address"}`` and
a ``{"taxAmount"}`` reply. Every call carries a bounded timeout.
"""

import math

import requests
import structlog

from checkout.exceptions import TaxProviderUnavailable
from checkout.tax.port import TaxProvider

logger = structlog.get_logger(__name__)


class HttpTaxProvider(TaxProvider):
    def __init__(self, base_url: str, timeout: float, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def calculate_tax(self, subtotal: float, address: dict) -> float:
        url = f"{self.base_url}/calculate"
        try:
            response = self.session.post(
                url,
                json={"subtotal": subtotal, "address": address},
                timeout=self.timeout,
            )
            response.raise_for_status()
            tax_amount = float(response.json()["taxAmount"])
        except requests.RequestException as exc:
            raise TaxProviderUnavailable(f"Tax provider request failed: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise TaxProviderUnavailable(f"Tax provider returned an unusable body: {exc}") from exc

        if not math.isfinite(tax_amount) or tax_amount < 0:
            raise TaxProviderUnavailable(f"Tax provider returned an invalid amount: {tax_amount}")

        logger.debug("Tax calculated by provider", url=url, subtotal=subtotal, tax_amount=tax_amount)
        return tax_amount
