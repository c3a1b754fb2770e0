"""Tax provider factory.

``get_tax_provider()`` returns the configured provider, or ``None`` when no
tax service URL is set (the calculator then applies the flat default rate).
Tests install a ``FakeTaxProvider`` with ``set_tax_provider()``.
"""

from checkout.config import get_settings
from checkout.tax.http_adapter import HttpTaxProvider
from checkout.tax.port import TaxProvider

_current_provider: TaxProvider | None = None
_overridden = False


def get_tax_provider() -> TaxProvider | None:
    global _current_provider
    if _overridden:
        return _current_provider
    if _current_provider is None:
        settings = get_settings()
        if settings.tax_service_url:
            _current_provider = HttpTaxProvider(settings.tax_service_url, settings.tax_timeout_seconds)
    return _current_provider


def set_tax_provider(provider: TaxProvider | None) -> None:
    """Override the active provider; ``None`` disables the provider entirely."""
    global _current_provider, _overridden
    _current_provider = provider
    _overridden = True


def reset_tax_provider() -> None:
    """Return to the provider derived from settings."""
    global _current_provider, _overridden
    _current_provider = None
    _overridden = False
