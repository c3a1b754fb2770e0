"""Engine settings for the checkout domain.

Framework configuration (databases, brokers, event store) lives in
``domain.toml`` next to ``domain.py``. The values here are the engine's own
knobs, read from the environment once and cached.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_TAX_RATE = 0.10
DEFAULT_TAX_TIMEOUT_SECONDS = 2.0
DEFAULT_SESSION_TTL_MINUTES = 30


@dataclass(frozen=True)
class CheckoutSettings:
    tax_service_url: str | None = None
    tax_timeout_seconds: float = DEFAULT_TAX_TIMEOUT_SECONDS
    default_tax_rate: float = DEFAULT_TAX_RATE
    session_ttl_minutes: int = DEFAULT_SESSION_TTL_MINUTES

    def __post_init__(self):
        if self.tax_timeout_seconds <= 0:
            raise ValueError("CHECKOUT_TAX_TIMEOUT_SECONDS must be positive")
        if not 0 <= self.default_tax_rate < 1:
            raise ValueError("CHECKOUT_DEFAULT_TAX_RATE must be a fraction between 0 and 1")
        if self.session_ttl_minutes <= 0:
            raise ValueError("CHECKOUT_SESSION_TTL_MINUTES must be positive")

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        tax_service_url = (os.getenv("CHECKOUT_TAX_SERVICE_URL") or "").strip().rstrip("/")
        return cls(
            tax_service_url=tax_service_url or None,
            tax_timeout_seconds=float(os.getenv("CHECKOUT_TAX_TIMEOUT_SECONDS", DEFAULT_TAX_TIMEOUT_SECONDS)),
            default_tax_rate=float(os.getenv("CHECKOUT_DEFAULT_TAX_RATE", DEFAULT_TAX_RATE)),
            session_ttl_minutes=int(os.getenv("CHECKOUT_SESSION_TTL_MINUTES", DEFAULT_SESSION_TTL_MINUTES)),
        )


@lru_cache(maxsize=1)
def get_settings() -> CheckoutSettings:
    return CheckoutSettings.from_env()


def reset_settings() -> None:
    """Drop the cached settings so the next ``get_settings()`` re-reads the environment."""
    get_settings.cache_clear()
