import pytest
from checkout.config import reset_settings
from checkout.tax import reset_tax_provider
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield
        for provider in current_domain.providers.values():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _engine_settings(monkeypatch):
    """Each test starts without a tax service and with default settings."""
    for name in (
        "CHECKOUT_TAX_SERVICE_URL",
        "CHECKOUT_TAX_TIMEOUT_SECONDS",
        "CHECKOUT_DEFAULT_TAX_RATE",
        "CHECKOUT_SESSION_TTL_MINUTES",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    reset_tax_provider()
    yield
    reset_settings()
    reset_tax_provider()
