"""Pytest fixtures for Hawl calculator tests."""
import pytest

from app import create_app
from app.services.cache import TTLCache
from app.services.providers import registry
from app.services.time_provider import TimeProvider
from tests.fakes.fake_providers import FakeGoldPriceProvider, FakeHijriProvider


# Fixed instant for deterministic cache expiry tests (2026-01-15T00:00:00Z)
FROZEN_NOW = 1_768_435_200.0


@pytest.fixture
def app(tmp_path):
    """Create application for testing.

    Caches are written under a temporary directory and the Hijri request
    delay is disabled so tests do not sleep.
    """
    app = create_app({
        'TESTING': True,
        'DATA_DIR': str(tmp_path),
        'GOLDAPI_KEY': None,
        'HIJRI_REQUEST_DELAY': 0,
        'NISAB_GRANULARITY': 'year',
        'GOLD_PRICE_CURRENCY': 'EUR',
    })
    yield app


@pytest.fixture
def client(app):
    """Create test client."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def fake_hijri(monkeypatch):
    """Route every Hijri lookup through a FakeHijriProvider."""
    provider = FakeHijriProvider()
    monkeypatch.setattr(registry, 'get_hijri_provider', lambda: provider)
    return provider


@pytest.fixture
def fake_gold(monkeypatch):
    """Route every gold price lookup through a FakeGoldPriceProvider.

    The provider counts as configured only when a key reaches the
    registry, mirroring the real GoldAPI provider.
    """
    provider = FakeGoldPriceProvider()

    def get_gold_price_provider(api_key=None, currency=None):
        provider.configured = bool(api_key)
        provider.last_api_key = api_key
        return provider

    monkeypatch.setattr(registry, 'get_gold_price_provider', get_gold_price_provider)
    return provider


@pytest.fixture
def frozen_time():
    """Freeze the default clock at FROZEN_NOW.

    Yields the TimeProvider so tests can advance it. The default is reset
    after the test completes.
    """
    provider = TimeProvider(frozen_time=FROZEN_NOW)
    TimeProvider.set_default(provider)
    yield provider
    TimeProvider.reset_default()


@pytest.fixture
def hijri_cache(frozen_time):
    return TTLCache('hijri', time_provider=frozen_time)


@pytest.fixture
def nisab_cache(frozen_time):
    return TTLCache('nisab', time_provider=frozen_time)
