"""Configuration service for external lookups and app settings."""
import os

from app.services.cache import DEFAULT_TTL


def get_data_dir() -> str:
    """Directory holding the JSON cache files.

    Controlled by DATA_DIR env var (default: data/ next to the app package).
    """
    default = os.path.join(os.path.dirname(__file__), '..', '..', 'data')
    return os.environ.get('DATA_DIR', default)


def get_user_agent() -> str:
    """Get the User-Agent string for provider HTTP requests."""
    default_ua = 'HawlCalculator/1.0 (https://github.com/zakat-app)'
    return os.environ.get('HAWL_SYNC_USER_AGENT', default_ua)


def get_hijri_request_delay() -> float:
    """Seconds to wait between queued Hijri date requests.

    Controlled by HIJRI_REQUEST_DELAY env var (default: 1.0).
    """
    return float(os.environ.get('HIJRI_REQUEST_DELAY', '1.0'))


def get_cache_ttl_seconds() -> int:
    """Get the cache TTL for Hijri dates and Nisab values.

    Controlled by CACHE_TTL_SECONDS env var (default: 86400 = 24 hours).
    """
    return int(os.environ.get('CACHE_TTL_SECONDS', str(DEFAULT_TTL)))


def get_nisab_granularity() -> str:
    """'year' resolves one Nisab per year, 'month' one per year-month."""
    value = os.environ.get('NISAB_GRANULARITY', 'year').lower()
    return value if value in ('year', 'month') else 'year'


def get_threshold_max_concurrency() -> int:
    """Maximum concurrent Nisab lookups in one calculation run."""
    return int(os.environ.get('THRESHOLD_MAX_CONCURRENCY', '8'))


def get_provider_timeout() -> float:
    """HTTP timeout for provider requests, in seconds."""
    return float(os.environ.get('PROVIDER_TIMEOUT_SECONDS', '10'))


def get_gold_price_currency() -> str:
    """Currency Nisab values are reported in (default: EUR)."""
    return os.environ.get('GOLDAPI_CURRENCY', 'EUR').upper()


# Provider API key getters
def get_goldapi_key() -> str | None:
    """Get GoldAPI key if configured."""
    return os.environ.get('GOLDAPI_KEY')


def get_provider_keys_status() -> dict:
    """Get status of configured provider API keys."""
    return {
        'goldapi': bool(get_goldapi_key()),
    }
