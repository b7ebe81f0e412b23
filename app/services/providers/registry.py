"""Provider registry and selection logic."""
from typing import Optional

from app.services.config import get_goldapi_key
from . import HijriDateProvider, GoldPriceProvider
from .hijri_providers import AladhanProvider
from .metal_providers import GoldAPIProvider


def get_hijri_provider() -> HijriDateProvider:
    """Get the Hijri date source. Aladhan needs no key."""
    return AladhanProvider()


def get_gold_price_provider(api_key: Optional[str] = None, currency: Optional[str] = None) -> GoldPriceProvider:
    """Get the gold price source.

    An explicit key (for example one supplied with an uploaded ledger)
    wins over GOLDAPI_KEY from the environment.
    """
    return GoldAPIProvider(api_key=api_key or get_goldapi_key(), currency=currency)


def get_provider_status(api_key: Optional[str] = None) -> dict:
    """Return status of all configured providers."""
    hijri = get_hijri_provider()
    gold = get_gold_price_provider(api_key)

    return {
        'hijri': {
            'provider': hijri.name,
            'requires_key': False,
            'configured': True,
        },
        'gold': {
            'provider': gold.name,
            'requires_key': gold.requires_api_key,
            'configured': gold.is_configured(),
        },
    }
