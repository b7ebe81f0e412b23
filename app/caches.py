"""Process-wide cache management and per-request calculator wiring."""
import os
from typing import Optional

from flask import current_app

from app.services import config as settings
from app.services.calculator import HawlCalculator, build_calculator, create_caches

EXTENSION_KEY = 'hawl_caches'


def get_data_dir() -> str:
    """Get the directory holding the cache files."""
    data_dir = current_app.config.get('DATA_DIR') or settings.get_data_dir()
    os.makedirs(data_dir, exist_ok=True)
    return data_dir


def init_app(app):
    """Create the Hijri and Nisab caches once per application."""
    with app.app_context():
        hijri_cache, nisab_cache = create_caches(
            data_dir=get_data_dir(),
            ttl=app.config['CACHE_TTL_SECONDS'],
        )
    app.extensions[EXTENSION_KEY] = {'hijri': hijri_cache, 'nisab': nisab_cache}


def get_hijri_cache():
    return current_app.extensions[EXTENSION_KEY]['hijri']


def get_nisab_cache():
    return current_app.extensions[EXTENSION_KEY]['nisab']


def clear_caches():
    get_hijri_cache().clear()
    get_nisab_cache().clear()


def get_calculator(api_key: Optional[str] = None, granularity: Optional[str] = None) -> HawlCalculator:
    """Build a calculator for one run, sharing the application caches."""
    config = current_app.config
    return build_calculator(
        get_hijri_cache(),
        get_nisab_cache(),
        api_key=api_key or config.get('GOLDAPI_KEY'),
        granularity=granularity or config['NISAB_GRANULARITY'],
        request_delay=config['HIJRI_REQUEST_DELAY'],
        max_concurrency=config['THRESHOLD_MAX_CONCURRENCY'],
        currency=config['GOLD_PRICE_CURRENCY'],
        timeout=config['PROVIDER_TIMEOUT_SECONDS'],
    )
