"""Flask application factory for the Hawl calculator."""
import logging
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from app.services import config as settings


logger = logging.getLogger('app')


def create_app(config: dict | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Trust X-Forwarded-For from reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # Default configuration
    app.config.update(
        SECRET_KEY='dev-secret-key-change-in-production',
        JSON_SORT_KEYS=False,
        DATA_DIR=settings.get_data_dir(),
        GOLDAPI_KEY=settings.get_goldapi_key(),
        GOLD_PRICE_CURRENCY=settings.get_gold_price_currency(),
        HIJRI_REQUEST_DELAY=settings.get_hijri_request_delay(),
        CACHE_TTL_SECONDS=settings.get_cache_ttl_seconds(),
        NISAB_GRANULARITY=settings.get_nisab_granularity(),
        THRESHOLD_MAX_CONCURRENCY=settings.get_threshold_max_concurrency(),
        PROVIDER_TIMEOUT_SECONDS=settings.get_provider_timeout(),
    )

    # Override with provided config
    if config:
        app.config.update(config)

    # Initialize caches
    from app import caches
    caches.init_app(app)

    # Register CLI commands
    from app import cli
    cli.register_cli(app)

    # Register blueprints
    from app.routes.health import health_bp
    from app.routes.api import api_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp, url_prefix='/api/v1')

    logger.info(f"Hawl calculator ready (data dir: {app.config['DATA_DIR']})")
    return app
