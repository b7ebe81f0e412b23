"""Health check endpoint."""
from flask import Blueprint, jsonify

from app.services.config import get_provider_keys_status

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz')
def healthz():
    """Return health status and which provider keys are configured."""
    return jsonify({'status': 'ok', 'keys': get_provider_keys_status()})
