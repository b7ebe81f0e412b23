"""API routes for Hawl calculation, Hijri dates and Nisab values."""
import asyncio

from flask import Blueprint, jsonify, request, current_app

from app.caches import get_calculator
from app.constants import NISAB_GOLD_GRAMS, NISAB_GRANULARITIES, ZAKAT_RATE, HAWL_LUNAR_MONTHS
from app.services.calculator import run_calculation, summarize
from app.services.ledger import LedgerError, parse_gregorian_month, parse_ledger_payload
from app.services.models import is_known_hijri, threshold_key
from app.services.providers import CredentialError, ProviderError
from app.services.providers.registry import get_provider_status

api_bp = Blueprint('api', __name__)

GENERIC_FAILURE = 'Data could not be loaded'


def _provider_error_response(error: ProviderError):
    """Map typed provider errors to HTTP responses."""
    if isinstance(error, CredentialError):
        return jsonify({'error': str(error), 'kind': error.kind.value}), 401
    body = {'error': str(error), 'kind': error.kind.value}
    if error.status_code is not None:
        body['upstream_status'] = error.status_code
    return jsonify(body), 502


@api_bp.route('/hawl/calculate', methods=['POST'])
def calculate_hawl():
    """Run the Hawl calculation over an uploaded ledger.

    Request Body:
        monthlyData: list of {date: MM/YYYY, amount, interest}
        nisabData: optional {YYYY or YYYY-MM: value}
        goldApiKey: optional GoldAPI key
        granularity: optional 'year' (default) or 'month'

    Returns:
        JSON with one row per qualifying entry and zakat totals.
    """
    data = request.get_json(silent=True)
    try:
        payload = parse_ledger_payload(data)
    except LedgerError as e:
        return jsonify({'error': str(e)}), 400

    granularity = str(data.get('granularity') or current_app.config['NISAB_GRANULARITY']).lower()
    if granularity not in NISAB_GRANULARITIES:
        return jsonify({'error': f'Invalid granularity: {granularity}'}), 400

    calculator = get_calculator(api_key=payload.api_key, granularity=granularity)
    try:
        rows = run_calculation(calculator, payload.entries, payload.nisab_table)
    except ProviderError as e:
        current_app.logger.warning(f"Hawl calculation failed: {e}")
        return _provider_error_response(e)
    except LookupError as e:
        current_app.logger.warning(f"Hawl calculation failed: {e}")
        return jsonify({'error': GENERIC_FAILURE, 'detail': str(e)}), 422

    return jsonify({
        'granularity': granularity,
        'rows': [row.to_dict() for row in rows],
        **summarize(rows),
    })


@api_bp.route('/hijri')
def hijri_date():
    """Convert a Gregorian month to its Hijri month.

    Query Parameters:
        date: MM/YYYY
    """
    try:
        month, year = parse_gregorian_month(request.args.get('date', ''))
    except LedgerError as e:
        return jsonify({'error': str(e)}), 400

    calculator = get_calculator()
    result = asyncio.run(calculator.date_resolver.resolve_hijri_date(month, year))
    return jsonify({
        'date': f'{month:02d}/{year}',
        'hijri_date': str(result),
        'resolved': is_known_hijri(result),
    })


@api_bp.route('/nisab/<int:year>')
def nisab(year):
    """Return the Nisab threshold for a year, or a year-month with ?month=M.

    The GoldAPI key may be passed in the X-Gold-Api-Key header.
    """
    month = request.args.get('month', type=int)
    if month is not None and not 1 <= month <= 12:
        return jsonify({'error': f'Invalid month: {month}'}), 400

    calculator = get_calculator(api_key=request.headers.get('X-Gold-Api-Key'))
    try:
        value = asyncio.run(calculator.threshold_resolver.resolve_threshold(year, month))
    except ProviderError as e:
        current_app.logger.warning(f"Nisab lookup failed for {year}: {e}")
        return _provider_error_response(e)

    return jsonify({
        'key': threshold_key(year, month),
        'nisab_threshold': value,
        'gold_grams': NISAB_GOLD_GRAMS,
        'currency': current_app.config['GOLD_PRICE_CURRENCY'],
    })


@api_bp.route('/providers')
def providers():
    """Return provider and credential status plus the fixed domain constants."""
    return jsonify({
        'providers': get_provider_status(current_app.config.get('GOLDAPI_KEY')),
        'constants': {
            'zakat_rate': ZAKAT_RATE,
            'nisab_gold_grams': NISAB_GOLD_GRAMS,
            'hawl_lunar_months': HAWL_LUNAR_MONTHS,
        },
    })
