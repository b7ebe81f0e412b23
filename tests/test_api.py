"""Tests for the Hawl, Hijri, Nisab and provider API endpoints."""
import pytest

from app.services.providers import AuthenticationError, NetworkError, UpstreamError


def monthly_data(start_year, count, amount=10000, interest=None):
    rows = []
    for i in range(count):
        year, month = start_year + i // 12, i % 12 + 1
        rows.append({'date': f'{month:02d}/{year}', 'amount': amount, 'interest': interest})
    return rows


@pytest.fixture
def providers(fake_hijri, fake_gold):
    return fake_hijri, fake_gold


class TestCalculateHawl:
    """Tests for POST /api/v1/hawl/calculate."""

    def test_single_entry_hawl_begins(self, client, providers):
        """A single entry above a supplied nisab begins a hawl."""
        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': [{'date': '01/2023', 'amount': 6000, 'interest': None}],
            'nisabData': {'2023': 5000},
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['granularity'] == 'year'
        assert data['count'] == 1
        row = data['rows'][0]
        assert row['date'] == '01/2023'
        assert row['hijri_date'] == '01/1444'
        assert row['note'] == 'hawl begins'
        assert row['row_class'] == 'hawl-start'
        assert row['zakat_due'] is None

    def test_twelve_months_zakat_due(self, client, providers):
        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': monthly_data(2023, 12),
            'nisabData': {'2023': 5000},
        })

        data = response.get_json()
        assert response.status_code == 200
        assert data['rows'][-1]['row_class'] == 'zakat-due'
        assert data['rows'][-1]['zakat_due'] == 250.0
        assert data['zakat_events'] == 1
        assert data['zakat_total'] == 250.0

    def test_missing_credential_returns_401(self, client, providers):
        """An uncached year without an API key is a credential error."""
        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': [{'date': '01/2030', 'amount': 6000}],
        })

        assert response.status_code == 401
        data = response.get_json()
        assert data['error'].startswith('API key error: ')
        assert data['kind'] == 'authorization'

    def test_ledger_key_used_for_gold_prices(self, client, providers):
        _, gold = providers
        gold.prices = {'2023': 60.0}

        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': [{'date': '01/2023', 'amount': 6000}],
            'goldApiKey': 'ledger-key',
        })

        assert response.status_code == 200
        assert gold.last_api_key == 'ledger-key'
        assert gold.calls == [(2023, None)]
        assert response.get_json()['rows'][0]['nisab_threshold'] == 5100.0

    def test_resolved_nisab_is_cached_between_requests(self, client, providers):
        _, gold = providers
        payload = {'monthlyData': [{'date': '01/2023', 'amount': 6000}], 'goldApiKey': 'k'}

        client.post('/api/v1/hawl/calculate', json=payload)
        client.post('/api/v1/hawl/calculate', json=payload)

        assert gold.calls == [(2023, None)]

    def test_monthly_granularity(self, client, providers):
        _, gold = providers

        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': monthly_data(2023, 2),
            'goldApiKey': 'k',
            'granularity': 'month',
        })

        assert response.status_code == 200
        assert response.get_json()['granularity'] == 'month'
        assert sorted(gold.calls) == [(2023, 1), (2023, 2)]

    def test_invalid_granularity(self, client, providers):
        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': monthly_data(2023, 1),
            'granularity': 'weekly',
        })
        assert response.status_code == 400

    @pytest.mark.parametrize('body', [
        {},
        {'monthlyData': []},
        {'monthlyData': [{'date': '2023-01', 'amount': 1}]},
        {'monthlyData': [{'date': '01/2023', 'amount': -5}]},
        {'monthlyData': [{'date': '01/2023', 'amount': 1}], 'nisabData': {'bad': 1}},
    ])
    def test_invalid_ledger_returns_400(self, client, providers, body):
        response = client.post('/api/v1/hawl/calculate', json=body)
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_non_json_body_returns_400(self, client, providers):
        response = client.post('/api/v1/hawl/calculate', data='not json', content_type='text/plain')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid JSON format'

    def test_upstream_failure_returns_502(self, client, providers):
        _, gold = providers
        gold.errors = [UpstreamError('API request failed: HTTP error 500', status_code=500)]

        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': [{'date': '01/2023', 'amount': 6000}],
            'goldApiKey': 'k',
        })

        assert response.status_code == 502
        data = response.get_json()
        assert data['kind'] == 'upstream'
        assert data['upstream_status'] == 500

    def test_rejected_key_returns_401(self, client, providers):
        _, gold = providers
        gold.errors = [AuthenticationError('Authentication failed: Invalid API key', status_code=401)]

        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': [{'date': '01/2023', 'amount': 6000}],
            'goldApiKey': 'wrong',
        })

        assert response.status_code == 401
        assert response.get_json()['error'] == 'API key error: Authentication failed: Invalid API key'


class TestHijriEndpoint:
    """Tests for GET /api/v1/hijri."""

    def test_converts_month(self, client, providers):
        response = client.get('/api/v1/hijri?date=03/2024')

        assert response.status_code == 200
        assert response.get_json() == {'date': '03/2024', 'hijri_date': '03/1445', 'resolved': True}

    def test_failure_reported_as_error_sentinel(self, client, providers):
        hijri, _ = providers
        hijri.errors = {(3, 2024): NetworkError('down')}

        response = client.get('/api/v1/hijri?date=03/2024')

        assert response.status_code == 200
        assert response.get_json() == {'date': '03/2024', 'hijri_date': 'Error', 'resolved': False}

    @pytest.mark.parametrize('query', ['', '?date=2024-03', '?date=13/2024'])
    def test_invalid_date(self, client, providers, query):
        response = client.get(f'/api/v1/hijri{query}')
        assert response.status_code == 400


class TestNisabEndpoint:
    """Tests for GET /api/v1/nisab/<year>."""

    def test_key_from_header(self, client, providers):
        _, gold = providers
        gold.prices = {'2024': 70.0}

        response = client.get('/api/v1/nisab/2024', headers={'X-Gold-Api-Key': 'header-key'})

        assert response.status_code == 200
        assert response.get_json() == {
            'key': '2024',
            'nisab_threshold': 5950.0,
            'gold_grams': 85,
            'currency': 'EUR',
        }
        assert gold.last_api_key == 'header-key'

    def test_monthly_value(self, client, providers):
        response = client.get('/api/v1/nisab/2024?month=3', headers={'X-Gold-Api-Key': 'k'})

        assert response.status_code == 200
        assert response.get_json()['key'] == '2024-03'

    def test_invalid_month(self, client, providers):
        response = client.get('/api/v1/nisab/2024?month=13')
        assert response.status_code == 400

    def test_missing_key_returns_401(self, client, providers):
        response = client.get('/api/v1/nisab/2030')
        assert response.status_code == 401

    def test_request_nisab_data_is_not_persisted(self, client, providers):
        """nisabData applies to its own calculation only."""
        response = client.post('/api/v1/hawl/calculate', json={
            'monthlyData': [{'date': '01/2023', 'amount': 6000}],
            'nisabData': {'2023': 5000},
        })
        assert response.status_code == 200

        response = client.get('/api/v1/nisab/2023')

        assert response.status_code == 401


def test_providers_endpoint(client, providers):
    response = client.get('/api/v1/providers')

    assert response.status_code == 200
    data = response.get_json()
    assert data['providers']['hijri'] == {'provider': 'fake-hijri', 'requires_key': False, 'configured': True}
    assert data['providers']['gold']['configured'] is False
    assert data['constants'] == {'zakat_rate': 0.025, 'nisab_gold_grams': 85, 'hawl_lunar_months': 12}
