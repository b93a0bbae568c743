"""
Tests for the fee schedule API routes
"""
import copy
import pytest
from unittest.mock import patch


def create_schedule(client, payload, headers):
    response = client.post('/api/allocations/fees', json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['fee_schedule']


@pytest.mark.integration
class TestFeeScheduleRoutes:
    """Tests for fee schedule CRUD routes"""

    def test_create_fee_schedule(self, client, org_headers, sample_aum_schedule):
        """Test POST /fees returns 201 with the schedule"""
        response = client.post('/api/allocations/fees', json=sample_aum_schedule, headers=org_headers)
        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        assert body['fee_schedule']['organization_id'] == 'firm-1'
        assert body['fee_schedule']['created_by'] == 'advisor-1'
        assert [t['rate'] for t in body['fee_schedule']['tiers']] == [0.01, 0.005]

    def test_create_invalid_tiers(self, client, org_headers, sample_aum_schedule):
        """Test invalid tiers answer 400 naming the tier"""
        sample_aum_schedule['tiers'][0]['max_value'] = 900000
        response = client.post('/api/allocations/fees', json=sample_aum_schedule, headers=org_headers)
        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert body['tier_index'] == 1
        assert body['field'] == 'tiers[1].min_value'

    def test_create_rejects_rate_beyond_stored_precision(self, client, org_headers, sample_aum_schedule):
        """Test a rate that would be rounded on storage answers 400 naming the tier"""
        sample_aum_schedule['tiers'][1]['rate'] = 0.00123456789
        response = client.post('/api/allocations/fees', json=sample_aum_schedule, headers=org_headers)
        assert response.status_code == 400
        body = response.get_json()
        assert body['tier_index'] == 1
        assert body['field'] == 'tiers[1].rate'

    def test_create_rejects_collapsing_bounds(self, client, org_headers, sample_flat_schedule):
        """Test sub-cent bounds answer 400 instead of storing an empty tier"""
        sample_flat_schedule['tiers'] = [
            {'min_value': 0, 'max_value': 0.004, 'rate': 100},
            {'min_value': 0.004, 'max_value': None, 'rate': 200}
        ]
        response = client.post('/api/allocations/fees', json=sample_flat_schedule, headers=org_headers)
        assert response.status_code == 400
        body = response.get_json()
        assert body['tier_index'] == 0
        assert body['field'] == 'tiers[0].max_value'

    def test_create_rejects_oversized_bound(self, client, org_headers, sample_aum_schedule):
        """Test a bound too large for storage answers 400, not 500"""
        sample_aum_schedule['tiers'][0]['max_value'] = '100000000000000000'
        sample_aum_schedule['tiers'][1]['min_value'] = '100000000000000000'
        response = client.post('/api/allocations/fees', json=sample_aum_schedule, headers=org_headers)
        assert response.status_code == 400
        assert response.get_json()['tier_index'] == 0

    def test_stored_precision_round_trips(self, client, org_headers, sample_aum_schedule):
        """Test tiers at the stored precision are returned exactly"""
        sample_aum_schedule['tiers'] = [
            {'min_value': 0, 'max_value': 1000000.25, 'rate': 0.012345},
            {'min_value': 1000000.25, 'max_value': None, 'rate': 0.000001}
        ]
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        fetched = client.get(f"/api/allocations/fees/{schedule['id']}", headers=org_headers)
        tiers = fetched.get_json()['fee_schedule']['tiers']
        assert [(t['min_value'], t['max_value'], t['rate']) for t in tiers] == [
            (0.0, 1000000.25, 0.012345),
            (1000000.25, None, 0.000001)
        ]

    def test_create_without_body(self, client, org_headers):
        """Test a missing body answers 400"""
        response = client.post('/api/allocations/fees', headers=org_headers)
        assert response.status_code == 400

    def test_get_fee_schedule(self, client, org_headers, sample_aum_schedule):
        """Test GET /fees/<id> returns the stored schedule"""
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        response = client.get(f"/api/allocations/fees/{schedule['id']}", headers=org_headers)
        assert response.status_code == 200
        assert response.get_json()['fee_schedule']['tiers'] == schedule['tiers']

    def test_get_missing_schedule(self, client, org_headers):
        """Test an unknown id answers 404"""
        response = client.get('/api/allocations/fees/does-not-exist', headers=org_headers)
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_default_organization_scope(self, client, org_headers, sample_aum_schedule):
        """Test requests without the header use the default organization"""
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        response = client.get(f"/api/allocations/fees/{schedule['id']}")
        assert response.status_code == 404

        created = client.post('/api/allocations/fees', json=sample_aum_schedule).get_json()
        assert created['fee_schedule']['organization_id'] == 'test-org'

    def test_list_fee_schedules(self, client, org_headers, sample_aum_schedule, sample_flat_schedule):
        """Test GET /fees filters and counts schedules"""
        create_schedule(client, sample_aum_schedule, org_headers)
        create_schedule(client, sample_flat_schedule, org_headers)

        response = client.get('/api/allocations/fees?entity_type=households', headers=org_headers)
        body = response.get_json()
        assert response.status_code == 200
        assert body['total'] == 1
        assert body['fee_schedules'][0]['entity_id'] == 'hh-1001'

        everything = client.get('/api/allocations/fees?limit=1', headers=org_headers).get_json()
        assert everything['total'] == 2
        assert len(everything['fee_schedules']) == 1

    def test_list_invalid_limit(self, client, org_headers):
        """Test a non-integer limit answers 400"""
        response = client.get('/api/allocations/fees?limit=ten', headers=org_headers)
        assert response.status_code == 400
        assert response.get_json()['field'] == 'limit'

    def test_update_fee_schedule(self, client, org_headers, sample_aum_schedule):
        """Test PUT /fees/<id> replaces tiers"""
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        response = client.put(
            f"/api/allocations/fees/{schedule['id']}",
            json={'tiers': [{'min_value': 0, 'rate': 0.009}], 'maximum_fee': 50000},
            headers=org_headers
        )
        assert response.status_code == 200
        updated = response.get_json()['fee_schedule']
        assert len(updated['tiers']) == 1
        assert updated['maximum_fee'] == 50000.0

    def test_delete_fee_schedule(self, client, org_headers, sample_aum_schedule):
        """Test DELETE /fees/<id> answers 204 and removes the schedule"""
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        response = client.delete(f"/api/allocations/fees/{schedule['id']}", headers=org_headers)
        assert response.status_code == 204
        assert response.data == b''
        assert client.get(f"/api/allocations/fees/{schedule['id']}", headers=org_headers).status_code == 404

    def test_fee_schedule_events(self, client, org_headers, sample_aum_schedule):
        """Test GET /fees/<id>/events returns the audit trail after delete"""
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        client.put(f"/api/allocations/fees/{schedule['id']}", json={'name': 'Renamed'}, headers=org_headers)
        client.delete(f"/api/allocations/fees/{schedule['id']}", headers=org_headers)

        response = client.get(f"/api/allocations/fees/{schedule['id']}/events", headers=org_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body['count'] == 3
        assert {e['event_type'] for e in body['events']} == {'CREATED', 'UPDATED', 'DELETED'}

    def test_fee_schedule_events_limit(self, client, org_headers, sample_aum_schedule):
        """Test the events limit is range checked"""
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        response = client.get(f"/api/allocations/fees/{schedule['id']}/events?limit=0", headers=org_headers)
        assert response.status_code == 400
        assert response.get_json()['field'] == 'limit'

    def test_fee_schedule_events_unknown(self, client, org_headers):
        """Test an unknown schedule answers 404"""
        response = client.get('/api/allocations/fees/missing/events', headers=org_headers)
        assert response.status_code == 404

    def test_entity_fee_schedule(self, client, org_headers, sample_aum_schedule):
        """Test the active schedule is returned for a household"""
        first = create_schedule(client, sample_aum_schedule, org_headers)
        second = create_schedule(client, copy.deepcopy(sample_aum_schedule), org_headers)

        response = client.get('/api/allocations/households/hh-1001/fees', headers=org_headers)
        assert response.status_code == 200
        assert response.get_json()['fee_schedule']['id'] == second['id']
        assert first['id'] != second['id']

    def test_entity_without_schedule(self, client, org_headers):
        """Test an entity without a schedule returns null"""
        response = client.get('/api/allocations/persons/p-77/fees', headers=org_headers)
        assert response.status_code == 200
        assert response.get_json()['fee_schedule'] is None

    def test_unknown_entity_path(self, client, org_headers):
        """Test unsupported entity paths are not routed"""
        response = client.get('/api/allocations/custodians/c-1/fees', headers=org_headers)
        assert response.status_code == 404


@pytest.mark.integration
class TestConflictPolicy:
    """Tests for the reject conflict policy over HTTP"""

    @pytest.fixture
    def strict_client(self):
        from app_init import create_app
        app = create_app('testing', {'FEE_SCHEDULE_CONFLICT_POLICY': 'reject'})
        return app.test_client()

    def test_second_active_schedule_conflicts(self, strict_client, org_headers, sample_aum_schedule):
        """Test a second active schedule answers 409"""
        create_schedule(strict_client, sample_aum_schedule, org_headers)
        response = strict_client.post('/api/allocations/fees', json=sample_aum_schedule, headers=org_headers)
        assert response.status_code == 409
        assert response.get_json()['success'] is False

    def test_unknown_policy_refused(self):
        """Test the app refuses to start with an unknown policy"""
        from app_init import create_app
        with pytest.raises(RuntimeError):
            create_app('testing', {'FEE_SCHEDULE_CONFLICT_POLICY': 'merge'})


@pytest.mark.integration
class TestCalculateRoute:
    """Tests for POST /fees/calculate"""

    def test_calculate_two_tier_scenario(self, client, org_headers, sample_aum_schedule):
        """Test 1.5M under the sample schedule charges 12,500"""
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        response = client.post(
            '/api/allocations/fees/calculate',
            json={'fee_schedule_id': schedule['id'], 'billable_amount': 1500000},
            headers=org_headers
        )
        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['total_fee'] == 12500.0
        assert body['effective_rate'] == 83.33
        assert body['formatted']['total_fee'] == '$12,500.00'
        assert [item['fee'] for item in body['breakdown']] == [10000.0, 2500.0]
        assert body['fee_type_label'] == 'Assets Under Management'
        assert body['frequency'] == 'quarterly'
        assert body['period_fee'] == 3125.0
        assert body['formatted']['period_fee'] == '$3,125.00'

    def test_calculate_flat_fee(self, client, org_headers, sample_flat_schedule):
        """Test a flat schedule charges 5000"""
        schedule = create_schedule(client, sample_flat_schedule, org_headers)
        response = client.post(
            '/api/allocations/fees/calculate',
            json={'fee_schedule_id': schedule['id'], 'billable_amount': 12},
            headers=org_headers
        )
        assert response.get_json()['total_fee'] == 5000.0

    def test_calculate_negative_amount(self, client, org_headers, sample_aum_schedule):
        """Test a negative amount answers 400"""
        schedule = create_schedule(client, sample_aum_schedule, org_headers)
        response = client.post(
            '/api/allocations/fees/calculate',
            json={'fee_schedule_id': schedule['id'], 'billable_amount': -5},
            headers=org_headers
        )
        assert response.status_code == 400
        assert response.get_json()['field'] == 'billable_amount'

    def test_calculate_missing_fields(self, client, org_headers):
        """Test missing fields answer 400"""
        response = client.post('/api/allocations/fees/calculate', json={}, headers=org_headers)
        assert response.status_code == 400

    def test_calculate_unknown_schedule(self, client, org_headers):
        """Test an unknown schedule answers 404"""
        response = client.post(
            '/api/allocations/fees/calculate',
            json={'fee_schedule_id': 'missing', 'billable_amount': 100},
            headers=org_headers
        )
        assert response.status_code == 404

    @patch('app.api.fees.FeeScheduleRepository.calculate_fee')
    def test_calculate_unexpected_error(self, mock_calculate, client, org_headers):
        """Test unexpected errors answer a sanitized 500"""
        mock_calculate.side_effect = RuntimeError("connection reset by peer")
        response = client.post(
            '/api/allocations/fees/calculate',
            json={'fee_schedule_id': 'any', 'billable_amount': 100},
            headers=org_headers
        )
        assert response.status_code == 500
        body = response.get_json()
        assert body['success'] is False
        assert 'connection reset' not in body['error']


@pytest.mark.integration
class TestFeeHistoryRoutes:
    """Tests for fee history routes"""

    def test_record_and_list_history(self, client, org_headers, sample_fee_history):
        """Test recorded history is listed newest period first"""
        older = dict(sample_fee_history, billing_period_start='2025-10-01', billing_period_end='2025-12-31')
        assert client.post('/api/allocations/fees/history', json=older, headers=org_headers).status_code == 201
        assert client.post('/api/allocations/fees/history', json=sample_fee_history,
                           headers=org_headers).status_code == 201

        response = client.get('/api/allocations/households/hh-1001/fees/history', headers=org_headers)
        body = response.get_json()
        assert response.status_code == 200
        assert body['count'] == 2
        assert body['fee_history'][0]['billing_period_end'] == '2026-03-31'

    def test_history_limit(self, client, org_headers, sample_fee_history):
        """Test the limit query parameter"""
        client.post('/api/allocations/fees/history', json=sample_fee_history, headers=org_headers)
        client.post('/api/allocations/fees/history', json=sample_fee_history, headers=org_headers)
        response = client.get('/api/allocations/households/hh-1001/fees/history?limit=1', headers=org_headers)
        assert response.get_json()['count'] == 1

    def test_record_invalid_history(self, client, org_headers, sample_fee_history):
        """Test an invalid date answers 400"""
        sample_fee_history['billing_period_start'] = '31/01/2026'
        response = client.post('/api/allocations/fees/history', json=sample_fee_history, headers=org_headers)
        assert response.status_code == 400
        assert response.get_json()['field'] == 'billing_period_start'

    def test_mark_as_billed(self, client, org_headers, sample_fee_history):
        """Test PATCH /fees/history/<id>/billed marks the entry"""
        entry = client.post('/api/allocations/fees/history', json=sample_fee_history,
                            headers=org_headers).get_json()['fee_history']
        response = client.patch(
            f"/api/allocations/fees/history/{entry['id']}/billed",
            json={'invoice_number': 'INV-7'},
            headers=org_headers
        )
        assert response.status_code == 200
        billed = response.get_json()['fee_history']
        assert billed['is_billed'] is True
        assert billed['invoice_number'] == 'INV-7'

    def test_mark_missing_entry(self, client, org_headers):
        """Test billing an unknown entry answers 404"""
        response = client.patch('/api/allocations/fees/history/missing/billed', json={}, headers=org_headers)
        assert response.status_code == 404
