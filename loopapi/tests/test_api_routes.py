"""
Tests for the HTTP routes.

Validates:
1. Health endpoint
2. Plant impedance, transfer function, sweep and margins
3. Compensator design, verification and loop sweep
4. Error mapping: missing plant elements → 422, bad ranges / arity → 400
5. Non-finite numbers are serialized as null
"""

import math
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from fastapi.testclient import TestClient

from loopapi.main import app


REFERENCE_COMPONENTS = [
    {'kind': 'voltage_source', 'value': 12.0, 'unit': 'V', 'name': 'Vin'},
    {'kind': 'resistor', 'value': 1.0, 'unit': 'Ω', 'name': 'R1'},
    {'kind': 'inductor', 'value': 1.0, 'unit': 'mH', 'name': 'L1'},
    {'kind': 'capacitor', 'value': 1.0, 'unit': 'µF', 'name': 'C1'},
]

NO_INDUCTOR = [c for c in REFERENCE_COMPONENTS if c['kind'] != 'inductor']


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


class TestHealth:

    def test_health(self, client):
        resp = client.get('/api/health')
        assert resp.status_code == 200
        assert resp.json()['status'] == 'healthy'


class TestPlantRoutes:
    """Test plant analysis endpoints."""

    def test_impedance(self, client):
        resp = client.post('/api/plant/impedance', json={
            'components': REFERENCE_COMPONENTS,
            'frequency': 1000.0,
        })
        assert resp.status_code == 200

        by_name = {z['name']: z for z in resp.json()['impedances']}
        assert by_name['R1']['impedance']['real'] == pytest.approx(1.0)
        assert by_name['L1']['impedance']['imag'] == pytest.approx(2 * math.pi * 1000 * 1e-3)
        assert by_name['L1']['display'] == '1mH'
        assert by_name['Vin']['impedance']['magnitude'] == 0.0
        # Zero magnitude: -inf dB travels as null
        assert by_name['Vin']['impedance']['gain_db'] is None

    def test_transfer_function(self, client):
        resp = client.post('/api/plant/transfer-function', json={
            'components': REFERENCE_COMPONENTS,
            'frequency': 0.01,
        })
        data = resp.json()

        assert resp.status_code == 200
        assert data['plant_complete'] is True
        assert data['response']['magnitude'] == pytest.approx(1.0, rel=1e-6)

    def test_transfer_function_degenerate(self, client):
        resp = client.post('/api/plant/transfer-function', json={
            'components': NO_INDUCTOR,
            'frequency': 1000.0,
        })
        data = resp.json()

        assert resp.status_code == 200
        assert data['plant_complete'] is False
        assert data['missing'] == ['inductor']
        assert data['response']['magnitude'] == 0.0
        assert data['response']['gain_db'] is None

    def test_sweep(self, client):
        resp = client.post('/api/plant/sweep', json={
            'components': REFERENCE_COMPONENTS,
            'freq_start': 10,
            'freq_end': 1e6,
            'num_points': 50,
        })
        data = resp.json()

        assert resp.status_code == 200
        assert data['num_points'] == 50
        assert data['frequency'][0] == pytest.approx(10.0)
        assert data['frequency'][-1] == pytest.approx(1e6)
        assert len(data['magnitude_db']) == len(data['phase_deg']) == 50

    def test_sweep_invalid_range(self, client):
        resp = client.post('/api/plant/sweep', json={
            'components': REFERENCE_COMPONENTS,
            'freq_start': 1e4,
            'freq_end': 10,
            'num_points': 50,
        })
        assert resp.status_code == 400

    def test_margins(self, client):
        resp = client.post('/api/plant/margins', json={'components': REFERENCE_COMPONENTS})
        data = resp.json()

        assert resp.status_code == 200
        assert data['margins']['crossover_hz'] > 5000.0
        assert data['margins']['gain_margin_db'] > 40.0
        assert data['second_order']['resonant_frequency_hz'] == pytest.approx(5032.92, rel=1e-5)

    def test_margins_degenerate_plant(self, client):
        """A plant without an inductor is rejected, not reported as 0 Hz."""
        resp = client.post('/api/plant/margins', json={'components': NO_INDUCTOR})
        assert resp.status_code == 422
        assert 'inductor' in resp.json()['detail']

    def test_empty_component_list(self, client):
        resp = client.post('/api/plant/margins', json={'components': []})
        assert resp.status_code == 422


class TestCompensatorRoutes:
    """Test compensator design endpoints."""

    def test_design_type2(self, client):
        resp = client.post('/api/compensator/design', json={
            'components': REFERENCE_COMPONENTS,
            'compensator_type': 'type2',
            'target_crossover_hz': 10000.0,
            'target_phase_margin_deg': 45.0,
        })
        data = resp.json()

        assert resp.status_code == 200
        assert set(data['parameters']) == {'kp', 'ki'}
        assert data['design']['zero_hz'] == pytest.approx(1000.0)
        assert data['verification']['crossover_hz'] == pytest.approx(10000.0, rel=0.01)
        margins = data['verification']
        assert margins['folded_phase_margin_deg'] == pytest.approx(margins['phase_margin_deg'] - 360.0)

    def test_design_type3(self, client):
        resp = client.post('/api/compensator/design', json={
            'components': REFERENCE_COMPONENTS,
            'compensator_type': 'type3',
            'target_crossover_hz': 10000.0,
        })
        data = resp.json()

        assert resp.status_code == 200
        assert set(data['parameters']) == {'kp', 'ki', 'kd'}
        assert data['design']['pole2_hz'] == pytest.approx(100000.0)

    def test_design_type1_rejected(self, client):
        resp = client.post('/api/compensator/design', json={
            'components': REFERENCE_COMPONENTS,
            'compensator_type': 'type1',
            'target_crossover_hz': 10000.0,
        })
        assert resp.status_code == 400

    def test_design_degenerate_plant(self, client):
        resp = client.post('/api/compensator/design', json={
            'components': NO_INDUCTOR,
            'target_crossover_hz': 10000.0,
        })
        assert resp.status_code == 422

    def test_design_zero_gain_plant(self, client):
        zero_r = [dict(c, value=0.0) if c['kind'] == 'resistor' else c for c in REFERENCE_COMPONENTS]
        resp = client.post('/api/compensator/design', json={
            'components': zero_r,
            'target_crossover_hz': 10000.0,
        })
        assert resp.status_code == 400
        assert 'dB' in resp.json()['detail']

    def test_verify(self, client):
        resp = client.post('/api/compensator/verify', json={
            'components': REFERENCE_COMPONENTS,
            'compensator_type': 'type2',
            'parameters': [2.0, 500.0],
        })
        data = resp.json()

        assert resp.status_code == 200
        assert data['margins']['crossover_hz'] > 0
        assert data['closed_loop_bandwidth_hz'] > 0

    def test_verify_arity_mismatch(self, client):
        resp = client.post('/api/compensator/verify', json={
            'components': REFERENCE_COMPONENTS,
            'compensator_type': 'type2',
            'parameters': [1.0, 2.0, 3.0],
        })
        assert resp.status_code == 400
        assert 'type2' in resp.json()['detail']

    def test_verify_custom_search_bounds(self, client):
        resp = client.post('/api/compensator/verify', json={
            'components': REFERENCE_COMPONENTS,
            'compensator_type': 'type2',
            'parameters': [2.0, 500.0],
            'search_start_hz': 100.0,
            'search_end_hz': 1e5,
        })
        data = resp.json()

        assert resp.status_code == 200
        assert 100.0 <= data['margins']['crossover_hz'] <= 1e5

    def test_loop_sweep_closed(self, client):
        resp = client.post('/api/compensator/sweep', json={
            'components': REFERENCE_COMPONENTS,
            'compensator_type': 'type2',
            'parameters': [2.0, 5000.0],
            'freq_start': 10,
            'freq_end': 1e5,
            'num_points': 9,
            'closed': True,
        })
        data = resp.json()

        assert resp.status_code == 200
        assert data['num_points'] == 9
        assert data['magnitude_db'][0] == pytest.approx(0.0, abs=0.5)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
