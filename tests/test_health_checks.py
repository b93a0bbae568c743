"""
Tests for health check endpoints
"""
import pytest
import time
from unittest.mock import patch
from health_checks import (
    get_system_metrics,
    get_uptime,
    check_database,
)


@pytest.mark.unit
class TestSystemMetrics:
    """Tests for system metrics collection"""

    def test_get_system_metrics_returns_dict(self):
        """Test that get_system_metrics returns a dictionary"""
        metrics = get_system_metrics()
        assert isinstance(metrics, dict)

    def test_system_metrics_has_memory_info(self):
        """Test that system metrics includes memory info"""
        metrics = get_system_metrics()
        if metrics:
            assert 'memory_mb' in metrics
            assert 'memory_percent' in metrics

    @patch('health_checks.psutil.Process')
    def test_system_metrics_handles_errors(self, mock_process):
        """Test that get_system_metrics handles errors gracefully"""
        mock_process.side_effect = Exception("Test error")
        metrics = get_system_metrics()
        assert metrics == {}


@pytest.mark.unit
class TestUptime:
    """Tests for uptime calculation"""

    def test_uptime_has_required_fields(self):
        """Test that uptime includes all required fields"""
        uptime = get_uptime()
        assert 'uptime_seconds' in uptime
        assert 'uptime_minutes' in uptime
        assert 'uptime_hours' in uptime
        assert 'started_at' in uptime

    def test_uptime_increases_over_time(self):
        """Test that uptime increases over time"""
        uptime1 = get_uptime()
        time.sleep(0.05)
        uptime2 = get_uptime()
        assert uptime2['uptime_seconds'] > uptime1['uptime_seconds']


@pytest.mark.unit
class TestDatabaseCheck:
    """Tests for the database health check"""

    @patch('health_checks.is_db_configured', return_value=False)
    def test_unconfigured_database(self, mock_configured):
        """Test an unconfigured database is unhealthy"""
        status = check_database()
        assert status == {'configured': False, 'connected': False, 'healthy': False}

    @patch('health_checks.check_db_connection', side_effect=RuntimeError("Cannot connect to database"))
    @patch('health_checks.is_db_configured', return_value=True)
    def test_unreachable_database(self, mock_configured, mock_check):
        """Test a failing connection is reported with its error"""
        status = check_database()
        assert status['healthy'] is False
        assert 'Cannot connect' in status['error']

    @patch('health_checks.check_db_connection', return_value=True)
    @patch('health_checks.is_db_configured', return_value=True)
    def test_reachable_database(self, mock_configured, mock_check):
        """Test a working connection is healthy"""
        assert check_database()['healthy'] is True


@pytest.mark.integration
class TestHealthCheckEndpoints:
    """Integration tests for health check endpoints"""

    def test_health_endpoint_returns_200(self, client):
        """Test that /api/health returns 200"""
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['service'] == 'advisory-billing'

    def test_ping_endpoint_returns_pong(self, client):
        """Test that /api/ping returns pong"""
        response = client.get('/api/ping')
        assert response.status_code == 200
        assert response.data == b'pong'

    def test_ready_endpoint_with_database(self, client):
        """Test that /api/ready is ready when the database answers"""
        response = client.get('/api/ready')
        assert response.status_code == 200
        assert response.get_json()['checks']['database']['connected'] is True

    @patch('health_checks.check_db_connection', side_effect=RuntimeError("down"))
    def test_ready_endpoint_without_database(self, mock_check, client):
        """Test that /api/ready answers 503 when the database is down"""
        response = client.get('/api/ready')
        assert response.status_code == 503
        assert response.get_json()['status'] == 'not_ready'

    def test_metrics_endpoint(self, client):
        """Test that /api/metrics reports uptime and billing settings"""
        response = client.get('/api/metrics')
        assert response.status_code == 200
        data = response.get_json()
        assert 'uptime' in data
        assert data['billing']['conflict_policy'] == 'replace'


@pytest.mark.integration
class TestSecurityMiddleware:
    """Tests for security headers and JSON error handlers"""

    def test_security_headers(self, client):
        """Test responses carry security headers"""
        response = client.get('/api/health')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'

    def test_unknown_route_is_json(self, client):
        """Test unknown routes answer a JSON 404"""
        response = client.get('/api/nowhere')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_method_not_allowed_is_json(self, client):
        """Test wrong methods answer a JSON 405"""
        response = client.patch('/api/allocations/fees')
        assert response.status_code == 405
        assert response.get_json()['error'] == 'Method Not Allowed'

    def test_cors_preflight(self, client):
        """Test CORS preflight allows the organization header"""
        response = client.options(
            '/api/allocations/fees',
            headers={
                'Origin': 'http://localhost:3000',
                'Access-Control-Request-Method': 'POST',
                'Access-Control-Request-Headers': 'X-Organization-Id'
            }
        )
        assert response.status_code == 200
        assert 'access-control-allow-origin' in {k.lower() for k in response.headers.keys()}
