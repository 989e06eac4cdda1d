"""Tests for /health, /api/health and /api/health/<service>/reset endpoints."""


class TestHealthCheck:
    def test_liveness(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.get_json() == {'status': 'healthy'}


class TestApiHealth:
    """GET /api/health returns circuit breaker states."""

    def test_returns_200(self, client):
        resp = client.get('/api/health')
        assert resp.status_code == 200

    def test_returns_services_dict(self, client):
        data = client.get('/api/health').get_json()
        # init_breakers runs in create_app
        assert list(data['services']) == ['openai']

    def test_service_has_expected_fields(self, client):
        svc = client.get('/api/health').get_json()['services']['openai']
        assert svc['name'] == 'openai'
        assert svc['state'] == 'closed'
        for key in ('failure_count', 'failure_threshold', 'reset_timeout', 'total_success', 'total_failure'):
            assert key in svc


class TestResetCircuit:
    """POST /api/health/<service>/reset resets a circuit breaker."""

    def test_reset_known_service(self, client, mock_redis):
        resp = client.post('/api/health/openai/reset')
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['ok'] is True
        assert data['service'] == 'openai'
        mock_redis.pipeline.return_value.execute.assert_called()

    def test_reset_unknown_service_404(self, client):
        resp = client.post('/api/health/nonexistent/reset')
        assert resp.status_code == 404
