"""Tests for analyzer routes — /api/analyzers/trigger and per-project status."""
import pytest
from unittest.mock import patch

from app.analyzers.orchestrator import LIFECYCLE


@pytest.fixture
def ready_project(client, ready_record):
    fields = {k: v for k, v in ready_record.to_dict().items() if k != 'id' and v is not None}
    return client.post('/api/projects', json={'fields': fields}).get_json()['id']


class TestListAnalyzers:
    def test_registry_listing(self, client):
        resp = client.get('/api/analyzers')
        assert resp.status_code == 200
        analyzers = resp.get_json()['analyzers']
        assert [a['type'] for a in analyzers] == [
            'web_scraper', 'clarity', 'narrative', 'voice', 'synthesis', 'market', 'model', 'risk',
        ]
        synthesis = analyzers[4]
        assert synthesis['name'] == 'Full Synthesis'
        assert synthesis['dependencies'] == ['narrative']


class TestTrigger:
    def test_auto_evaluation(self, client, ready_project, mock_queue):
        resp = client.post('/api/analyzers/trigger', json={'projectId': ready_project})
        assert resp.status_code == 200
        assert resp.get_json() == {
            'success': True,
            'triggered': ['clarity', 'narrative'],
            'message': 'Started: Idea Clarity, Brand Narrative',
        }

    def test_specific_analyzer(self, client, ready_project, mock_queue):
        resp = client.post('/api/analyzers/trigger', json={'projectId': ready_project, 'analyzerType': 'risk'})
        data = resp.get_json()
        assert data['triggered'] == ['risk']
        assert LIFECYCLE.list_runs(ready_project)[0].trigger_reason == 'manual'

    def test_specific_analyzer_already_running(self, client, ready_project, mock_queue):
        body = {'projectId': ready_project, 'analyzerType': 'risk'}
        client.post('/api/analyzers/trigger', json=body)
        data = client.post('/api/analyzers/trigger', json=body).get_json()
        assert data['success'] is True
        assert data['triggered'] == []
        assert data['message'] == 'Risk Assessment is already running'

    def test_force(self, client, ready_project, mock_queue):
        resp = client.post('/api/analyzers/trigger',
                           json={'projectId': ready_project, 'analyzerType': 'synthesis', 'force': True})
        data = resp.get_json()
        assert data['triggered'] == ['synthesis']
        assert LIFECYCLE.list_runs(ready_project)[0].trigger_reason == 'force'

    def test_force_without_type_is_normal_evaluation(self, client, ready_project, mock_queue):
        resp = client.post('/api/analyzers/trigger', json={'projectId': ready_project, 'force': True})
        assert resp.get_json()['triggered'] == ['clarity', 'narrative']

    def test_missing_project_id(self, client):
        resp = client.post('/api/analyzers/trigger', json={})
        assert resp.status_code == 400
        data = resp.get_json()
        assert data['success'] is False
        assert data['error'] == 'Missing projectId'

    def test_unknown_project(self, client, mock_queue):
        resp = client.post('/api/analyzers/trigger', json={'projectId': 'missing'})
        assert resp.status_code == 404
        assert resp.get_json()['success'] is False

    def test_unknown_analyzer(self, client, ready_project, mock_queue):
        resp = client.post('/api/analyzers/trigger', json={'projectId': ready_project, 'analyzerType': 'astrology'})
        assert resp.status_code == 400
        assert 'astrology' in resp.get_json()['message']

    def test_unexpected_error(self, client, ready_project):
        with patch('app.analyzers.orchestrator.trigger_analyzers', side_effect=RuntimeError('boom')):
            resp = client.post('/api/analyzers/trigger', json={'projectId': ready_project})
        assert resp.status_code == 500
        assert resp.get_json() == {
            'success': False, 'triggered': [],
            'message': 'Failed to trigger analyzers', 'error': 'Failed to trigger analyzers',
        }


class TestProjectAnalyzers:
    def test_overview(self, client, ready_project, mock_queue):
        client.post('/api/analyzers/trigger', json={'projectId': ready_project})
        resp = client.get(f'/api/projects/{ready_project}/analyzers')
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['project_id'] == ready_project

        by_type = {a['type']: a for a in data['analyzers']}
        assert by_type['narrative']['status'] == 'pending'
        assert by_type['narrative']['status_message'] == 'Waiting to start...'
        assert by_type['synthesis']['status_message'] == 'Not started'
        assert by_type['voice']['missing_requirements'] == ['Brand words']

    def test_missing_project(self, client):
        assert client.get('/api/projects/missing/analyzers').status_code == 404
