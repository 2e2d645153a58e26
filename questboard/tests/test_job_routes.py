"""Tests for the job administration endpoints."""

from unittest.mock import patch

from services.errors import StoreUnavailableError


class TestJobRoutes:

    def test_list_jobs(self, client, admin_headers):
        response = client.get('/api/jobs', headers=admin_headers)

        assert response.status_code == 200
        assert len(response.get_json()['jobs']) == 5

    def test_jobs_are_admin_only(self, client, editor_headers, player_headers):
        assert client.get('/api/jobs', headers=editor_headers).status_code == 403
        assert client.post('/api/jobs/health-check/trigger', headers=player_headers).status_code == 403

    def test_get_job(self, client, admin_headers):
        response = client.get('/api/jobs/health-check', headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()['job']['name'] == 'health-check'

    def test_get_unknown_job(self, client, admin_headers):
        assert client.get('/api/jobs/unknown-job', headers=admin_headers).status_code == 404

    def test_trigger_job(self, client, admin_headers):
        response = client.post('/api/jobs/health-check/trigger', headers=admin_headers)

        assert response.status_code == 200

    def test_trigger_unknown_job(self, client, admin_headers):
        response = client.post('/api/jobs/unknown-job/trigger', headers=admin_headers)

        assert response.status_code == 404
        assert response.get_json()['message'] == 'Job not found'

    def test_trigger_reports_handler_failure(self, client, admin_headers):
        with patch('services.quest_service.QuestService.sweep_claim_expiry',
                   side_effect=StoreUnavailableError('Failed to reset expired claims for quests [1]')):
            response = client.post('/api/jobs/quest-claim-expiry/trigger', headers=admin_headers)

        assert response.status_code == 503

    def test_stop_job(self, client, admin_headers):
        assert client.post('/api/jobs/health-check/stop', headers=admin_headers).status_code == 200
        assert client.get('/api/jobs/health-check', headers=admin_headers).status_code == 404
        assert client.post('/api/jobs/health-check/stop', headers=admin_headers).status_code == 404

    def test_trigger_while_running(self, client, admin_headers, job_scheduler):
        job_scheduler._statuses['health-check'].is_running = True

        response = client.post('/api/jobs/health-check/trigger', headers=admin_headers)

        assert response.status_code == 400
        assert 'already running' in response.get_json()['message']

    def test_jobs_health_summary(self, client, admin_headers, job_scheduler):
        job_scheduler._statuses['cleanup-old-data'].last_error = 'database is locked'

        response = client.get('/api/jobs/health', headers=admin_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['total_jobs'] == 5
        assert data['active_jobs'] == 4
        assert data['failed_jobs'] == 1
        assert len(data['jobs']) == 5

    def test_jobs_health_is_admin_only(self, client, editor_headers):
        assert client.get('/api/jobs/health', headers=editor_headers).status_code == 403
