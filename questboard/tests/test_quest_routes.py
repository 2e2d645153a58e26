"""Tests for the quest API endpoints."""

from models import Quest, User


class TestAuthentication:

    def test_missing_header(self, client, db_session):
        response = client.get('/api/quests')
        assert response.status_code == 401

    def test_unknown_user(self, client, db_session):
        response = client.get('/api/quests', headers={'X-Auth-User': 'nobody'})
        assert response.status_code == 401
        assert response.get_json()['message'] == 'User not found in database'


class TestQuestCrud:

    def test_list_quests(self, client, player_headers, available_quest, claimed_quest):
        response = client.get('/api/quests?status=AVAILABLE', headers=player_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert [q['id'] for q in data['quests']] == [available_quest.id]
        assert data['quests'][0]['creator_name'] == 'Test Admin'
        assert data['pagination']['total'] == 1

    def test_get_quest(self, client, player_headers, available_quest):
        response = client.get(f'/api/quests/{available_quest.id}', headers=player_headers)

        assert response.status_code == 200
        assert response.get_json()['quest']['title'] == 'Clean the garage'

    def test_get_missing_quest(self, client, player_headers):
        response = client.get('/api/quests/9999', headers=player_headers)

        assert response.status_code == 404
        assert response.get_json()['error'] == 'NotFound Error'

    def test_create_quest(self, client, editor_headers, editor_user):
        response = client.post('/api/quests', headers=editor_headers, json={
            'title': 'Fix the bike',
            'bounty': 40,
            'is_repeatable': True,
            'cooldown_days': 3
        })

        assert response.status_code == 201
        quest = response.get_json()['quest']
        assert quest['status'] == 'AVAILABLE'
        assert quest['created_by'] == editor_user.id
        assert quest['cooldown_days'] == 3

    def test_create_quest_validation(self, client, admin_headers):
        response = client.post('/api/quests', headers=admin_headers, json={'title': 'Nope', 'bounty': 0})

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Bounty must be a positive number'

    def test_player_cannot_create(self, client, player_headers):
        response = client.post('/api/quests', headers=player_headers, json={'title': 'Mine', 'bounty': 5})
        assert response.status_code == 403

    def test_update_quest(self, client, admin_headers, available_quest):
        response = client.put(f'/api/quests/{available_quest.id}', headers=admin_headers, json={'bounty': 35})

        assert response.status_code == 200
        assert response.get_json()['quest']['bounty'] == 35

    def test_delete_requires_admin(self, client, editor_headers, admin_headers, available_quest, db_session):
        assert client.delete(f'/api/quests/{available_quest.id}', headers=editor_headers).status_code == 403

        response = client.delete(f'/api/quests/{available_quest.id}', headers=admin_headers)

        assert response.status_code == 200
        assert db_session.get(Quest, available_quest.id) is None


class TestQuestWorkflow:

    def test_full_lifecycle(self, client, db_session, available_quest, player_headers, admin_headers, player_user):
        response = client.post(f'/api/quests/{available_quest.id}/claim', headers=player_headers)
        assert response.status_code == 200
        assert response.get_json()['quest']['status'] == 'CLAIMED'
        assert response.get_json()['quest']['claimed_by_name'] == 'Test Player'

        response = client.post(f'/api/quests/{available_quest.id}/complete', headers=player_headers)
        assert response.status_code == 200
        assert response.get_json()['quest']['status'] == 'COMPLETED'

        response = client.post(f'/api/quests/{available_quest.id}/approve', headers=admin_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert data['quest']['status'] == 'APPROVED'
        assert data['experience_gained'] == 250
        assert data['leveled_up'] is True
        assert data['new_level'] == 2

        user = db_session.get(User, player_user.id)
        assert user.bounty_balance == 70
        assert user.experience == 250

    def test_claim_taken_quest(self, client, claimed_quest, admin_headers):
        response = client.post(f'/api/quests/{claimed_quest.id}/claim', headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Quest is not available for claiming'

    def test_complete_someone_elses_quest(self, client, claimed_quest, admin_headers):
        response = client.post(f'/api/quests/{claimed_quest.id}/complete', headers=admin_headers)

        assert response.status_code == 403
        assert response.get_json()['message'] == 'Quest is not claimed by you'

    def test_player_cannot_approve(self, client, completed_quest, player_headers):
        response = client.post(f'/api/quests/{completed_quest.id}/approve', headers=player_headers)
        assert response.status_code == 403

    def test_reject_with_notes(self, client, completed_quest, editor_headers):
        response = client.post(f'/api/quests/{completed_quest.id}/reject', headers=editor_headers,
                               json={'notes': 'Needs a second coat'})

        assert response.status_code == 200
        assert response.get_json()['quest']['status'] == 'REJECTED'

    def test_reset_requires_admin(self, client, cooldown_quest, editor_headers, admin_headers):
        response = client.post(f'/api/quests/{cooldown_quest.id}/reset', headers=editor_headers)
        assert response.status_code == 403

        response = client.post(f'/api/quests/{cooldown_quest.id}/reset', headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['quest']['status'] == 'AVAILABLE'
        assert response.get_json()['quest']['last_completed_at'] is None


class TestQuestListings:

    def test_pending_approval(self, client, completed_quest, claimed_quest, editor_headers):
        response = client.get('/api/quests/pending-approval', headers=editor_headers)

        assert response.status_code == 200
        assert [q['id'] for q in response.get_json()['quests']] == [completed_quest.id]

    def test_repeatable(self, client, cooldown_quest, available_quest, player_headers):
        response = client.get('/api/quests/repeatable', headers=player_headers)

        assert [q['id'] for q in response.get_json()['quests']] == [cooldown_quest.id]

    def test_mine_claimed(self, client, claimed_quest, available_quest, player_headers):
        response = client.get('/api/quests/mine/claimed', headers=player_headers)

        assert [q['id'] for q in response.get_json()['quests']] == [claimed_quest.id]

    def test_mine_created(self, client, available_quest, admin_headers, player_headers):
        assert len(client.get('/api/quests/mine/created', headers=admin_headers).get_json()['quests']) == 1
        assert client.get('/api/quests/mine/created', headers=player_headers).get_json()['quests'] == []

    def test_mine_history(self, client, completed_quest, admin_headers, player_headers):
        client.post(f'/api/quests/{completed_quest.id}/approve', headers=admin_headers)

        response = client.get('/api/quests/mine/history', headers=player_headers)

        completions = response.get_json()['completions']
        assert len(completions) == 1
        assert completions[0]['bounty'] == 500


class TestQuestEditRoutes:

    def test_edit_cannot_set_claimed(self, client, admin_headers, available_quest):
        response = client.put(f'/api/quests/{available_quest.id}', headers=admin_headers,
                              json={'status': 'CLAIMED'})

        assert response.status_code == 400
        assert 'Status can only be set to' in response.get_json()['message']

    def test_edit_off_repeat_releases_cooldown(self, client, admin_headers, cooldown_quest):
        response = client.put(f'/api/quests/{cooldown_quest.id}', headers=admin_headers,
                              json={'is_repeatable': False})

        assert response.status_code == 200
        assert response.get_json()['quest']['status'] == 'AVAILABLE'
