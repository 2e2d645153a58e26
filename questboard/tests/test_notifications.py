"""Tests for notifications."""

import pytest
from datetime import timedelta

from models import Notification
from services.errors import ValidationError
from services.notification_service import NotificationService
from utils.timezone import utc_now


@pytest.fixture
def notifications(db_session, player_user):
    """Three notifications for player_user, one already read."""
    NotificationService.emit(player_user.id, 'SYSTEM_MESSAGE', 'Welcome', 'Welcome aboard')
    NotificationService.quest_claimed(player_user.id, 1, 'Clean the garage', 'Someone')
    read = NotificationService.level_up(player_user.id, 2, 120)
    NotificationService.mark_as_read(read.id, player_user.id)
    return Notification.query.filter_by(user_id=player_user.id).order_by(Notification.id).all()


class TestNotificationService:

    def test_create_rejects_unknown_type(self, db_session, player_user):
        with pytest.raises(ValidationError):
            NotificationService.create_notification(player_user.id, 'NOT_A_TYPE', 'Title', 'Message')

    def test_emit_swallows_errors(self, db_session, player_user):
        assert NotificationService.emit(player_user.id, 'NOT_A_TYPE', 'Title', 'Message') is None
        assert Notification.query.count() == 0

    def test_unread_count(self, db_session, notifications, player_user):
        assert NotificationService.get_unread_count(player_user.id) == 2

    def test_list_unread_only(self, db_session, notifications, player_user):
        result = NotificationService.get_user_notifications(player_user.id, unread_only=True)

        assert result['pagination']['total'] == 2
        assert all(not n['is_read'] for n in result['notifications'])

    def test_mark_as_read_other_user(self, db_session, notifications, admin_user):
        assert NotificationService.mark_as_read(notifications[0].id, admin_user.id) == 0

    def test_mark_all_as_read(self, db_session, notifications, player_user):
        assert NotificationService.mark_all_as_read(player_user.id) == 2
        assert NotificationService.get_unread_count(player_user.id) == 0

    def test_delete_old_notifications_only_removes_read(self, db_session, notifications, player_user):
        for notification in notifications:
            notification.created_at = utc_now() - timedelta(days=45)
        db_session.commit()

        assert NotificationService.delete_old_notifications(30) == 1
        db_session.commit()
        assert Notification.query.count() == 2

    def test_admin_approval_needed_message(self, db_session, admin_user):
        notification = NotificationService.admin_approval_needed(admin_user.id, 1, 0)

        assert notification.message.startswith('There is 1 item awaiting your approval. 1 quest completion.')


class TestNotificationRoutes:

    def test_list(self, client, notifications, player_headers):
        response = client.get('/api/notifications', headers=player_headers)

        assert response.status_code == 200
        assert len(response.get_json()['notifications']) == 3

    def test_unread_count(self, client, notifications, player_headers):
        response = client.get('/api/notifications/unread-count', headers=player_headers)
        assert response.get_json()['count'] == 2

    def test_mark_read(self, client, notifications, player_headers):
        response = client.post(f'/api/notifications/{notifications[0].id}/read', headers=player_headers)

        assert response.status_code == 200
        assert response.get_json()['updated'] == 1

    def test_read_all(self, client, notifications, player_headers):
        response = client.post('/api/notifications/read-all', headers=player_headers)
        assert response.get_json()['updated'] == 2

    def test_delete(self, client, notifications, player_headers, admin_headers):
        assert client.delete(f'/api/notifications/{notifications[0].id}', headers=admin_headers).status_code == 404
        assert client.delete(f'/api/notifications/{notifications[0].id}', headers=player_headers).status_code == 200
