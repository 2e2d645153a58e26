"""Notification API routes for the current user."""

from flask import Blueprint, jsonify, request
from auth import auth_required, get_current_user
from routes import service_error_response, pagination_args
from services.errors import NotFoundError
from services.notification_service import NotificationService

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


@notifications_bp.route('', methods=['GET'])
@auth_required
def list_notifications():
    """List the current user's notifications.

    Query parameters:
        - unread_only: 'true' to hide read notifications
        - page, limit: Pagination (default 1, 20)
    """
    page, limit = pagination_args(default_limit=20)
    unread_only = request.args.get('unread_only', 'false').lower() == 'true'
    result = NotificationService.get_user_notifications(
        get_current_user().id, page=page, limit=limit, unread_only=unread_only
    )
    return jsonify(result), 200


@notifications_bp.route('/unread-count', methods=['GET'])
@auth_required
def unread_count():
    return jsonify({'count': NotificationService.get_unread_count(get_current_user().id)}), 200


@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
@auth_required
def mark_read(notification_id):
    updated = NotificationService.mark_as_read(notification_id, get_current_user().id)
    return jsonify({'message': 'Notification marked as read', 'updated': updated}), 200


@notifications_bp.route('/read-all', methods=['POST'])
@auth_required
def mark_all_read():
    updated = NotificationService.mark_all_as_read(get_current_user().id)
    return jsonify({'message': 'All notifications marked as read', 'updated': updated}), 200


@notifications_bp.route('/<int:notification_id>', methods=['DELETE'])
@auth_required
def delete_notification(notification_id):
    deleted = NotificationService.delete_notification(notification_id, get_current_user().id)
    if not deleted:
        return service_error_response(NotFoundError('Notification not found'))
    return jsonify({'message': 'Notification deleted'}), 200
