"""Notification service.

Creates user-facing notifications for quest, store and level events and
serves the notification read API. Every created notification is also
handed to the notification sink and the delivery outcome is stored on it.

Emission is fire-and-forget: ``emit`` and the typed helpers log and roll
back on failure but never raise, so a broken notification never undoes the
quest or store transition that triggered it.
"""

import logging
import math
from datetime import timedelta
from typing import Optional

from sqlalchemy import update, delete
from sqlalchemy.exc import SQLAlchemyError

from models import db, Notification, NOTIFICATION_TYPES
from services.errors import ValidationError
from utils.timezone import utc_now
from utils.notification_sink import deliver, DeliveryResult

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for creating and reading notifications."""

    @staticmethod
    def create_notification(user_id: int, notification_type: str, title: str, message: str,
                            data: Optional[dict] = None) -> Notification:
        """Persist a notification and hand it to the notification sink.

        Raises:
            ValidationError: Unknown notification type
        """
        if notification_type not in NOTIFICATION_TYPES:
            raise ValidationError(f'Unknown notification type: {notification_type}')

        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=data
        )
        db.session.add(notification)
        db.session.commit()

        NotificationService._record_delivery(notification, deliver(notification))

        return notification

    @staticmethod
    def _record_delivery(notification: Notification, result: DeliveryResult) -> None:
        """Store the sink outcome. A failure here leaves the notification itself in place."""
        notification_id = notification.id
        notification.delivery_status = result.status
        notification.delivered_at = utc_now() if result.delivered else None
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning(f"Could not record delivery of notification {notification_id}: {e}")

    @staticmethod
    def emit(user_id: int, notification_type: str, title: str, message: str,
             data: Optional[dict] = None) -> Optional[Notification]:
        """Create a notification, logging instead of raising on failure."""
        try:
            return NotificationService.create_notification(user_id, notification_type, title, message, data)
        except (SQLAlchemyError, ValidationError) as e:
            db.session.rollback()
            logger.error(f"Failed to create {notification_type} notification for user {user_id}: {e}")
            return None

    # Event helpers

    @staticmethod
    def quest_claimed(creator_id: int, quest_id: int, quest_title: str, claimer_name: str):
        return NotificationService.emit(
            creator_id,
            'QUEST_CLAIMED',
            'Quest Claimed!',
            f'{claimer_name} has claimed your quest "{quest_title}".',
            {'quest_id': quest_id, 'claimer_name': claimer_name}
        )

    @staticmethod
    def quest_completed(creator_id: int, quest_id: int, quest_title: str, claimer_name: str):
        return NotificationService.emit(
            creator_id,
            'QUEST_COMPLETED',
            'Quest Completed!',
            f'{claimer_name} has completed your quest "{quest_title}" and is waiting for approval.',
            {'quest_id': quest_id, 'claimer_name': claimer_name}
        )

    @staticmethod
    def quest_approved(user_id: int, quest_id: int, quest_title: str, bounty: int,
                       experience: int, level: int):
        return NotificationService.emit(
            user_id,
            'QUEST_APPROVED',
            'Quest Approved!',
            f'Your quest "{quest_title}" has been approved! '
            f'You earned {bounty} bounty and {experience} experience.',
            {'quest_id': quest_id, 'bounty': bounty, 'experience': experience, 'level': level}
        )

    @staticmethod
    def quest_rejected(user_id: int, quest_id: int, quest_title: str, notes: Optional[str] = None):
        if notes:
            message = f'Your quest "{quest_title}" was rejected. Reason: {notes}'
        else:
            message = f'Your quest "{quest_title}" was rejected. Please review and try again.'
        return NotificationService.emit(
            user_id,
            'QUEST_REJECTED',
            'Quest Rejected',
            message,
            {'quest_id': quest_id, 'notes': notes}
        )

    @staticmethod
    def level_up(user_id: int, new_level: int, experience: int):
        return NotificationService.emit(
            user_id,
            'LEVEL_UP',
            f'Level Up! Level {new_level}',
            f"Congratulations! You've reached level {new_level} with {experience} total experience!",
            {'level': new_level, 'experience': experience}
        )

    @staticmethod
    def store_purchase(user_id: int, item_id: int, item_name: str, cost: int, transaction_id: int):
        return NotificationService.emit(
            user_id,
            'STORE_PURCHASE',
            'Purchase Requested',
            f'Your purchase request for "{item_name}" ({cost} bounty) has been submitted '
            'and is pending approval.',
            {'store_item_id': item_id, 'cost': cost, 'transaction_id': transaction_id}
        )

    @staticmethod
    def store_approved(user_id: int, item_id: int, item_name: str, transaction_id: int):
        return NotificationService.emit(
            user_id,
            'STORE_APPROVED',
            'Purchase Approved!',
            f'Your purchase of "{item_name}" has been approved!',
            {'store_item_id': item_id, 'transaction_id': transaction_id}
        )

    @staticmethod
    def store_rejected(user_id: int, item_id: int, item_name: str, transaction_id: int,
                       notes: Optional[str] = None):
        if notes:
            message = f'Your purchase of "{item_name}" was rejected. Reason: {notes}'
        else:
            message = f'Your purchase of "{item_name}" was rejected.'
        return NotificationService.emit(
            user_id,
            'STORE_REJECTED',
            'Purchase Rejected',
            message,
            {'store_item_id': item_id, 'transaction_id': transaction_id, 'notes': notes}
        )

    @staticmethod
    def admin_approval_needed(admin_id: int, pending_quests: int, pending_store_items: int):
        total = pending_quests + pending_store_items
        if total == 1:
            message = 'There is 1 item awaiting your approval.'
        else:
            message = f'There are {total} items awaiting your approval.'

        details = []
        if pending_quests > 0:
            details.append(f"{pending_quests} quest completion{'s' if pending_quests > 1 else ''}")
        if pending_store_items > 0:
            details.append(f"{pending_store_items} store purchase{'s' if pending_store_items > 1 else ''}")

        return NotificationService.emit(
            admin_id,
            'ADMIN_APPROVAL_NEEDED',
            'Approval Required!',
            f"{message} {' and '.join(details)}. Please review them in the admin panel.",
            {
                'pending_quests': pending_quests,
                'pending_store_items': pending_store_items,
                'total_pending': total
            }
        )

    # Read API

    @staticmethod
    def get_user_notifications(user_id: int, page: int = 1, limit: int = 20,
                               unread_only: bool = False) -> dict:
        """Paginated notifications for a user, newest first."""
        page = max(page, 1)
        limit = max(min(limit, 100), 1)

        query = Notification.query.filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))

        total = query.count()
        notifications = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            'notifications': [n.to_dict() for n in notifications],
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': math.ceil(total / limit)
            }
        }

    @staticmethod
    def get_unread_count(user_id: int) -> int:
        return Notification.query.filter_by(user_id=user_id, is_read=False).count()

    @staticmethod
    def mark_as_read(notification_id: int, user_id: int) -> int:
        """Mark one of the user's notifications read. Returns rows updated."""
        result = db.session.execute(
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
                Notification.is_read.is_(False)
            )
            .values(is_read=True, read_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount

    @staticmethod
    def mark_all_as_read(user_id: int) -> int:
        result = db.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount

    @staticmethod
    def delete_notification(notification_id: int, user_id: int) -> int:
        result = db.session.execute(
            delete(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount

    @staticmethod
    def delete_old_notifications(days_old: int = 30, now=None) -> int:
        """Delete read notifications older than ``days_old`` days.

        The caller commits.
        """
        now = now or utc_now()
        cutoff = now - timedelta(days=days_old)
        result = db.session.execute(
            delete(Notification)
            .where(Notification.created_at < cutoff, Notification.is_read.is_(True))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
