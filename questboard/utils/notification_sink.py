"""
Delivery of notifications to an external notification sink.

Each notification type maps to an event name and the subset of its data
that the sink receives as ``subject``, so consumers get a stable payload per
event instead of the raw notification row. Delivery is fire-and-forget:
``deliver`` never raises and reports the outcome as a DeliveryResult that
the caller records on the notification.
"""

from dataclasses import dataclass
from typing import Optional
import logging

import requests

from utils.timezone import isoformat_utc

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5

# Notification type -> (event name, subject fields taken from notification data)
NOTIFICATION_EVENTS = {
    'QUEST_APPROVED': ('quest.approved', ('quest_id', 'bounty', 'experience', 'level')),
    'QUEST_REJECTED': ('quest.rejected', ('quest_id', 'notes')),
    'QUEST_CLAIMED': ('quest.claimed', ('quest_id', 'claimer_name')),
    'QUEST_COMPLETED': ('quest.completed', ('quest_id', 'claimer_name')),
    'QUEST_AVAILABLE': ('quest.available', ('quest_id',)),
    'STORE_PURCHASE': ('store.purchase_requested', ('store_item_id', 'cost', 'transaction_id')),
    'STORE_APPROVED': ('store.purchase_approved', ('store_item_id', 'transaction_id')),
    'STORE_REJECTED': ('store.purchase_rejected', ('store_item_id', 'transaction_id', 'notes')),
    'LEVEL_UP': ('user.level_up', ('level', 'experience')),
    'ADMIN_APPROVAL_NEEDED': ('admin.approval_needed', ('pending_quests', 'pending_store_items', 'total_pending')),
    'SYSTEM_MESSAGE': ('system.message', ()),
}


@dataclass
class DeliveryResult:
    """Outcome of handing one notification to the sink."""

    status: str  # SENT, FAILED or SKIPPED
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status == 'SENT'


def get_sink_config() -> tuple:
    """Return the configured sink URL (or None) and request timeout."""
    from flask import current_app
    return (
        current_app.config.get('NOTIFICATION_SINK_URL'),
        current_app.config.get('NOTIFICATION_SINK_TIMEOUT', DEFAULT_TIMEOUT)
    )


def build_delivery(notification) -> dict:
    """
    Build the sink payload for a notification.

    Args:
        notification: Persisted Notification

    Returns:
        dict with event, notification_id, type, recipient, title, message,
        subject and created_at
    """
    event, fields = NOTIFICATION_EVENTS[notification.type]
    data = notification.data or {}

    return {
        'event': event,
        'notification_id': notification.id,
        'type': notification.type,
        'recipient': {
            'user_id': notification.user_id,
            'auth_id': notification.user.auth_id if notification.user else None
        },
        'title': notification.title,
        'message': notification.message,
        'subject': {field: data.get(field) for field in fields},
        'created_at': isoformat_utc(notification.created_at)
    }


def deliver(notification) -> DeliveryResult:
    """
    POST a notification to the sink.

    Returns:
        DeliveryResult: SKIPPED when no sink is configured, SENT on a 2xx
        response, FAILED otherwise (never raises)
    """
    url, timeout = get_sink_config()

    if not url:
        logger.debug("Notification sink not configured, skipping delivery")
        return DeliveryResult('SKIPPED')

    payload = build_delivery(notification)

    try:
        response = requests.post(
            url,
            json=payload,
            headers={'X-QuestBoard-Event': payload['event']},
            timeout=timeout
        )
        response.raise_for_status()
    except requests.exceptions.Timeout:
        logger.error(f"Notification {notification.id} delivery timed out ({payload['event']})")
        return DeliveryResult('FAILED', error='timeout')
    except requests.exceptions.HTTPError as e:
        logger.error(f"Notification {notification.id} rejected by sink: {e}")
        return DeliveryResult('FAILED', status_code=e.response.status_code if e.response is not None else None,
                              error=str(e))
    except requests.exceptions.RequestException as e:
        logger.error(f"Notification {notification.id} delivery failed: {e}")
        return DeliveryResult('FAILED', error=str(e))

    logger.info(f"Delivered notification {notification.id} as {payload['event']} (status {response.status_code})")
    return DeliveryResult('SENT', status_code=response.status_code)
