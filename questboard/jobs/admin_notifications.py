"""
Pending approval reminder job.
"""

import logging

logger = logging.getLogger(__name__)


def handle_notify_admins_pending_approvals():
    """
    Remind admins about work waiting for review.

    Runs every 10 minutes. Counts COMPLETED quests and PENDING store
    transactions and, when there is anything pending, sends one
    ADMIN_APPROVAL_NEEDED notification to every admin.

    Returns:
        int: Number of admins notified
    """
    # Import inside function to avoid circular imports and to get app context
    from models import Quest, StoreTransaction, User
    from services.notification_service import NotificationService

    pending_quests = Quest.query.filter_by(status='COMPLETED').count()
    pending_store_items = StoreTransaction.query.filter_by(status='PENDING').count()

    if pending_quests + pending_store_items == 0:
        logger.debug("No pending approvals")
        return 0

    admins = User.query.filter_by(role='ADMIN').all()

    notified = 0
    for admin in admins:
        if NotificationService.admin_approval_needed(admin.id, pending_quests, pending_store_items):
            notified += 1

    logger.info(
        f"Notified {notified} admins about {pending_quests} quests and "
        f"{pending_store_items} store purchases pending approval"
    )

    return notified
