"""
Old data cleanup job.
"""

from datetime import timedelta
import logging

logger = logging.getLogger(__name__)

APPROVAL_RETENTION_DAYS = 90
QUEST_RETENTION_YEARS = 1
NOTIFICATION_RETENTION_DAYS = 30


def handle_cleanup_old_data(now=None):
    """
    Delete stale history.

    Runs daily at 02:00. Removes:
    - approval records older than 90 days
    - APPROVED/REJECTED quests not updated for a year, with their approvals
      and skill requirements
    - read notifications older than 30 days

    Returns:
        dict: Number of deleted rows per kind
    """
    logger.info("Starting old data cleanup")

    # Import inside function to avoid circular imports and to get app context
    from sqlalchemy import delete, select
    from models import db, Approval, Quest, QuestRequiredSkill
    from services.notification_service import NotificationService
    from utils.timezone import utc_now, subtract_years

    now = now or utc_now()
    approval_cutoff = now - timedelta(days=APPROVAL_RETENTION_DAYS)
    quest_cutoff = subtract_years(now, QUEST_RETENTION_YEARS)

    try:
        approvals_deleted = db.session.execute(
            delete(Approval)
            .where(Approval.created_at < approval_cutoff)
            .execution_options(synchronize_session=False)
        ).rowcount

        old_quest_ids = db.session.scalars(
            select(Quest.id).where(
                Quest.status.in_(['APPROVED', 'REJECTED']),
                Quest.updated_at < quest_cutoff
            )
        ).all()

        quests_deleted = 0
        if old_quest_ids:
            approvals_deleted += db.session.execute(
                delete(Approval)
                .where(Approval.quest_id.in_(old_quest_ids))
                .execution_options(synchronize_session=False)
            ).rowcount
            db.session.execute(
                delete(QuestRequiredSkill)
                .where(QuestRequiredSkill.quest_id.in_(old_quest_ids))
                .execution_options(synchronize_session=False)
            )
            quests_deleted = db.session.execute(
                delete(Quest)
                .where(Quest.id.in_(old_quest_ids))
                .execution_options(synchronize_session=False)
            ).rowcount

        notifications_deleted = NotificationService.delete_old_notifications(
            NOTIFICATION_RETENTION_DAYS, now=now
        )

        db.session.commit()

    except Exception as e:
        logger.error(f"Error cleaning up old data: {e}")
        db.session.rollback()
        raise

    logger.info(
        f"Cleanup complete: {approvals_deleted} approvals, {quests_deleted} quests, "
        f"{notifications_deleted} notifications deleted"
    )

    return {
        'approvals': approvals_deleted,
        'quests': quests_deleted,
        'notifications': notifications_deleted
    }
