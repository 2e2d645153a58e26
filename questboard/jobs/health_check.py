"""
Store health check job.
"""

from datetime import timedelta
import logging

logger = logging.getLogger(__name__)

STUCK_QUEST_DAYS = 7


def handle_health_check(now=None):
    """
    Verify database connectivity and look for inconsistent data.

    Runs every 30 minutes. Never mutates state. Stuck quests (claimed more
    than a week ago) and negative balances are logged as warnings.

    Returns:
        dict: stuck_quests and negative_balances counts

    Raises:
        StoreUnavailableError: The database could not be reached
    """
    logger.debug("Running health check")

    # Import inside function to avoid circular imports and to get app context
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from models import db, Quest, User
    from services.errors import StoreUnavailableError
    from utils.timezone import utc_now

    now = now or utc_now()

    try:
        db.session.execute(text('SELECT 1'))

        stuck_quests = Quest.query.filter(
            Quest.status == 'CLAIMED',
            Quest.claimed_at < now - timedelta(days=STUCK_QUEST_DAYS)
        ).count()

        negative_balances = User.query.filter(User.bounty_balance < 0).count()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Health check failed: {e}")
        raise StoreUnavailableError(f'Database unreachable: {e}') from e

    if stuck_quests > 0:
        logger.warning(f"Found {stuck_quests} quests claimed for more than {STUCK_QUEST_DAYS} days")

    if negative_balances > 0:
        logger.warning(f"Found {negative_balances} users with negative bounty balance")

    logger.debug("Health check completed")

    return {'stuck_quests': stuck_quests, 'negative_balances': negative_balances}
