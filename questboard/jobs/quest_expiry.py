"""
Quest claim and cooldown expiry jobs.
"""

import logging

logger = logging.getLogger(__name__)


def handle_quest_claim_expiry():
    """
    Release quest claims that were not completed in time.

    Runs hourly. Quests CLAIMED longer than CLAIM_EXPIRY_HOURS go back to
    AVAILABLE. Errors propagate so the scheduler records them.
    """
    logger.info("Checking for expired quest claims")

    # Import inside function to avoid circular imports and to get app context
    from services.quest_service import QuestService

    reset_count = QuestService.sweep_claim_expiry()

    if reset_count > 0:
        logger.info(f"Reset {reset_count} expired quest claims")


def handle_quest_cooldown_expiry():
    """
    Make repeatable quests available again once their cooldown has elapsed.

    Runs hourly.
    """
    logger.debug("Checking for repeatable quests leaving cooldown")

    from services.quest_service import QuestService

    QuestService.sweep_cooldown_expiry()
