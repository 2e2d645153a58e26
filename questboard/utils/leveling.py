"""
Leveling system utilities.

Standard RPG progression where each level needs more experience:
level = floor(sqrt(experience / 100)) + 1

- Level 1: 0-99 XP
- Level 2: 100-399 XP
- Level 3: 400-899 XP
- Level 4: 900-1599 XP
"""

import math

# Difficulty tiers for quest experience (bounty strictly greater than threshold)
HARD_BOUNTY_THRESHOLD = 30
MEDIUM_BOUNTY_THRESHOLD = 15
HARD_BONUS = 150
MEDIUM_BONUS = 50


def calculate_level(experience: int) -> int:
    """Calculate level from total experience."""
    # isqrt on the integer quotient equals floor(sqrt(xp / 100)) without float error
    return math.isqrt(max(experience, 0) // 100) + 1


def experience_for_level(level: int) -> int:
    """Experience at which the given level begins."""
    return (level - 1) ** 2 * 100


def experience_to_next_level(experience: int) -> int:
    """Experience still needed to reach the next level."""
    return experience_for_level(calculate_level(experience) + 1) - experience


def experience_for_current_level(experience: int) -> int:
    """Experience threshold of the level the user is currently in."""
    return experience_for_level(calculate_level(experience))


def progress_to_next_level(experience: int) -> float:
    """Fraction of the way through the current level band, in [0, 1)."""
    level = calculate_level(experience)
    current_level_exp = experience_for_level(level)
    next_level_exp = experience_for_level(level + 1)
    return (experience - current_level_exp) / (next_level_exp - current_level_exp)


def get_level_info(experience: int) -> dict:
    """
    Get comprehensive level information for a user.

    Args:
        experience: Total experience of the user

    Returns:
        dict: level, experience, experience_to_next,
              experience_for_current_level and progress_to_next
    """
    return {
        'level': calculate_level(experience),
        'experience': experience,
        'experience_to_next': experience_to_next_level(experience),
        'experience_for_current_level': experience_for_current_level(experience),
        'progress_to_next': progress_to_next_level(experience),
    }


def calculate_quest_experience(bounty: int) -> int:
    """
    Calculate the experience reward for completing a quest.

    Base is bounty * 10, plus a difficulty bonus:
    - Easy (bounty <= 15): +0 XP
    - Medium (bounty 16-30): +50 XP
    - Hard (bounty > 30): +150 XP
    """
    bonus = 0
    if bounty > HARD_BOUNTY_THRESHOLD:
        bonus = HARD_BONUS
    elif bounty > MEDIUM_BOUNTY_THRESHOLD:
        bonus = MEDIUM_BONUS
    return bounty * 10 + bonus


def check_level_up(old_experience: int, new_experience: int) -> bool:
    """Check whether gaining experience crossed into a higher level."""
    return calculate_level(new_experience) > calculate_level(old_experience)
