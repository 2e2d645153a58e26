"""Skill service.

Skills gate who may claim a quest. Admins define skills and grant users a
level (1-5) in them; a quest can require a minimum level in any number of
skills, and a claim is refused until the claimant holds every one.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models import db, Skill, UserSkill, QuestRequiredSkill, User, MIN_SKILL_LEVEL, MAX_SKILL_LEVEL
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _skill_level(value) -> bool:
    return (isinstance(value, int) and not isinstance(value, bool)
            and MIN_SKILL_LEVEL <= value <= MAX_SKILL_LEVEL)


class SkillService:
    """Service for skills, user skill levels and quest skill requirements."""

    @staticmethod
    def get_skill(skill_id: int) -> Skill:
        """Get a skill by ID or raise NotFoundError."""
        skill = db.session.get(Skill, skill_id)
        if not skill:
            raise NotFoundError(f'Skill {skill_id} not found')
        return skill

    @staticmethod
    def create_skill(creator_id: int, name: str, description: Optional[str] = None) -> Skill:
        """
        Create a skill.

        Raises:
            ValidationError: Missing name or name already taken
        """
        if not name or not isinstance(name, str) or not name.strip():
            raise ValidationError('Skill name is required')

        skill = Skill(name=name.strip(), description=description, created_by=creator_id)
        db.session.add(skill)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ValidationError('Skill with this name already exists') from e

        logger.info(f"Skill {skill.id} ({skill.name}) created by user {creator_id}")
        return skill

    @staticmethod
    def update_skill(skill_id: int, data: dict) -> Skill:
        skill = SkillService.get_skill(skill_id)

        if 'name' in data:
            name = data['name']
            if not name or not isinstance(name, str) or not name.strip():
                raise ValidationError('Skill name is required')
            skill.name = name.strip()

        if 'description' in data:
            skill.description = data['description']

        if 'is_active' in data:
            skill.is_active = bool(data['is_active'])

        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ValidationError('Skill with this name already exists') from e

        return skill

    @staticmethod
    def list_skills(include_inactive: bool = False) -> list:
        query = Skill.query
        if not include_inactive:
            query = query.filter(Skill.is_active.is_(True))
        return query.order_by(Skill.name).all()

    @staticmethod
    def get_user_skills(user_id: int) -> list:
        """A user's skills, highest level first."""
        return (
            UserSkill.query.filter_by(user_id=user_id)
            .order_by(UserSkill.level.desc(), UserSkill.skill_id)
            .all()
        )

    @staticmethod
    def set_user_skill(user_id: int, skill_id: int, level) -> UserSkill:
        """
        Grant a skill to a user or change its level.

        Raises:
            NotFoundError: User or skill not found
            ValidationError: Level outside 1-5
        """
        if not _skill_level(level):
            raise ValidationError(f'Level must be between {MIN_SKILL_LEVEL} and {MAX_SKILL_LEVEL}')
        if not db.session.get(User, user_id):
            raise NotFoundError(f'User {user_id} not found')
        SkillService.get_skill(skill_id)

        user_skill = UserSkill.query.filter_by(user_id=user_id, skill_id=skill_id).first()
        if user_skill:
            user_skill.level = level
        else:
            user_skill = UserSkill(user_id=user_id, skill_id=skill_id, level=level)
            db.session.add(user_skill)
        db.session.commit()

        logger.info(f"User {user_id} skill {skill_id} set to level {level}")
        return user_skill

    @staticmethod
    def remove_user_skill(user_id: int, skill_id: int) -> None:
        user_skill = UserSkill.query.filter_by(user_id=user_id, skill_id=skill_id).first()
        if not user_skill:
            raise NotFoundError('User skill not found')
        db.session.delete(user_skill)
        db.session.commit()

    # Quest requirements

    @staticmethod
    def parse_requirements(requirements) -> list:
        """
        Validate a list of ``{skill_id, min_level}`` requirements.

        Returns:
            list of (skill_id, min_level) tuples

        Raises:
            ValidationError: Malformed, duplicated or out of range entries
            NotFoundError: Unknown skill
        """
        if requirements is None:
            return []
        if not isinstance(requirements, list):
            raise ValidationError('skill_requirements must be a list')

        parsed = []
        seen = set()
        for requirement in requirements:
            if not isinstance(requirement, dict):
                raise ValidationError('Each skill requirement needs skill_id and min_level')
            skill_id = requirement.get('skill_id')
            min_level = requirement.get('min_level')
            if not isinstance(skill_id, int) or isinstance(skill_id, bool):
                raise ValidationError('Skill ID is required')
            if not _skill_level(min_level):
                raise ValidationError(f'Minimum level must be between {MIN_SKILL_LEVEL} and {MAX_SKILL_LEVEL}')
            if skill_id in seen:
                raise ValidationError(f'Skill {skill_id} is required more than once')
            SkillService.get_skill(skill_id)
            seen.add(skill_id)
            parsed.append((skill_id, min_level))
        return parsed

    @staticmethod
    def replace_requirements(quest, requirements: list) -> None:
        """Replace a quest's requirements with parsed ``(skill_id, min_level)`` pairs. The caller commits."""
        existing = {r.skill_id: r for r in quest.required_skills}
        wanted = dict(requirements)

        # Kept rows are updated in place so (quest_id, skill_id) stays unique during the flush
        for skill_id, requirement in existing.items():
            if skill_id not in wanted:
                quest.required_skills.remove(requirement)

        for skill_id, min_level in requirements:
            if skill_id in existing:
                existing[skill_id].min_level = min_level
            else:
                quest.required_skills.append(QuestRequiredSkill(skill_id=skill_id, min_level=min_level))

    @staticmethod
    def unmet_requirements(quest_id: int, user_id: int) -> dict:
        """
        Compare a quest's requirements with the user's skill levels.

        Returns:
            dict with ``missing_skills`` (names the user lacks) and
            ``insufficient_skills`` (name, required and current level)
        """
        requirements = QuestRequiredSkill.query.filter_by(quest_id=quest_id).all()
        missing = []
        insufficient = []
        if not requirements:
            return {'missing_skills': missing, 'insufficient_skills': insufficient}

        levels = {
            us.skill_id: us.level
            for us in UserSkill.query.filter_by(user_id=user_id).all()
        }

        for requirement in requirements:
            current = levels.get(requirement.skill_id)
            if current is None:
                missing.append(requirement.skill.name)
            elif current < requirement.min_level:
                insufficient.append({
                    'skill': requirement.skill.name,
                    'required': requirement.min_level,
                    'current': current
                })

        return {'missing_skills': missing, 'insufficient_skills': insufficient}
