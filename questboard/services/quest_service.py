"""Quest workflow service.

This module contains the quest state machine:
- Claiming quests
- Completing claimed quests
- Approving completed quests (bounty + experience through the ledger)
- Rejecting completed quests
- Resetting repeatable quests out of cooldown
- Sweeps run by the scheduler (claim expiry, cooldown expiry)

State machine:
    AVAILABLE -> CLAIMED -> COMPLETED -> APPROVED | REJECTED
    repeatable: COMPLETED -> COOLDOWN -> AVAILABLE

Status flips are compare-and-set UPDATEs on the expected current status,
so two callers racing for the same transition cannot both succeed.
Notifications are sent after the commit.

Routes should delegate to this service and handle HTTP responses.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy import update, select, or_
from sqlalchemy.exc import SQLAlchemyError

from models import db, Quest, User, Approval, QUEST_STATUSES
from services.errors import (
    NotFoundError,
    InvalidStateError,
    ForbiddenError,
    ValidationError,
    StoreUnavailableError,
)
from services.ledger_service import LedgerService
from services.notification_service import NotificationService
from services.skill_service import SkillService
from utils.leveling import calculate_quest_experience, check_level_up, calculate_level
from utils.timezone import utc_now, add_days

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_EXPIRY_HOURS = 48

# Statuses an edit may set directly; the rest are reached through the quest actions
EDITABLE_STATUSES = ('AVAILABLE', 'APPROVED', 'REJECTED')


class QuestService:
    """Service for managing the quest lifecycle."""

    @staticmethod
    def get_quest(quest_id: int) -> Quest:
        """Get a quest by ID or raise NotFoundError."""
        quest = db.session.get(Quest, quest_id)
        if not quest:
            raise NotFoundError(f'Quest {quest_id} not found')
        return quest

    @staticmethod
    def _transition(quest_id: int, expected_status: str, **values) -> bool:
        """Apply ``values`` only if the quest is still in ``expected_status``."""
        result = db.session.execute(
            update(Quest)
            .where(Quest.id == quest_id, Quest.status == expected_status)
            .values(updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _user_name(user_id: Optional[int]) -> str:
        user = db.session.get(User, user_id) if user_id else None
        return user.name if user else 'Someone'

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @staticmethod
    def claim(quest_id: int, user_id: int) -> Quest:
        """Claim an available quest.

        Raises:
            NotFoundError: Quest not found
            InvalidStateError: Quest is not AVAILABLE (or another claim won the race)
            ForbiddenError: User lacks a required skill or skill level
        """
        quest = QuestService.get_quest(quest_id)

        logger.info(f"Claim request: quest={quest_id}, user={user_id}, status={quest.status}")

        if quest.status != 'AVAILABLE':
            raise InvalidStateError('Quest is not available for claiming')

        unmet = SkillService.unmet_requirements(quest_id, user_id)
        if unmet['missing_skills'] or unmet['insufficient_skills']:
            logger.info(f"Claim refused: user {user_id} does not meet skill requirements of quest {quest_id}")
            raise ForbiddenError('You do not meet the skill requirements for this quest', details=unmet)

        claimed = QuestService._transition(
            quest_id, 'AVAILABLE',
            status='CLAIMED',
            claimed_by=user_id,
            claimed_at=utc_now()
        )
        if not claimed:
            db.session.rollback()
            raise InvalidStateError('Quest is not available for claiming')

        db.session.commit()
        db.session.refresh(quest)
        logger.info(f"Quest {quest_id} claimed by user {user_id}")

        NotificationService.quest_claimed(
            quest.created_by, quest.id, quest.title, QuestService._user_name(user_id)
        )

        return quest

    @staticmethod
    def complete(quest_id: int, user_id: int) -> Quest:
        """Mark a claimed quest as completed by its claimant.

        Raises:
            NotFoundError: Quest not found
            ForbiddenError: Quest is not claimed by this user
        """
        quest = QuestService.get_quest(quest_id)

        if quest.status != 'CLAIMED' or quest.claimed_by != user_id:
            raise ForbiddenError('Quest is not claimed by you')

        completed = QuestService._transition(
            quest_id, 'CLAIMED',
            status='COMPLETED',
            completed_at=utc_now()
        )
        if not completed:
            db.session.rollback()
            raise ForbiddenError('Quest is not claimed by you')

        db.session.commit()
        db.session.refresh(quest)
        logger.info(f"Quest {quest_id} completed by user {user_id}")

        NotificationService.quest_completed(
            quest.created_by, quest.id, quest.title, QuestService._user_name(user_id)
        )

        return quest

    @staticmethod
    def approve(quest_id: int, approver_id: int) -> dict:
        """Approve a completed quest and reward the claimant.

        Quest status, ledger credit and the approval record are committed
        together. Repeatable quests go into COOLDOWN measured from the
        completion time.

        Returns:
            dict with quest, experience_gained, leveled_up and new_level

        Raises:
            NotFoundError: Quest or claimant not found
            InvalidStateError: Quest not COMPLETED or has no claimant
            StoreUnavailableError: Database failure, nothing was applied
        """
        quest = QuestService.get_quest(quest_id)

        if quest.status != 'COMPLETED':
            raise InvalidStateError('Quest is not completed')
        if quest.claimed_by is None:
            raise InvalidStateError('Quest has no claimant')

        claimant_id = quest.claimed_by
        completed_at = quest.completed_at
        bounty = quest.bounty
        experience = calculate_quest_experience(bounty)

        if quest.is_repeatable:
            values = {
                'status': 'COOLDOWN',
                'last_completed_at': completed_at,
                'claimed_by': None,
                'claimed_at': None,
                'completed_at': None,
            }
        else:
            values = {'status': 'APPROVED'}

        try:
            if not QuestService._transition(quest_id, 'COMPLETED', **values):
                raise InvalidStateError('Quest is not completed')

            old_xp, new_xp = LedgerService.credit_approval(claimant_id, bounty, experience)

            db.session.add(Approval(
                quest_id=quest_id,
                user_id=claimant_id,
                reviewer_id=approver_id,
                status='APPROVED',
                bounty=bounty,
                experience=experience,
                completed_at=completed_at
            ))
            db.session.commit()
        except (InvalidStateError, NotFoundError):
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to approve quest {quest_id}: {e}", exc_info=True)
            raise StoreUnavailableError('Failed to approve quest, no changes were applied') from e

        db.session.refresh(quest)
        leveled_up = check_level_up(old_xp, new_xp)
        new_level = calculate_level(new_xp)

        logger.info(
            f"Quest {quest_id} approved by user {approver_id}: "
            f"user {claimant_id} +{bounty} bounty, +{experience} XP (status {quest.status})"
        )

        NotificationService.quest_approved(claimant_id, quest.id, quest.title, bounty, experience, new_level)
        if leveled_up:
            NotificationService.level_up(claimant_id, new_level, new_xp)

        return {
            'quest': quest,
            'experience_gained': experience,
            'leveled_up': leveled_up,
            'new_level': new_level if leveled_up else None,
        }

    @staticmethod
    def reject(quest_id: int, rejecter_id: int, notes: Optional[str] = None) -> Quest:
        """Reject a completed quest. No bounty or experience is paid.

        REJECTED is terminal, repeatable quests included.

        Raises:
            NotFoundError: Quest not found
            InvalidStateError: Quest not COMPLETED
        """
        quest = QuestService.get_quest(quest_id)

        if quest.status != 'COMPLETED':
            raise InvalidStateError('Quest is not completed')

        notes = notes.strip() if notes and notes.strip() else None
        claimant_id = quest.claimed_by

        if not QuestService._transition(quest_id, 'COMPLETED', status='REJECTED'):
            db.session.rollback()
            raise InvalidStateError('Quest is not completed')

        if claimant_id is not None:
            db.session.add(Approval(
                quest_id=quest_id,
                user_id=claimant_id,
                reviewer_id=rejecter_id,
                status='REJECTED',
                notes=notes,
                completed_at=quest.completed_at
            ))
        db.session.commit()
        db.session.refresh(quest)

        logger.info(f"Quest {quest_id} rejected by user {rejecter_id}")

        if claimant_id is not None:
            NotificationService.quest_rejected(claimant_id, quest.id, quest.title, notes)

        return quest

    @staticmethod
    def reset(quest_id: int, actor_role: str) -> Quest:
        """Reset a repeatable quest out of cooldown (admin only).

        Raises:
            NotFoundError: Quest not found
            ForbiddenError: Actor is not an admin
            InvalidStateError: Quest not repeatable or not in COOLDOWN
        """
        if actor_role != 'ADMIN':
            raise ForbiddenError('Only admins can reset quests')

        quest = QuestService.get_quest(quest_id)

        if not quest.is_repeatable:
            raise InvalidStateError('Only repeatable quests can be reset')
        if quest.status != 'COOLDOWN':
            raise InvalidStateError('Quest is not in cooldown status')

        if not QuestService._transition(quest_id, 'COOLDOWN', status='AVAILABLE', last_completed_at=None):
            db.session.rollback()
            raise InvalidStateError('Quest is not in cooldown status')

        db.session.commit()
        db.session.refresh(quest)
        logger.info(f"Quest {quest_id} reset to AVAILABLE")

        return quest

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    @staticmethod
    def sweep_claim_expiry(now: Optional[datetime] = None) -> int:
        """Release claims older than the claim expiry window.

        Each quest is reset in its own transaction. Failures are logged and
        the sweep carries on; they are reported once all rows were tried.

        Returns:
            Number of quests reset to AVAILABLE

        Raises:
            StoreUnavailableError: One or more quests could not be reset
        """
        now = now or utc_now()
        hours = current_app.config.get('CLAIM_EXPIRY_HOURS', DEFAULT_CLAIM_EXPIRY_HOURS)
        cutoff = now - timedelta(hours=hours)

        # Plain rows, so a quest deleted mid-sweep cannot raise on attribute access
        expired = db.session.execute(
            select(Quest.id, Quest.title)
            .where(Quest.status == 'CLAIMED', Quest.claimed_at < cutoff)
            .order_by(Quest.id)
        ).all()

        logger.info(f"Found {len(expired)} expired quest claims")

        reset_count = 0
        failed = []
        for quest_id, title in expired:
            try:
                reset = db.session.execute(
                    update(Quest)
                    .where(Quest.id == quest_id, Quest.status == 'CLAIMED', Quest.claimed_at < cutoff)
                    .values(status='AVAILABLE', claimed_by=None, claimed_at=None, updated_at=now)
                    .execution_options(synchronize_session=False)
                ).rowcount
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"Error resetting expired claim on quest {quest_id}: {e}")
                failed.append(quest_id)
                continue

            if reset:
                reset_count += 1
                logger.info(f"Reset quest {quest_id} ({title}) to available status")

        if failed:
            raise StoreUnavailableError(f'Failed to reset expired claims for quests {failed}')

        return reset_count

    @staticmethod
    def sweep_cooldown_expiry(now: Optional[datetime] = None) -> int:
        """Return repeatable quests whose cooldown has elapsed to AVAILABLE.

        ``last_completed_at`` is kept; only reset() clears it.

        Returns:
            Number of quests made available again

        Raises:
            StoreUnavailableError: One or more quests could not be updated
        """
        now = now or utc_now()

        candidates = db.session.execute(
            select(Quest.id, Quest.last_completed_at, Quest.cooldown_days)
            .where(
                Quest.status == 'COOLDOWN',
                Quest.is_repeatable.is_(True),
                Quest.last_completed_at.isnot(None),
                Quest.cooldown_days.isnot(None)
            )
            .order_by(Quest.id)
        ).all()

        available_count = 0
        failed = []
        for quest_id, last_completed_at, cooldown_days in candidates:
            cooldown_end = add_days(last_completed_at, cooldown_days)
            if now < cooldown_end:
                continue

            try:
                made_available = QuestService._transition(quest_id, 'COOLDOWN', status='AVAILABLE')
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"Error ending cooldown for quest {quest_id}: {e}")
                failed.append(quest_id)
                continue

            if made_available:
                available_count += 1
                logger.info(f"Quest {quest_id} cooldown ended at {cooldown_end.isoformat()}, now available")

        if failed:
            raise StoreUnavailableError(f'Failed to end cooldown for quests {failed}')

        if available_count > 0:
            logger.info(f"Made {available_count} repeatable quests available again")

        return available_count

    # ------------------------------------------------------------------
    # Quest management
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_repeat(is_repeatable: bool, cooldown_days) -> None:
        if is_repeatable and (not isinstance(cooldown_days, int) or isinstance(cooldown_days, bool)
                              or cooldown_days <= 0):
            raise ValidationError('Cooldown days must be a positive number for repeatable quests')

    @staticmethod
    def create_quest(creator_id: int, title: str, bounty, description: Optional[str] = None,
                     is_repeatable: bool = False, cooldown_days: Optional[int] = None,
                     skill_requirements: Optional[list] = None) -> Quest:
        """Create a new AVAILABLE quest.

        Args:
            skill_requirements: Optional list of ``{skill_id, min_level}``

        Raises:
            ValidationError: Missing title, non-positive bounty, bad cooldown
                or malformed skill requirements
            NotFoundError: A required skill does not exist
        """
        if not title or not isinstance(title, str) or not title.strip():
            raise ValidationError('Title is required')
        if not isinstance(bounty, int) or isinstance(bounty, bool) or bounty <= 0:
            raise ValidationError('Bounty must be a positive number')

        is_repeatable = bool(is_repeatable)
        QuestService._validate_repeat(is_repeatable, cooldown_days)
        requirements = SkillService.parse_requirements(skill_requirements)

        quest = Quest(
            title=title.strip(),
            description=description,
            bounty=bounty,
            status='AVAILABLE',
            created_by=creator_id,
            is_repeatable=is_repeatable,
            cooldown_days=cooldown_days if is_repeatable else None
        )
        SkillService.replace_requirements(quest, requirements)
        db.session.add(quest)
        db.session.commit()

        logger.info(f"Quest {quest.id} created by user {creator_id}")
        return quest

    @staticmethod
    def update_quest(quest_id: int, data: dict) -> Quest:
        """Update editable quest fields.

        ``status`` can only be set to AVAILABLE, APPROVED or REJECTED; claims,
        completions and cooldowns go through the quest actions. Setting
        AVAILABLE clears the claim. Turning repeat off during COOLDOWN makes
        the quest AVAILABLE, since nothing would end that cooldown.

        Raises:
            NotFoundError: Quest or required skill not found
            ValidationError: Invalid field values or status
        """
        quest = QuestService.get_quest(quest_id)

        try:
            QuestService._apply_update(quest, data)
        except (ValidationError, NotFoundError):
            db.session.rollback()
            raise

        db.session.commit()
        logger.info(f"Quest {quest_id} updated (status {quest.status})")
        return quest

    @staticmethod
    def _apply_update(quest: Quest, data: dict) -> None:
        if 'title' in data:
            title = data['title']
            if not title or not isinstance(title, str) or not title.strip():
                raise ValidationError('Title is required')
            quest.title = title.strip()

        if 'description' in data:
            quest.description = data['description']

        if 'bounty' in data:
            bounty = data['bounty']
            if not isinstance(bounty, int) or isinstance(bounty, bool) or bounty <= 0:
                raise ValidationError('Bounty must be a positive number')
            quest.bounty = bounty

        if 'is_repeatable' in data or 'cooldown_days' in data:
            is_repeatable = bool(data.get('is_repeatable', quest.is_repeatable))
            cooldown_days = data.get('cooldown_days', quest.cooldown_days)
            QuestService._validate_repeat(is_repeatable, cooldown_days)
            quest.is_repeatable = is_repeatable
            quest.cooldown_days = cooldown_days if is_repeatable else None
            if not is_repeatable and quest.status == 'COOLDOWN':
                quest.status = 'AVAILABLE'

        if 'status' in data and data['status'] != quest.status:
            status = data['status']
            if status not in QUEST_STATUSES:
                raise ValidationError(f'Invalid status: {status}')
            if status not in EDITABLE_STATUSES:
                raise ValidationError(
                    f'Status can only be set to {", ".join(EDITABLE_STATUSES)}; '
                    'use the quest actions for other transitions'
                )
            if status == 'APPROVED' and quest.completed_at is None:
                raise ValidationError('Only completed quests can be marked approved')
            if status == 'AVAILABLE':
                quest.claimed_by = None
                quest.claimed_at = None
                quest.completed_at = None
            quest.status = status

        if 'skill_requirements' in data:
            requirements = SkillService.parse_requirements(data['skill_requirements'] or [])
            SkillService.replace_requirements(quest, requirements)

    @staticmethod
    def delete_quest(quest_id: int) -> None:
        quest = QuestService.get_quest(quest_id)
        db.session.delete(quest)
        db.session.commit()
        logger.info(f"Quest {quest_id} deleted")

    @staticmethod
    def list_quests(status: Optional[str] = None, search: Optional[str] = None,
                    created_by: Optional[int] = None, claimed_by: Optional[int] = None,
                    page: int = 1, limit: int = 10) -> dict:
        """List quests with optional filters and pagination.

        Args:
            status: Single status or comma separated list
            search: Case-insensitive match on title or description
            created_by: Only quests created by this user
            claimed_by: Only quests claimed by this user
            page: 1-based page number
            limit: Page size (max 100)

        Returns:
            dict: {quests: [...], pagination: {...}}
        """
        page = max(page, 1)
        limit = max(min(limit, 100), 1)

        query = Quest.query

        if status:
            statuses = [s.strip() for s in status.split(',') if s.strip()]
            query = query.filter(Quest.status.in_(statuses))

        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(Quest.title.ilike(pattern), Quest.description.ilike(pattern)))

        if created_by is not None:
            query = query.filter(Quest.created_by == created_by)

        if claimed_by is not None:
            query = query.filter(Quest.claimed_by == claimed_by)
            query = query.order_by(Quest.completed_at.desc(), Quest.created_at.desc())
        else:
            query = query.order_by(Quest.created_at.desc(), Quest.id.desc())

        total = query.count()
        quests = query.offset((page - 1) * limit).limit(limit).all()

        return QuestService._page(quests, page, limit, total)

    @staticmethod
    def list_pending_approval(page: int = 1, limit: int = 10) -> dict:
        """Completed quests waiting for review, most recently completed first."""
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        query = Quest.query.filter(Quest.status == 'COMPLETED')
        total = query.count()
        quests = query.order_by(Quest.completed_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return QuestService._page(quests, page, limit, total)

    @staticmethod
    def list_repeatable(page: int = 1, limit: int = 10) -> dict:
        """Repeatable quests that are available or cooling down."""
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        query = Quest.query.filter(
            Quest.is_repeatable.is_(True),
            Quest.status.in_(['AVAILABLE', 'COOLDOWN'])
        )
        total = query.count()
        quests = query.order_by(Quest.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return QuestService._page(quests, page, limit, total)

    @staticmethod
    def completion_history(user_id: int, page: int = 1, limit: int = 10) -> dict:
        """Review decisions on the user's completed quests, newest first."""
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        query = Approval.query.filter(Approval.user_id == user_id)
        total = query.count()
        approvals = (
            query.order_by(Approval.created_at.desc(), Approval.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            'completions': [a.to_dict() for a in approvals],
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': math.ceil(total / limit)
            }
        }

    @staticmethod
    def _page(quests: list, page: int, limit: int, total: int) -> dict:
        return {
            'quests': [q.to_dict() for q in quests],
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': math.ceil(total / limit)
            }
        }
