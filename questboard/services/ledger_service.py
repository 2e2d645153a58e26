"""Reward ledger.

Applies bounty and experience deltas to user rows. Nothing here commits:
callers own the transaction so the ledger change lands together with the
quest or store status change it belongs to.
"""

import logging

from sqlalchemy import update

from models import db, User
from services.errors import NotFoundError, InsufficientFundsError

logger = logging.getLogger(__name__)


class LedgerService:
    """Bounty/experience bookkeeping on the users table."""

    @staticmethod
    def _get_user(user_id: int) -> User:
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError(f'User {user_id} not found')
        return user

    @staticmethod
    def credit_approval(user_id: int, bounty: int, experience: int) -> tuple[int, int]:
        """Credit bounty and experience for an approved quest.

        Args:
            user_id: Claimant receiving the reward
            bounty: Bounty to add to the balance
            experience: Experience to add

        Returns:
            Tuple of (old_experience, new_experience)

        Raises:
            NotFoundError: User not found
        """
        user = LedgerService._get_user(user_id)
        old_experience = user.experience

        db.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                bounty_balance=User.bounty_balance + bounty,
                experience=User.experience + experience,
            )
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(user)

        logger.info(f"Credited user {user_id}: +{bounty} bounty, +{experience} XP")
        return old_experience, user.experience

    @staticmethod
    def debit(user_id: int, amount: int) -> int:
        """Remove bounty from a balance, refusing to go below zero.

        Returns:
            The new balance

        Raises:
            NotFoundError: User not found
            InsufficientFundsError: Balance lower than amount
        """
        user = LedgerService._get_user(user_id)

        # Conditional decrement so two racing debits cannot both pass the check
        result = db.session.execute(
            update(User)
            .where(User.id == user_id, User.bounty_balance >= amount)
            .values(bounty_balance=User.bounty_balance - amount)
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(user)

        if result.rowcount == 0:
            raise InsufficientFundsError(
                f'Insufficient bounty balance (need {amount}, have {user.bounty_balance})',
                required=amount,
                current=user.bounty_balance
            )

        return user.bounty_balance

    @staticmethod
    def credit(user_id: int, amount: int) -> int:
        """Add bounty unconditionally (refunds, seller payouts).

        Returns:
            The new balance
        """
        user = LedgerService._get_user(user_id)
        db.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(bounty_balance=User.bounty_balance + amount)
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(user)
        return user.bounty_balance
