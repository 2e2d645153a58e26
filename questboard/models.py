"""
SQLAlchemy models for Quest Board.

This module defines the database models for the quest tracking system.
Uses Flask-SQLAlchemy for ORM integration with Flask.
"""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint, Index
from sqlalchemy.orm import relationship

from utils.leveling import calculate_level
from utils.timezone import utc_now, isoformat_utc

db = SQLAlchemy()

USER_ROLES = ('ADMIN', 'EDITOR', 'PLAYER')
QUEST_STATUSES = ('AVAILABLE', 'CLAIMED', 'COMPLETED', 'APPROVED', 'REJECTED', 'COOLDOWN')
APPROVAL_STATUSES = ('APPROVED', 'REJECTED')
TRANSACTION_STATUSES = ('PENDING', 'APPROVED', 'REJECTED')
DELIVERY_STATUSES = ('SENT', 'FAILED', 'SKIPPED')
MIN_SKILL_LEVEL = 1
MAX_SKILL_LEVEL = 5
NOTIFICATION_TYPES = (
    'QUEST_APPROVED',
    'QUEST_REJECTED',
    'QUEST_CLAIMED',
    'QUEST_COMPLETED',
    'QUEST_AVAILABLE',
    'STORE_PURCHASE',
    'STORE_APPROVED',
    'STORE_REJECTED',
    'LEVEL_UP',
    'ADMIN_APPROVAL_NEEDED',
    'SYSTEM_MESSAGE',
)


def _in_clause(column: str, values: tuple) -> str:
    quoted = ', '.join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class User(db.Model):
    """User model for admins, editors and players."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    auth_id = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(20), default='PLAYER', nullable=False)
    bounty_balance = db.Column(db.Integer, default=0, nullable=False)
    experience = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    created_quests = relationship('Quest', foreign_keys='Quest.created_by', back_populates='creator')
    claimed_quests = relationship('Quest', foreign_keys='Quest.claimed_by', back_populates='claimer')
    notifications = relationship('Notification', back_populates='user', cascade='all, delete-orphan')
    skills = relationship('UserSkill', back_populates='user', cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint(_in_clause('role', USER_ROLES), name='check_user_role'),
    )

    def __repr__(self):
        return f'<User {self.name} ({self.role})>'

    @property
    def level(self) -> int:
        return calculate_level(self.experience or 0)

    @property
    def is_admin(self) -> bool:
        return self.role == 'ADMIN'

    def to_dict(self) -> dict:
        """Serialize User to dictionary for JSON responses."""
        return {
            'id': self.id,
            'auth_id': self.auth_id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'bounty_balance': self.bounty_balance,
            'experience': self.experience,
            'level': self.level,
            'created_at': isoformat_utc(self.created_at),
            'updated_at': isoformat_utc(self.updated_at)
        }


class Quest(db.Model):
    """A quest that players claim, complete and get approved for bounty."""

    __tablename__ = 'quests'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    bounty = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), default='AVAILABLE', nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    claimed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    claimed_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    # Repeatable quests go into cooldown after approval
    is_repeatable = db.Column(db.Boolean, default=False, nullable=False)
    cooldown_days = db.Column(db.Integer, nullable=True)
    last_completed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    creator = relationship('User', foreign_keys=[created_by], back_populates='created_quests')
    claimer = relationship('User', foreign_keys=[claimed_by], back_populates='claimed_quests')
    approvals = relationship('Approval', back_populates='quest', cascade='all, delete-orphan')
    required_skills = relationship('QuestRequiredSkill', back_populates='quest', cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint(_in_clause('status', QUEST_STATUSES), name='check_quest_status'),
        CheckConstraint('bounty > 0', name='check_quest_bounty_positive'),
        CheckConstraint('cooldown_days IS NULL OR cooldown_days > 0', name='check_quest_cooldown_positive'),
        Index('idx_quests_status', 'status'),
        Index('idx_quests_claimed_by', 'claimed_by'),
    )

    def __repr__(self):
        return f'<Quest {self.title} ({self.status})>'

    def to_dict(self) -> dict:
        """Serialize Quest to dictionary for JSON responses."""
        return {
            'id': self.id,
            'quest_id': self.id,
            'title': self.title,
            'description': self.description,
            'bounty': self.bounty,
            'status': self.status,
            'created_by': self.created_by,
            'creator_name': self.creator.name if self.creator else None,
            'claimed_by': self.claimed_by,
            'claimed_by_name': self.claimer.name if self.claimer else None,
            'claimed_at': isoformat_utc(self.claimed_at),
            'completed_at': isoformat_utc(self.completed_at),
            'is_repeatable': self.is_repeatable,
            'cooldown_days': self.cooldown_days,
            'last_completed_at': isoformat_utc(self.last_completed_at),
            'required_skills': [r.to_dict() for r in self.required_skills],
            'created_at': isoformat_utc(self.created_at),
            'updated_at': isoformat_utc(self.updated_at)
        }


class Approval(db.Model):
    """Record of a review decision on a completed quest."""

    __tablename__ = 'approvals'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    quest_id = db.Column(db.Integer, db.ForeignKey('quests.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)  # Claimant
    reviewer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    status = db.Column(db.String(20), nullable=False)
    notes = db.Column(db.Text)

    # Reward actually credited (zero for rejections)
    bounty = db.Column(db.Integer, default=0, nullable=False)
    experience = db.Column(db.Integer, default=0, nullable=False)

    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    # Relationships
    quest = relationship('Quest', back_populates='approvals')
    user = relationship('User', foreign_keys=[user_id])
    reviewer = relationship('User', foreign_keys=[reviewer_id])

    __table_args__ = (
        CheckConstraint(_in_clause('status', APPROVAL_STATUSES), name='check_approval_status'),
        Index('idx_approvals_user', 'user_id'),
        Index('idx_approvals_created_at', 'created_at'),
    )

    def __repr__(self):
        return f'<Approval quest_id={self.quest_id} status={self.status}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'quest_id': self.quest_id,
            'quest_title': self.quest.title if self.quest else None,
            'user_id': self.user_id,
            'reviewer_id': self.reviewer_id,
            'status': self.status,
            'notes': self.notes,
            'bounty': self.bounty,
            'experience': self.experience,
            'completed_at': isoformat_utc(self.completed_at),
            'created_at': isoformat_utc(self.created_at)
        }


class Notification(db.Model):
    """User-facing event notification."""

    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    type = db.Column(db.String(40), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    read_at = db.Column(db.DateTime, nullable=True)

    # Outcome of the hand-off to the notification sink
    delivery_status = db.Column(db.String(10), nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    user = relationship('User', back_populates='notifications')

    __table_args__ = (
        CheckConstraint(_in_clause('type', NOTIFICATION_TYPES), name='check_notification_type'),
        CheckConstraint(
            'delivery_status IS NULL OR ' + _in_clause('delivery_status', DELIVERY_STATUSES),
            name='check_notification_delivery_status'
        ),
        Index('idx_notifications_user_read', 'user_id', 'is_read'),
        Index('idx_notifications_created_at', 'created_at'),
    )

    def __repr__(self):
        return f'<Notification user_id={self.user_id} type={self.type}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.data,
            'is_read': self.is_read,
            'read_at': isoformat_utc(self.read_at),
            'delivery_status': self.delivery_status,
            'created_at': isoformat_utc(self.created_at)
        }


class StoreItem(db.Model):
    """Item that can be bought with bounty."""

    __tablename__ = 'store_items'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    cost = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    creator = relationship('User', foreign_keys=[created_by])
    transactions = relationship('StoreTransaction', back_populates='item')

    __table_args__ = (
        CheckConstraint('cost > 0', name='check_store_item_cost_positive'),
    )

    def __repr__(self):
        return f'<StoreItem {self.name} ({self.cost} bounty)>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'cost': self.cost,
            'is_active': self.is_active,
            'created_by': self.created_by,
            'created_at': isoformat_utc(self.created_at),
            'updated_at': isoformat_utc(self.updated_at)
        }


class StoreTransaction(db.Model):
    """Purchase of a store item, pending until an admin or editor processes it."""

    __tablename__ = 'store_transactions'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    item_id = db.Column(db.Integer, db.ForeignKey('store_items.id'), nullable=False)
    buyer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    seller_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), default='PENDING', nullable=False)
    notes = db.Column(db.Text)
    processed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    item = relationship('StoreItem', back_populates='transactions')
    buyer = relationship('User', foreign_keys=[buyer_id])
    seller = relationship('User', foreign_keys=[seller_id])
    processor = relationship('User', foreign_keys=[processed_by])

    __table_args__ = (
        CheckConstraint(_in_clause('status', TRANSACTION_STATUSES), name='check_store_transaction_status'),
        Index('idx_store_transactions_status', 'status'),
        Index('idx_store_transactions_buyer', 'buyer_id'),
    )

    def __repr__(self):
        return f'<StoreTransaction item_id={self.item_id} buyer_id={self.buyer_id} status={self.status}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'transaction_id': self.id,
            'item_id': self.item_id,
            'item_name': self.item.name if self.item else None,
            'buyer_id': self.buyer_id,
            'buyer_name': self.buyer.name if self.buyer else None,
            'seller_id': self.seller_id,
            'amount': self.amount,
            'status': self.status,
            'notes': self.notes,
            'processed_by': self.processed_by,
            'processed_at': isoformat_utc(self.processed_at),
            'created_at': isoformat_utc(self.created_at)
        }


class Skill(db.Model):
    """A named skill that quests can require."""

    __tablename__ = 'skills'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f'<Skill {self.name}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'is_active': self.is_active,
            'created_by': self.created_by,
            'created_at': isoformat_utc(self.created_at),
            'updated_at': isoformat_utc(self.updated_at)
        }


class UserSkill(db.Model):
    """Level (1-5) a user holds in a skill."""

    __tablename__ = 'user_skills'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    skill_id = db.Column(db.Integer, db.ForeignKey('skills.id'), nullable=False)
    level = db.Column(db.Integer, default=MIN_SKILL_LEVEL, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship('User', back_populates='skills')
    skill = relationship('Skill')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'skill_id', name='uq_user_skill'),
        CheckConstraint(f'level BETWEEN {MIN_SKILL_LEVEL} AND {MAX_SKILL_LEVEL}', name='check_user_skill_level'),
    )

    def __repr__(self):
        return f'<UserSkill user_id={self.user_id} skill_id={self.skill_id} level={self.level}>'

    def to_dict(self) -> dict:
        return {
            'user_id': self.user_id,
            'skill_id': self.skill_id,
            'skill_name': self.skill.name if self.skill else None,
            'level': self.level,
            'updated_at': isoformat_utc(self.updated_at)
        }


class QuestRequiredSkill(db.Model):
    """Minimum skill level needed to claim a quest."""

    __tablename__ = 'quest_required_skills'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    quest_id = db.Column(db.Integer, db.ForeignKey('quests.id', ondelete='CASCADE'), nullable=False)
    skill_id = db.Column(db.Integer, db.ForeignKey('skills.id'), nullable=False)
    min_level = db.Column(db.Integer, default=MIN_SKILL_LEVEL, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    quest = relationship('Quest', back_populates='required_skills')
    skill = relationship('Skill')

    __table_args__ = (
        db.UniqueConstraint('quest_id', 'skill_id', name='uq_quest_required_skill'),
        CheckConstraint(
            f'min_level BETWEEN {MIN_SKILL_LEVEL} AND {MAX_SKILL_LEVEL}',
            name='check_quest_required_skill_level'
        ),
    )

    def __repr__(self):
        return f'<QuestRequiredSkill quest_id={self.quest_id} skill_id={self.skill_id} min_level={self.min_level}>'

    def to_dict(self) -> dict:
        return {
            'skill_id': self.skill_id,
            'skill_name': self.skill.name if self.skill else None,
            'min_level': self.min_level
        }
