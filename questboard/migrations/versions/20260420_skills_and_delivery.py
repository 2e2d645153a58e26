"""Add skills, quest skill requirements and notification delivery tracking

Revision ID: 8c2d4e6f7a91
Revises: 4f1a2b3c5d6e
Create Date: 2026-04-20 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8c2d4e6f7a91'
down_revision = '4f1a2b3c5d6e'
branch_labels = None
depends_on = None


def upgrade():
    """Create skill tables and add delivery columns to notifications."""
    op.create_table(
        'skills',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table(
        'user_skills',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('skill_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('level BETWEEN 1 AND 5', name='check_user_skill_level'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['skill_id'], ['skills.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'skill_id', name='uq_user_skill')
    )

    op.create_table(
        'quest_required_skills',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('quest_id', sa.Integer(), nullable=False),
        sa.Column('skill_id', sa.Integer(), nullable=False),
        sa.Column('min_level', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('min_level BETWEEN 1 AND 5', name='check_quest_required_skill_level'),
        sa.ForeignKeyConstraint(['quest_id'], ['quests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['skill_id'], ['skills.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quest_id', 'skill_id', name='uq_quest_required_skill')
    )

    with op.batch_alter_table('notifications', schema=None) as batch_op:
        batch_op.add_column(sa.Column('delivery_status', sa.String(length=10), nullable=True))
        batch_op.add_column(sa.Column('delivered_at', sa.DateTime(), nullable=True))
        batch_op.create_check_constraint(
            'check_notification_delivery_status',
            "delivery_status IS NULL OR delivery_status IN ('SENT', 'FAILED', 'SKIPPED')"
        )


def downgrade():
    """Drop skill tables and notification delivery columns."""
    with op.batch_alter_table('notifications', schema=None) as batch_op:
        batch_op.drop_constraint('check_notification_delivery_status', type_='check')
        batch_op.drop_column('delivered_at')
        batch_op.drop_column('delivery_status')

    op.drop_table('quest_required_skills')
    op.drop_table('user_skills')
    op.drop_table('skills')
