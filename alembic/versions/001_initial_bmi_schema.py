"""initial bmi schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'bmi_user',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('is_anonymous', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('gender', sa.Text(), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('height', sa.Float(), nullable=True),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('current_bmi', sa.Float(), nullable=True),
        sa.Column('current_category', sa.Text(), nullable=True),
        sa.Column('calculation_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('last_calculation', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index('ix_bmi_user_name_lower', 'bmi_user', [sa.text('lower(name)')], unique=True)
    op.create_index('ix_bmi_user_last_calculation', 'bmi_user', ['last_calculation'])

    op.create_table(
        'bmi_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('gender', sa.Text(), nullable=True),
        sa.Column('height', sa.Float(), nullable=False),
        sa.Column('weight', sa.Float(), nullable=False),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('bmi', sa.Float(), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('calculated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['bmi_user.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_bmi_history_user_id', 'bmi_history', ['user_id'])
    op.create_index('ix_bmi_history_calculated_at', 'bmi_history', ['calculated_at'])


def downgrade() -> None:
    op.drop_index('ix_bmi_history_calculated_at', table_name='bmi_history')
    op.drop_index('ix_bmi_history_user_id', table_name='bmi_history')
    op.drop_table('bmi_history')
    op.drop_index('ix_bmi_user_last_calculation', table_name='bmi_user')
    op.drop_index('ix_bmi_user_name_lower', table_name='bmi_user')
    op.drop_table('bmi_user')
