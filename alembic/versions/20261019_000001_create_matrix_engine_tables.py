"""Create matrix engine tables

Revision ID: 20261019_000001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.DECIMAL(18, 8)


def _level_columns() -> list[sa.Column]:
    return [
        sa.Column(f'level_{level}_count', sa.Integer(), nullable=False, server_default='0')
        for level in range(1, 11)
    ]


def upgrade() -> None:
    # Members
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(64), nullable=False),
        sa.Column('sponsor_username', sa.String(64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('total_earned', MONEY, nullable=False, server_default='0'),
        sa.Column('unpaid_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('reserve_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_members_username', 'members', ['username'], unique=True)
    op.create_index('ix_members_sponsor_username', 'members', ['sponsor_username'])

    # Matrix tiers
    op.create_table(
        'matrix_configs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('width', sa.Integer(), nullable=False),
        sa.Column('depth', sa.Integer(), nullable=False),
        sa.Column('entry_fee', MONEY, nullable=False, server_default='0'),
        sa.Column('payout_mode', sa.String(24), nullable=False, server_default='PER_PLACEMENT'),
        sa.Column('referral_bonus', MONEY, nullable=False, server_default='0'),
        sa.Column('referral_reserve_percent', sa.DECIMAL(5, 2), nullable=False, server_default='0'),
        sa.Column('pay_referral_on_reentry', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cycle_bonus', MONEY, nullable=False, server_default='0'),
        sa.Column('matching_bonus', MONEY, nullable=False, server_default='0'),
        sa.Column('spillover_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('reentry_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reentry_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('width >= 1', name='check_matrix_width_positive'),
        sa.CheckConstraint('depth >= 1 AND depth <= 10', name='check_matrix_depth_range'),
        sa.CheckConstraint(
            'referral_reserve_percent >= 0 AND referral_reserve_percent <= 100',
            name='check_matrix_reserve_percent_range',
        ),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'matrix_level_payouts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('config_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('commission', MONEY, nullable=False, server_default='0'),
        sa.Column('matching_commission', MONEY, nullable=False, server_default='0'),
        sa.Column('cycle_commission', MONEY, nullable=False, server_default='0'),
        sa.Column('cycle_matching_commission', MONEY, nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['config_id'], ['matrix_configs.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('config_id', 'level', name='uq_matrix_level_payout'),
        sa.CheckConstraint('level >= 1 AND level <= 10', name='check_level_payout_range'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_matrix_level_payouts_config_id', 'matrix_level_payouts', ['config_id'])

    op.create_table(
        'matrix_cycle_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('config_id', sa.Integer(), nullable=False),
        sa.Column('target_config_id', sa.Integer(), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['config_id'], ['matrix_configs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['target_config_id'], ['matrix_configs.id'], ondelete='CASCADE'),
        sa.CheckConstraint('count >= 1', name='check_cycle_entry_count_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_matrix_cycle_entries_config_id', 'matrix_cycle_entries', ['config_id'])

    # Positions
    op.create_table(
        'matrix_nodes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('config_id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(64), nullable=False),
        sa.Column('sponsor_username', sa.String(64), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('main_id', sa.Integer(), nullable=True),
        sa.Column('entry_type', sa.String(16), nullable=False, server_default='NEW'),
        sa.Column('pending_entry_id', sa.Integer(), nullable=True),
        *_level_columns(),
        sa.Column('total_earned', MONEY, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('cycled_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['config_id'], ['matrix_configs.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['parent_id'], ['matrix_nodes.id'], ondelete='RESTRICT'),
        sa.CheckConstraint('level_1_count >= 0', name='check_node_level_1_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_matrix_nodes_config_id', 'matrix_nodes', ['config_id'])
    op.create_index('ix_matrix_nodes_parent_id', 'matrix_nodes', ['parent_id'])
    op.create_index('ix_matrix_nodes_main_id', 'matrix_nodes', ['main_id'])
    op.create_index('idx_matrix_nodes_config_created', 'matrix_nodes', ['config_id', 'created_at', 'id'])
    op.create_index('idx_matrix_nodes_config_username', 'matrix_nodes', ['config_id', 'username'])

    # Queue
    op.create_table(
        'pending_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(64), nullable=False),
        sa.Column('config_id', sa.Integer(), nullable=False),
        sa.Column('sponsor_username', sa.String(64), nullable=True),
        sa.Column('entry_type', sa.String(16), nullable=False, server_default='NEW'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('in_dlq', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_pending_entries_drain', 'pending_entries', ['in_dlq', 'created_at', 'id'])
    op.create_index('idx_pending_entries_username_config', 'pending_entries', ['username', 'config_id'])

    # Ledger
    op.create_table(
        'ledger_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(64), nullable=False),
        sa.Column('source_node_id', sa.Integer(), nullable=False),
        sa.Column('config_id', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('reserve_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('purpose', sa.String(32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('amount > 0', name='check_ledger_amount_positive'),
        sa.CheckConstraint(
            'reserve_amount >= 0 AND reserve_amount <= amount',
            name='check_ledger_reserve_within_amount',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ledger_records_purpose', 'ledger_records', ['purpose'])
    op.create_index('idx_ledger_records_username_created', 'ledger_records', ['username', 'created_at'])
    op.create_index('idx_ledger_records_source_node', 'ledger_records', ['source_node_id'])

    # Drain lock
    op.create_table(
        'drain_locks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_name', sa.String(64), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='IDLE'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_run_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('claim_token', sa.String(36), nullable=True),
        sa.Column('last_entry_id', sa.Integer(), nullable=True),
        sa.Column('processed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_drain_locks_job_name', 'drain_locks', ['job_name'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_drain_locks_job_name', 'drain_locks')
    op.drop_table('drain_locks')

    op.drop_index('idx_ledger_records_source_node', 'ledger_records')
    op.drop_index('idx_ledger_records_username_created', 'ledger_records')
    op.drop_index('ix_ledger_records_purpose', 'ledger_records')
    op.drop_table('ledger_records')

    op.drop_index('idx_pending_entries_username_config', 'pending_entries')
    op.drop_index('idx_pending_entries_drain', 'pending_entries')
    op.drop_table('pending_entries')

    op.drop_index('idx_matrix_nodes_config_username', 'matrix_nodes')
    op.drop_index('idx_matrix_nodes_config_created', 'matrix_nodes')
    op.drop_index('ix_matrix_nodes_main_id', 'matrix_nodes')
    op.drop_index('ix_matrix_nodes_parent_id', 'matrix_nodes')
    op.drop_index('ix_matrix_nodes_config_id', 'matrix_nodes')
    op.drop_table('matrix_nodes')

    op.drop_index('ix_matrix_cycle_entries_config_id', 'matrix_cycle_entries')
    op.drop_table('matrix_cycle_entries')
    op.drop_index('ix_matrix_level_payouts_config_id', 'matrix_level_payouts')
    op.drop_table('matrix_level_payouts')
    op.drop_table('matrix_configs')

    op.drop_index('ix_members_sponsor_username', 'members')
    op.drop_index('ix_members_username', 'members')
    op.drop_table('members')
