"""create users, wallet transactions and admin action log tables

Revision ID: 3c1f6a2d9b10
Revises:
Create Date: 2026-10-12 10:02:41

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f6a2d9b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('phone_number', sa.String(length=30), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=50), nullable=True),
        sa.Column('last_name', sa.String(length=50), nullable=True),
        sa.Column('preferred_language', sa.String(length=20), nullable=True),
        sa.Column('theme', sa.String(length=10), nullable=True),
        sa.Column('pin_hash', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('role', sa.Enum('user', 'admin', name='user_role'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('pending_verification', sa.Boolean(), nullable=False),
        sa.Column('phone_verified', sa.Boolean(), nullable=False),
        sa.Column('is_two_factor_enabled', sa.Boolean(), nullable=False),
        sa.Column('two_factor_secret', sa.String(length=64), nullable=True),
        sa.Column('two_factor_last_step', sa.Integer(), nullable=True),
        sa.Column('password_reset_token', sa.String(length=64), nullable=True),
        sa.Column('password_reset_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pin_reset_code', sa.String(length=64), nullable=True),
        sa.Column('pin_reset_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verification_code', sa.String(length=64), nullable=True),
        sa.Column('verification_code_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_active', sa.DateTime(timezone=True), nullable=True),
        sa.Column('login_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bonus_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('balance >= 0', name='ck_users_balance_non_negative'),
        sa.CheckConstraint('bonus_balance >= 0', name='ck_users_bonus_balance_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_phone_number', 'users', ['phone_number'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_is_active', 'users', ['is_active'], unique=False)
    op.create_index('ix_users_password_reset_token', 'users', ['password_reset_token'], unique=False)
    op.create_index('ix_users_pin_reset_code', 'users', ['pin_reset_code'], unique=False)

    op.create_table(
        'wallet_transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column(
            'type',
            sa.Enum('welcome-bonus', 'admin-adjustment', 'purchase', 'refund', 'topup', 'bonus',
                    name='wallet_transaction_type'),
            nullable=False,
        ),
        sa.Column('direction', sa.Enum('credit', 'debit', name='wallet_direction'), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('bonus_balance_after', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_wallet_transactions_user_id_created_at',
        'wallet_transactions',
        ['user_id', 'created_at'],
        unique=False,
    )

    op.create_table(
        'admin_action_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('actor_id', sa.Uuid(), nullable=True),
        sa.Column('target_user_id', sa.Uuid(), nullable=True),
        sa.Column('target_label', sa.String(length=50), nullable=True),
        sa.Column(
            'action',
            sa.Enum('CREATE_ADMIN', 'SET_ROLE', 'DEACTIVATE_USER', 'ACTIVATE_USER', 'PURGE_USER',
                    'RESET_PIN', 'ADJUST_BALANCE', name='admin_action'),
            nullable=False,
        ),
        sa.Column('before', sa.String(length=100), nullable=True),
        sa.Column('after', sa.String(length=100), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['target_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('admin_action_logs')
    op.drop_index('ix_wallet_transactions_user_id_created_at', table_name='wallet_transactions')
    op.drop_table('wallet_transactions')
    op.drop_index('ix_users_pin_reset_code', table_name='users')
    op.drop_index('ix_users_password_reset_token', table_name='users')
    op.drop_index('ix_users_is_active', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_phone_number', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
    sa.Enum(name='admin_action').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='wallet_direction').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='wallet_transaction_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
