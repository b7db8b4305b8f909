"""initial schema: users, password resets, usage accounts, generations, metal rates

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('phone_number', sa.String(50), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('is_premium', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('monthly', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('password_resets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('otp_hash', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_password_resets_email_created', 'password_resets', ['email', 'created_at'])

    op.create_table('usage_accounts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('identity', sa.String(255), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('remaining_uses', sa.Integer(), nullable=False),
        sa.Column('is_unlimited', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_reset', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('remaining_uses >= 0', name='ck_usage_accounts_remaining_non_negative'),
    )
    op.create_index('ix_usage_accounts_identity', 'usage_accounts', ['identity'], unique=True)
    op.create_index('ix_usage_accounts_user_id', 'usage_accounts', ['user_id'])

    op.create_table('contract_generations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('identity', sa.String(255), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('contract_type', sa.String(50), nullable=False),
        sa.Column('used_fields', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_contract_generations_user_id', 'contract_generations', ['user_id'])
    op.create_index('ix_contract_generations_contract_type', 'contract_generations', ['contract_type'])
    op.create_index('idx_contract_generations_created', 'contract_generations', ['created_at'])

    op.create_table('metal_rates',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('gold', sa.Numeric(12, 2), nullable=False),
        sa.Column('silver', sa.Numeric(12, 2), nullable=False),
        sa.Column('fetched_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('is_fallback', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('idx_metal_rates_fetched_at', 'metal_rates', ['fetched_at'])


def downgrade() -> None:
    op.drop_index('idx_metal_rates_fetched_at', table_name='metal_rates')
    op.drop_table('metal_rates')
    op.drop_index('idx_contract_generations_created', table_name='contract_generations')
    op.drop_index('ix_contract_generations_contract_type', table_name='contract_generations')
    op.drop_index('ix_contract_generations_user_id', table_name='contract_generations')
    op.drop_table('contract_generations')
    op.drop_index('ix_usage_accounts_user_id', table_name='usage_accounts')
    op.drop_index('ix_usage_accounts_identity', table_name='usage_accounts')
    op.drop_table('usage_accounts')
    op.drop_index('idx_password_resets_email_created', table_name='password_resets')
    op.drop_table('password_resets')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
