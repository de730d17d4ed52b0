"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from turfease.migrations.util import get_timestamp_default, get_uuid_type


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    uuid = get_uuid_type()
    now = get_timestamp_default()

    op.create_table(
        'accounts',
        sa.Column('account_id', uuid, primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=30), nullable=True),
        sa.Column('username_canonical', sa.String(length=30), nullable=True),
        sa.Column('firebase_uid', sa.String(length=128), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('reset_password_token_hash', sa.String(length=64), nullable=True),
        sa.Column('reset_password_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('phone', sa.String(length=30), nullable=False, server_default='0000000000'),
        sa.Column('avatar', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('preferred_sports', sa.JSON(), nullable=False),
        sa.Column('skill_level', sa.String(length=20), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('business_name', sa.String(length=100), nullable=True),
        sa.Column('business_address', sa.String(length=255), nullable=True),
        sa.Column('business_phone', sa.String(length=30), nullable=True),
        sa.Column('turf_count', sa.String(length=10), nullable=True),
        sa.Column('role', sa.String(length=10), nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approval_status', sa.String(length=10), nullable=False),
        sa.Column('is_approved_by_admin', sa.Boolean(), nullable=False),
        sa.Column('approval_decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approval_notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_blocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('agree_to_terms', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('agree_to_marketing', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('email', name='uq_accounts_email'),
        sa.UniqueConstraint('username_canonical', name='uq_accounts_username_canonical'),
        sa.UniqueConstraint('firebase_uid', name='uq_accounts_firebase_uid'),
    )
    op.create_index('ix_accounts_role', 'accounts', ['role'])
    op.create_index('ix_accounts_approval_status', 'accounts', ['approval_status'])
    op.create_index('ix_accounts_reset_password_token_hash', 'accounts', ['reset_password_token_hash'])

    op.create_table(
        'refresh_tokens',
        sa.Column('token_id', uuid, primary_key=True),
        sa.Column('account_id', uuid, sa.ForeignKey('accounts.account_id', ondelete='CASCADE'), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_refresh_tokens_account_id', 'refresh_tokens', ['account_id'])
    op.create_index('ix_refresh_tokens_token_hash', 'refresh_tokens', ['token_hash'])

    op.create_table(
        'turfs',
        sa.Column('turf_id', uuid, primary_key=True),
        sa.Column('owner_id', uuid, sa.ForeignKey('accounts.account_id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('price_per_hour', sa.Float(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
    )
    op.create_index('ix_turfs_owner_id', 'turfs', ['owner_id'])
    op.create_index('ix_turfs_lat_lng', 'turfs', ['latitude', 'longitude'])


def downgrade() -> None:
    op.drop_index('ix_turfs_lat_lng', table_name='turfs')
    op.drop_index('ix_turfs_owner_id', table_name='turfs')
    op.drop_table('turfs')
    op.drop_index('ix_refresh_tokens_token_hash', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_account_id', table_name='refresh_tokens')
    op.drop_table('refresh_tokens')
    op.drop_index('ix_accounts_reset_password_token_hash', table_name='accounts')
    op.drop_index('ix_accounts_approval_status', table_name='accounts')
    op.drop_index('ix_accounts_role', table_name='accounts')
    op.drop_table('accounts')
