"""create two_factor_auth table

Revision ID: 20261019_000001
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    conn = op.get_bind()
    inspector = inspect(conn)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    # users is shared with the sign-in service; only create it on a fresh database
    if not table_exists('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.String(36), nullable=False),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'two_factor_auth',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('totp_enabled', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('totp_verified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('totp_secret', sa.String(32), nullable=True),
        sa.Column('backup_codes', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('sms_enabled', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('phone_verified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('phone_number', sa.String(16), nullable=True),
        sa.Column('sms_code', sa.String(6), nullable=True),
        sa.Column('sms_code_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_two_factor_auth_user_id', 'two_factor_auth', ['user_id'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_two_factor_auth_user_id', table_name='two_factor_auth')
    op.drop_table('two_factor_auth')
