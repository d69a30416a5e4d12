"""Track the superseded token digest on auth_sessions.

Revision ID: 002_rotation_grace
Revises: 001_initial
Create Date: 2026-10-19

Adds previous_token_hash and rotated_at so requests still carrying the
pre-rotation cookie resolve during a short grace period.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002_rotation_grace'
down_revision: Union[str, None] = '001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        'auth_sessions',
        sa.Column('previous_token_hash', sa.String(64), nullable=True),
    )
    op.add_column(
        'auth_sessions',
        sa.Column('rotated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        'ix_auth_sessions_previous_token_hash', 'auth_sessions', ['previous_token_hash'],
    )


def downgrade() -> None:
    op.drop_index('ix_auth_sessions_previous_token_hash', table_name='auth_sessions')
    op.drop_column('auth_sessions', 'rotated_at')
    op.drop_column('auth_sessions', 'previous_token_hash')
