"""create pastes table

Revision ID: 001_create_pastes
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_pastes'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Timestamps are epoch milliseconds.
    op.create_table(
        'pastes',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=True),
        sa.Column('remaining_views', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('length(content) >= 1', name='ck_pastes_content_not_empty'),
        sa.CheckConstraint(
            'remaining_views IS NULL OR remaining_views >= 0',
            name='ck_pastes_remaining_views_non_negative',
        ),
    )
    op.create_index(op.f('ix_pastes_expires_at'), 'pastes', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_pastes_expires_at'), table_name='pastes')
    op.drop_table('pastes')
