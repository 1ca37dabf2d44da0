"""session duration and per-answer responses

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op


revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "training_sessions",
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
    )
    op.add_column(
        "training_sessions",
        sa.Column(
            "user_responses",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
    )


def downgrade() -> None:
    op.drop_column("training_sessions", "user_responses")
    op.drop_column("training_sessions", "duration")
