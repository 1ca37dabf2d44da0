"""trainer flows, training sessions and session messages

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    flow_status = sa.Enum("draft", "published", name="flow_status")
    session_status = sa.Enum("active", "completed", name="session_status")
    message_sender = sa.Enum("ai", "user", name="message_sender")

    op.create_table(
        "trainer_flows",
        sa.Column(
            "id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False
        ),
        sa.Column("trainer_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "version",
            sa.String(length=32),
            nullable=False,
            server_default="1.0.0",
        ),
        sa.Column(
            "status", flow_status, nullable=False, server_default="draft"
        ),
        sa.Column(
            "nodes",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "edges",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "settings",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_trainer_flows_trainer_id", "trainer_flows", ["trainer_id"])
    op.create_index(
        "ix_trainer_flows_trainer_status", "trainer_flows", ["trainer_id", "status"]
    )
    op.create_index(
        "ix_trainer_flows_trainer_created_at",
        "trainer_flows",
        ["trainer_id", "created_at"],
    )

    op.create_table(
        "training_sessions",
        sa.Column(
            "id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False
        ),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("trainer_id", sa.String(length=64), nullable=False),
        sa.Column(
            "flow_id",
            sa.BigInteger(),
            sa.ForeignKey("trainer_flows.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("status", session_status, nullable=False),
        sa.Column(
            "progress",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_training_sessions_session_id",
        "training_sessions",
        ["session_id"],
        unique=True,
    )
    op.create_index(
        "ix_training_sessions_trainer_status",
        "training_sessions",
        ["trainer_id", "status"],
    )

    op.create_table(
        "session_messages",
        sa.Column(
            "id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False
        ),
        sa.Column(
            "training_session_id",
            sa.BigInteger(),
            sa.ForeignKey("training_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("message_id", sa.String(length=64), nullable=False),
        sa.Column("sender", message_sender, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("node_id", sa.String(length=255), nullable=True),
        sa.Column("media_url", sa.String(length=2048), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_session_messages_training_session_id",
        "session_messages",
        ["training_session_id"],
    )
    op.create_index(
        "ix_session_messages_session_id_order",
        "session_messages",
        ["training_session_id", "id"],
    )


def downgrade() -> None:
    op.drop_table("session_messages")
    op.drop_table("training_sessions")
    op.drop_table("trainer_flows")
    sa.Enum(name="message_sender").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="session_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="flow_status").drop(op.get_bind(), checkfirst=True)
