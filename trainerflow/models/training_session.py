from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trainerflow.domain.session import (
    ConversationMessage,
    SessionProgress,
    SessionState,
    SessionStatus,
    UserResponse,
)
from trainerflow.models.base import Base, BigIntPK, JSONDocument, utcnow


class TrainingSession(Base):
    __tablename__ = "training_sessions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    session_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    trainer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    flow_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("trainer_flows.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, name="session_status"),
        nullable=False,
        default=SessionStatus.active,
    )
    progress: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )

    started_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    ended_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # seconds
    duration: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    # Per-answer log for question nodes
    user_responses: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )

    # Optimistic lock: a turn written from a stale read fails on flush.
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    flow = relationship("TrainerFlow", back_populates="sessions")
    messages = relationship(
        "SessionMessage",
        back_populates="training_session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SessionMessage.id",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_training_sessions_trainer_status", "trainer_id", "status"),
    )

    def to_state(self, messages: list[ConversationMessage]) -> SessionState:
        return SessionState(
            session_id=self.session_id,
            trainer_id=self.trainer_id,
            flow_id=self.flow_id,
            user_id=self.user_id,
            status=self.status,
            progress=SessionProgress.model_validate(self.progress or {}),
            conversation=messages,
            user_responses=[
                UserResponse.model_validate(r) for r in self.user_responses or []
            ],
            started_at=self.started_at,
            ended_at=self.ended_at,
            duration=self.duration or 0,
        )
