from __future__ import annotations

import datetime as dt

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trainerflow.domain.session import ConversationMessage, Sender
from trainerflow.models.base import Base, BigIntPK, utcnow


class SessionMessage(Base):
    __tablename__ = "session_messages"

    # Insertion order is conversation order.
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    training_session_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    message_id: Mapped[str] = mapped_column(String(64), nullable=False)

    sender: Mapped[Sender] = mapped_column(
        Enum(Sender, name="message_sender"), nullable=False
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    node_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    media_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    timestamp: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    training_session = relationship("TrainingSession", back_populates="messages")

    __table_args__ = (
        Index("ix_session_messages_session_id_order", "training_session_id", "id"),
    )

    @classmethod
    def from_domain(
        cls, training_session_id: int, message: ConversationMessage
    ) -> SessionMessage:
        return cls(
            training_session_id=training_session_id,
            message_id=message.id,
            sender=message.sender,
            content=message.content,
            node_id=message.node_id,
            media_url=message.media_url,
            timestamp=message.timestamp,
        )

    def to_domain(self) -> ConversationMessage:
        return ConversationMessage(
            id=self.message_id,
            sender=self.sender,
            content=self.content,
            node_id=self.node_id,
            timestamp=self.timestamp,
            media_url=self.media_url,
        )
