from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import DateTime, Enum, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trainerflow.domain.graph import FlowDocument, FlowStatus
from trainerflow.models.base import Base, BigIntPK, JSONDocument, utcnow


class TrainerFlow(Base):
    __tablename__ = "trainer_flows"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    # Owner. Trainers live in an external store, so no FK here.
    trainer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    version: Mapped[str] = mapped_column(
        String(32), nullable=False, default="1.0.0", server_default="1.0.0"
    )

    status: Mapped[FlowStatus] = mapped_column(
        Enum(FlowStatus, name="flow_status"),
        nullable=False,
        default=FlowStatus.draft,
        server_default=FlowStatus.draft.value,
    )

    # Wire-shaped (camelCase) node / edge / settings documents
    nodes: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    edges: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    settings: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )
    flow_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONDocument, nullable=False, default=dict
    )

    published_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    published_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    sessions = relationship(
        "TrainingSession", back_populates="flow", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_trainer_flows_trainer_status", "trainer_id", "status"),
        Index("ix_trainer_flows_trainer_created_at", "trainer_id", "created_at"),
    )

    def to_document(self) -> FlowDocument:
        return FlowDocument.model_validate(
            {
                "name": self.name,
                "version": self.version,
                "status": self.status,
                "nodes": self.nodes,
                "edges": self.edges,
                "settings": self.settings,
            }
        )
