from __future__ import annotations

import datetime as dt

from pydantic import Field

from trainerflow.domain.base import CamelModel
from trainerflow.domain.graph import (
    Edge,
    FlowMetadata,
    FlowSettings,
    FlowStatus,
    Node,
)
from trainerflow.models.trainer_flow import TrainerFlow


class FlowValidateRequest(CamelModel):
    nodes: list[Node]
    edges: list[Edge]
    settings: FlowSettings | None = None


class FlowCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    settings: FlowSettings = Field(default_factory=FlowSettings)


class FlowUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    version: str | None = Field(default=None, min_length=1, max_length=32)
    nodes: list[Node] | None = None
    edges: list[Edge] | None = None
    settings: FlowSettings | None = None


class FlowPublishRequest(CamelModel):
    published_by: str | None = Field(default=None, max_length=64)


class FlowSummaryOut(CamelModel):
    id: int
    trainer_id: str
    name: str
    version: str
    status: FlowStatus
    metadata: FlowMetadata
    published_at: dt.datetime | None
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_row(cls, flow: TrainerFlow) -> FlowSummaryOut:
        return cls(
            id=flow.id,
            trainer_id=flow.trainer_id,
            name=flow.name,
            version=flow.version,
            status=flow.status,
            metadata=FlowMetadata.model_validate(flow.flow_metadata or {}),
            published_at=flow.published_at,
            created_at=flow.created_at,
            updated_at=flow.updated_at,
        )


class FlowOut(FlowSummaryOut):
    nodes: list[Node]
    edges: list[Edge]
    settings: FlowSettings
    published_by: str | None

    @classmethod
    def from_row(cls, flow: TrainerFlow) -> FlowOut:
        document = flow.to_document()
        summary = FlowSummaryOut.from_row(flow)
        return cls(
            **summary.model_dump(),
            nodes=list(document.nodes),
            edges=list(document.edges),
            settings=document.settings,
            published_by=flow.published_by,
        )
