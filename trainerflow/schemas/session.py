from __future__ import annotations

from pydantic import Field

from trainerflow.domain.base import CamelModel
from trainerflow.domain.graph import FlowStatus
from trainerflow.domain.session import ConversationMessage, SessionStatus


class SessionStartRequest(CamelModel):
    trainer_id: str = Field(min_length=1, max_length=64)
    user_id: str | None = Field(default=None, max_length=64)
    # Force a status ("published" for live runs, "draft" for preview).
    status: FlowStatus | None = None
    flow_id: int | None = None


class SessionMessageRequest(CamelModel):
    session_id: str = Field(min_length=1)
    message: str = Field(default="", max_length=8000)


class SessionTurnResponse(CamelModel):
    ai_message: ConversationMessage
    status: SessionStatus
