from __future__ import annotations

import datetime as dt
import enum

from pydantic import Field, computed_field

from trainerflow.domain.base import CamelModel, FrozenCamelModel


class SessionStatus(str, enum.Enum):
    active = "active"
    completed = "completed"


class Sender(str, enum.Enum):
    ai = "ai"
    user = "user"


class ConversationMessage(FrozenCamelModel):
    id: str
    sender: Sender = Field(alias="type")
    content: str
    node_id: str | None = None
    timestamp: dt.datetime
    media_url: str | None = None


class UserResponse(FrozenCamelModel):
    """One answer given at a question node."""

    node_id: str
    question: str | None = None
    answer: str
    is_correct: bool
    timestamp: dt.datetime


class SessionProgress(CamelModel):
    current_node: str | None = None
    completed_nodes: list[str] = Field(default_factory=list)
    score: int = 0
    total_questions: int = 0
    correct_answers: int = 0
    attempts: int = 0
    completion_percentage: int = 0

    def mark_completed(self, node_id: str | None) -> None:
        if node_id is not None and node_id not in self.completed_nodes:
            self.completed_nodes.append(node_id)

    def recompute_score(self) -> None:
        if self.total_questions > 0:
            self.score = round(self.correct_answers / self.total_questions * 100)


class SessionSummary(FrozenCamelModel):
    session_id: str
    trainer_id: str
    status: SessionStatus
    # seconds
    duration: int
    score: int
    completion_percentage: int
    total_interactions: int
    started_at: dt.datetime
    ended_at: dt.datetime | None = None


class SessionState(CamelModel):
    """
    Live state of one user's walk through one flow.

    Mutated in place by the runtime on every turn. ``conversation`` and
    ``user_responses`` are append-only.
    """

    session_id: str
    trainer_id: str
    flow_id: int | None = None
    user_id: str | None = None
    status: SessionStatus = SessionStatus.active
    progress: SessionProgress = Field(default_factory=SessionProgress)
    conversation: list[ConversationMessage] = Field(default_factory=list)
    user_responses: list[UserResponse] = Field(default_factory=list)
    started_at: dt.datetime
    ended_at: dt.datetime | None = None
    # Whole seconds from start to end, set when the session closes.
    duration: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.completed

    @computed_field  # type: ignore[prop-decorator]
    @property
    def summary(self) -> SessionSummary:
        return SessionSummary(
            session_id=self.session_id,
            trainer_id=self.trainer_id,
            status=self.status,
            duration=self.duration,
            score=self.progress.score,
            completion_percentage=self.progress.completion_percentage,
            total_interactions=len(self.conversation),
            started_at=self.started_at,
            ended_at=self.ended_at,
        )
