from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from trainerflow.core.config import settings
from trainerflow.core.errors import NotFound
from trainerflow.domain.graph import (
    MEDIA_NODE_TYPES,
    DecisionCondition,
    Edge,
    FlowGraph,
    Node,
    QuestionCondition,
)
from trainerflow.domain.ids import IdFactory, uuid_ids
from trainerflow.domain.session import (
    ConversationMessage,
    Sender,
    SessionProgress,
    SessionState,
    SessionStatus,
    UserResponse,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands back naive datetimes; they were written as UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=dt.timezone.utc)


@dataclass(slots=True)
class TurnResult:
    ai_message: ConversationMessage
    status: SessionStatus


def node_text(node: Node) -> str:
    """First scripted line, else the legacy draft, else the label, else '...'."""
    if node.data.messages:
        return node.data.messages[0]
    if node.data.text_draft:
        return node.data.text_draft
    return node.label or "..."


def select_edge(candidates: Sequence[Edge], user_text: str) -> tuple[Edge, bool]:
    """
    Pick the outgoing edge to follow, first match wins in stored order.

    A question edge matches when any keyword is a case-insensitive substring
    of the reply. A decision edge matches when its choiceKey equals the reply
    (trimmed, case-insensitive). With no match the first candidate is used.
    Returns the edge and whether it matched on its condition.
    """
    lowered = (user_text or "").lower()
    choice = lowered.strip()
    for edge in candidates:
        condition = edge.condition
        if isinstance(condition, QuestionCondition) and lowered:
            if any(k.strip() and k.strip().lower() in lowered for k in condition.keywords):
                return edge, True
        elif isinstance(condition, DecisionCondition) and choice:
            if (condition.choice_key or "").strip().lower() == choice:
                return edge, True
    return candidates[0], False


class SessionRuntime:
    """
    Walks a flow one user turn at a time.

    The flow is read-only input. All changes land on the ``SessionState``
    passed in, so the caller decides how and when to persist them.
    """

    def __init__(
        self,
        id_factory: IdFactory = uuid_ids,
        clock: Clock = utcnow,
        completed_message: str | None = None,
    ):
        self._ids = id_factory
        self._clock = clock
        self._completed_message = completed_message or settings.session_completed_message

    def start(
        self,
        trainer_id: str,
        flow: FlowGraph,
        *,
        flow_id: int | None = None,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> SessionState:
        start = flow.start_node()
        if start is None:
            raise NotFound("Flow has no nodes to start from")

        state = SessionState(
            session_id=session_id or self._ids("session"),
            trainer_id=trainer_id,
            flow_id=flow_id,
            user_id=user_id,
            progress=SessionProgress(current_node=start.id),
            started_at=self._clock(),
        )
        state.conversation.append(self._node_message(start))
        if start.type == "end":
            state.progress.mark_completed(start.id)
            self._close(state)
        return state

    def advance(self, state: SessionState, flow: FlowGraph, user_text: str) -> TurnResult:
        if state.is_completed:
            # Terminal: nothing is recorded, the caller just gets the closing line.
            return TurnResult(
                ai_message=self._message(
                    Sender.ai, self._completed_message, state.progress.current_node
                ),
                status=state.status,
            )

        progress = state.progress
        current_id = progress.current_node
        if current_id is None:
            start = flow.start_node()
            current_id = start.id if start else None
        current = flow.node_by_id(current_id)

        if user_text:
            state.conversation.append(self._message(Sender.user, user_text, current_id))
            progress.attempts += 1

        candidates = flow.outgoing_edges(current_id)
        if not candidates:
            return self._terminate(state, current_id)

        edge, matched = select_edge(candidates, user_text)

        if current is not None and current.type == "question" and user_text:
            if current_id not in progress.completed_nodes:
                progress.total_questions += 1
                if matched:
                    progress.correct_answers += 1
            progress.recompute_score()
            state.user_responses.append(
                UserResponse(
                    node_id=current_id,
                    question=node_text(current),
                    answer=user_text,
                    is_correct=matched,
                    timestamp=self._clock(),
                )
            )

        target = flow.node_by_id(edge.target)
        if target is None:
            logger.warning(
                "Session %s: edge %s points at missing node %s, ending session",
                state.session_id,
                edge.id,
                edge.target,
            )
            return self._terminate(state, current_id)

        progress.mark_completed(current_id)
        if (
            current is not None
            and current.type == "question"
            and not matched
            and current.data.error_message
        ):
            state.conversation.append(
                self._message(Sender.ai, current.data.error_message, current_id)
            )

        progress.current_node = target.id
        ai_message = self._node_message(target)
        state.conversation.append(ai_message)

        if target.type == "end":
            progress.mark_completed(target.id)
            self._close(state)
        else:
            self._update_completion(progress, flow)
        return TurnResult(ai_message=ai_message, status=state.status)

    def complete(self, state: SessionState) -> SessionState:
        if not state.is_completed:
            self._close(state)
        return state

    # -- helpers ------------------------------------------------------------

    def _terminate(self, state: SessionState, node_id: str | None) -> TurnResult:
        ai_message = self._message(Sender.ai, self._completed_message, node_id)
        state.conversation.append(ai_message)
        self._close(state)
        return TurnResult(ai_message=ai_message, status=state.status)

    def _close(self, state: SessionState) -> None:
        state.status = SessionStatus.completed
        state.ended_at = self._clock()
        state.duration = max(
            0, int((_as_utc(state.ended_at) - _as_utc(state.started_at)).total_seconds())
        )
        state.progress.recompute_score()
        state.progress.completion_percentage = 100
        logger.info("Session %s completed", state.session_id)

    @staticmethod
    def _update_completion(progress: SessionProgress, flow: FlowGraph) -> None:
        if flow.nodes:
            progress.completion_percentage = min(
                100, round(len(progress.completed_nodes) / len(flow.nodes) * 100)
            )

    def _node_message(self, node: Node) -> ConversationMessage:
        media_url = node.data.media_url if node.type in MEDIA_NODE_TYPES else None
        return self._message(Sender.ai, node_text(node), node.id, media_url)

    def _message(
        self,
        sender: Sender,
        content: str,
        node_id: str | None,
        media_url: str | None = None,
    ) -> ConversationMessage:
        return ConversationMessage(
            id=self._ids("msg"),
            sender=sender,
            content=content,
            node_id=node_id,
            timestamp=self._clock(),
            media_url=media_url,
        )
