from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from trainerflow.domain.session import ConversationMessage, SessionState
from trainerflow.models.session_message import SessionMessage
from trainerflow.models.training_session import TrainingSession


async def create_training_session(
    session: AsyncSession, state: SessionState
) -> TrainingSession:
    obj = TrainingSession(
        session_id=state.session_id,
        trainer_id=state.trainer_id,
        flow_id=state.flow_id,
        user_id=state.user_id,
        status=state.status,
        progress=state.progress.model_dump(mode="json", by_alias=True),
        user_responses=_dump_responses(state),
        started_at=state.started_at,
        ended_at=state.ended_at,
        duration=state.duration,
    )
    session.add(obj)
    await session.flush()
    session.add_all(
        SessionMessage.from_domain(obj.id, message) for message in state.conversation
    )
    await session.commit()
    await session.refresh(obj)
    return obj


async def get_training_session(
    session: AsyncSession, session_id: str
) -> TrainingSession | None:
    result = await session.execute(
        select(TrainingSession).where(TrainingSession.session_id == session_id)
    )
    return result.scalars().first()


async def list_session_messages(
    session: AsyncSession, training_session_id: int
) -> list[ConversationMessage]:
    result = await session.execute(
        select(SessionMessage)
        .where(SessionMessage.training_session_id == training_session_id)
        .order_by(SessionMessage.id.asc())
    )
    return [row.to_domain() for row in result.scalars().all()]


async def save_session_turn(
    session: AsyncSession,
    obj: TrainingSession,
    state: SessionState,
    new_messages: Sequence[ConversationMessage],
) -> TrainingSession:
    """
    Write one turn: the progress snapshot plus the messages it appended.
    Both land in the same commit, guarded by the row's version counter.
    """
    obj.status = state.status
    obj.progress = state.progress.model_dump(mode="json", by_alias=True)
    obj.user_responses = _dump_responses(state)
    obj.ended_at = state.ended_at
    obj.duration = state.duration
    # A turn can leave every column unchanged (an empty reply looping on one
    # node). The row must still be updated so the version check runs.
    flag_modified(obj, "progress")
    session.add_all(SessionMessage.from_domain(obj.id, m) for m in new_messages)
    await session.commit()
    return obj


def _dump_responses(state: SessionState) -> list[dict[str, Any]]:
    return [r.model_dump(mode="json", by_alias=True) for r in state.user_responses]
