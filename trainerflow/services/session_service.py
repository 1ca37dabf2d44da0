from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from trainerflow.core.errors import Conflict, NotFound
from trainerflow.crud.trainer_flow import get_trainer_flow
from trainerflow.crud.training_session import (
    create_training_session,
    get_training_session,
    list_session_messages,
    save_session_turn,
)
from trainerflow.domain.graph import FlowStatus
from trainerflow.domain.session import SessionState
from trainerflow.models.trainer_flow import TrainerFlow
from trainerflow.models.training_session import TrainingSession
from trainerflow.services.flow_lifecycle import FlowLifecycleManager
from trainerflow.services.locks import KeyedLocks, session_locks
from trainerflow.services.session_runtime import SessionRuntime, TurnResult

logger = logging.getLogger(__name__)


class SessionManager:
    """Loads, drives and persists training sessions, one turn per call."""

    def __init__(
        self,
        session: AsyncSession,
        runtime: SessionRuntime | None = None,
        locks: KeyedLocks = session_locks,
    ):
        self._session = session
        self._runtime = runtime or SessionRuntime()
        self._locks = locks

    async def start_session(
        self,
        trainer_id: str,
        *,
        user_id: str | None = None,
        status: FlowStatus | None = None,
        flow_id: int | None = None,
    ) -> SessionState:
        if flow_id is not None:
            flow = await get_trainer_flow(self._session, flow_id)
            if flow is None or flow.trainer_id != trainer_id:
                raise NotFound("Flow not found")
        else:
            flow = await FlowLifecycleManager(self._session).resolve_latest(
                trainer_id, status
            )
            if flow is None:
                raise NotFound("No flow found for this trainer")

        state = self._runtime.start(
            trainer_id, flow.to_document(), flow_id=flow.id, user_id=user_id
        )
        await create_training_session(self._session, state)
        logger.info(
            "Started session %s on flow %s (trainer %s)",
            state.session_id,
            flow.id,
            trainer_id,
        )
        return state

    async def get_session(self, session_id: str) -> SessionState:
        row = await self._require_session(session_id)
        return row.to_state(await list_session_messages(self._session, row.id))

    async def send_message(self, session_id: str, message: str) -> TurnResult:
        async with self._locks.get(session_id):
            row = await self._require_session(session_id)
            flow = await self._require_flow(row)
            state = row.to_state(await list_session_messages(self._session, row.id))
            seen = len(state.conversation)
            was_completed = state.is_completed

            result = self._runtime.advance(state, flow.to_document(), message)

            if not was_completed:
                await self._save(row, state, seen)
            return result

    async def complete_session(self, session_id: str) -> SessionState:
        async with self._locks.get(session_id):
            row = await self._require_session(session_id)
            state = row.to_state(await list_session_messages(self._session, row.id))
            if not state.is_completed:
                self._runtime.complete(state)
                await self._save(row, state, len(state.conversation))
            return state

    async def _save(self, row: TrainingSession, state: SessionState, seen: int) -> None:
        try:
            await save_session_turn(
                self._session, row, state, state.conversation[seen:]
            )
        except StaleDataError as exc:
            await self._session.rollback()
            raise Conflict(
                "Session was modified by another request. Reload it and retry."
            ) from exc

    async def _require_session(self, session_id: str) -> TrainingSession:
        row = await get_training_session(self._session, session_id)
        if row is None:
            raise NotFound("Session not found")
        return row

    async def _require_flow(self, row: TrainingSession) -> TrainerFlow:
        flow = None
        if row.flow_id is not None:
            flow = await get_trainer_flow(self._session, row.flow_id)
        if flow is None:
            raise NotFound("The flow for this session no longer exists")
        return flow
