from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trainerflow.db.session import get_session
from trainerflow.services.flow_lifecycle import FlowLifecycleManager
from trainerflow.services.session_service import SessionManager


async def get_db_session(session: AsyncSession = Depends(get_session)) -> AsyncSession:
    return session


async def get_flow_manager(
    session: AsyncSession = Depends(get_db_session),
) -> FlowLifecycleManager:
    return FlowLifecycleManager(session)


async def get_session_manager(
    session: AsyncSession = Depends(get_db_session),
) -> SessionManager:
    return SessionManager(session)
