from __future__ import annotations

from fastapi import APIRouter, Depends, status

from trainerflow.api.deps import get_session_manager
from trainerflow.domain.session import SessionState
from trainerflow.schemas.session import (
    SessionMessageRequest,
    SessionStartRequest,
    SessionTurnResponse,
)
from trainerflow.services.session_service import SessionManager

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post(
    "/start", response_model=SessionState, status_code=status.HTTP_201_CREATED
)
async def start_session(
    payload: SessionStartRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionState:
    return await manager.start_session(
        payload.trainer_id,
        user_id=payload.user_id,
        status=payload.status,
        flow_id=payload.flow_id,
    )


@router.post("/message", response_model=SessionTurnResponse)
async def send_message(
    payload: SessionMessageRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionTurnResponse:
    result = await manager.send_message(payload.session_id, payload.message)
    return SessionTurnResponse(ai_message=result.ai_message, status=result.status)


@router.post("/{session_id}/complete", response_model=SessionState)
async def complete_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionState:
    return await manager.complete_session(session_id)


@router.get("/{session_id}", response_model=SessionState)
async def get_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionState:
    return await manager.get_session(session_id)
