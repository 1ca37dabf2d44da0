from __future__ import annotations

from fastapi import APIRouter

from trainerflow.api.v1.routers import flows, sessions

api_router = APIRouter(prefix="/v1")
api_router.include_router(flows.router)
api_router.include_router(sessions.router)
