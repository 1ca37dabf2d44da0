from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trainerflow.api.errors import register_exception_handlers
from trainerflow.api.health import router as health_router
from trainerflow.api.v1.api import api_router
from trainerflow.core.config import settings
from trainerflow.core.logging import setup_logging
from trainerflow.db.session import engine

logger = logging.getLogger(__name__)


def _parse_cors_origins(value: str) -> list[str]:
    raw = (value or "").strip()
    if not raw:
        return []
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)

    # Ensure models are imported before creating tables.
    import trainerflow.models  # noqa: F401
    from trainerflow.models.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")

    yield

    await engine.dispose()


app = FastAPI(title="TrainerFlow", lifespan=lifespan)

origins = _parse_cors_origins(settings.cors_allow_origins)

# If allowing '*', credentials must be False.
allow_credentials = False if "*" in origins else True

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or [],
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Paths are /api/v1/...
app.include_router(api_router, prefix="/api")
app.include_router(health_router)
