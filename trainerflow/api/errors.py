from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from trainerflow.core.errors import Conflict, NotFound, ValidationFailed

logger = logging.getLogger(__name__)


async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message}
    )


async def conflict_handler(request: Request, exc: Conflict) -> JSONResponse:
    logger.info("Conflict on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT, content={"detail": exc.message}
    )


async def validation_failed_handler(
    request: Request, exc: ValidationFailed
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message, "errors": exc.errors},
    )


def register_exception_handlers(app: FastAPI) -> None:
    # Starlette picks the most specific class, so ValidationFailed wins over Conflict.
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(Conflict, conflict_handler)
    app.add_exception_handler(ValidationFailed, validation_failed_handler)
