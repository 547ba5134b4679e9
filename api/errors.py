"""FastAPI error handler registration for domain exceptions."""
from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .jobs.models import InvalidInputError, InvalidTransitionError
from .jobs.runner import PerfTestQueueFullError, RunnerShutdownError
from .jobs.store import PerfTestNotFoundError
from .schemas.envelope import ApiResponse

logger = logging.getLogger(__name__)


# ── Error → HTTP mapping ────────────────────────────────────────────

_EXCEPTION_STATUS = {
    InvalidInputError: 400,
    PerfTestNotFoundError: 404,
    InvalidTransitionError: 409,
    PerfTestQueueFullError: 429,
    RunnerShutdownError: 503,
}


def _make_handler(status_code: int):
    """Create a handler that wraps an exception in ApiResponse."""

    async def _handler(request: Request, exc: Exception) -> JSONResponse:
        resp = ApiResponse.fail(str(exc))
        return JSONResponse(status_code=status_code, content=resp.model_dump())

    return _handler


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def register_error_handlers(app: FastAPI) -> None:
    """Register domain exception handlers on the FastAPI app."""
    for exc_cls, status in _EXCEPTION_STATUS.items():
        app.add_exception_handler(exc_cls, _make_handler(status))

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        resp = ApiResponse.fail(_first_validation_message(exc))
        return JSONResponse(status_code=400, content=resp.model_dump())

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
        resp = ApiResponse.fail("Internal server error")
        return JSONResponse(status_code=500, content=resp.model_dump())
