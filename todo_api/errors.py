"""
Error taxonomy for the API and the handlers that render it.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for failures that map onto an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(ApiError):
    """No session credential was presented."""

    status_code = 401
    default_message = "Unauthorized access"


class InvalidToken(ApiError):
    """The session credential is malformed, tampered with or expired."""

    status_code = 401
    default_message = "You are not authorized"


class Forbidden(ApiError):
    """The request targets data owned by another identity."""

    status_code = 403
    default_message = "Forbidden Access"


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _internal_error_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.middleware("http")(_internal_error_middleware)
