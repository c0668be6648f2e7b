"""HTTP middleware: request ids, domain error mapping, CORS.

Registration order matters; the last one added runs first, so a request
passes RequestID -> ErrorHandler -> CORS -> route. The USSD callback never
raises (the router turns failures into END text), so the error mapping only
shapes the agent-facing JSON API.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from afritokeni_ussd.domain.exceptions import (
    AfriTokeniError,
    AuthorizationError,
    CollaboratorError,
    ExpiredError,
    InvalidStateTransitionError,
    NotFoundError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# First match wins, so subclasses come before AfriTokeniError.
ERROR_STATUS: tuple[tuple[type[AfriTokeniError], int], ...] = (
    (NotFoundError, 404),
    (AuthorizationError, 403),
    (InvalidStateTransitionError, 409),
    (ExpiredError, 410),
    (CollaboratorError, 502),
    (AfriTokeniError, 400),
)


def status_for(exc: AfriTokeniError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind the caller's X-Request-ID (or a fresh one) for the whole request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn domain exceptions into ``{"error": code, "message": text}`` bodies."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except AfriTokeniError as exc:
            status_code = status_for(exc)
            log = logger.error if status_code >= 500 else logger.warning
            log("api.domain_error", status=status_code, error_code=exc.code, error=exc.message)
            return JSONResponse(
                status_code=status_code,
                content={"error": exc.code, "message": exc.message},
            )
        except Exception as exc:
            logger.exception("api.unhandled_error", error=str(exc))
            return JSONResponse(
                status_code=500,
                content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
            )


def setup_middleware(app: FastAPI, allow_origins: list[str] | None = None) -> None:
    """Register middleware. Agent dashboards call the API from the browser."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)
