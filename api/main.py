"""
api/main.py -- Reference FastAPI application wiring the session library.

Run with:  uvicorn api.main:app --reload

create_app() is the assembly point: it reads Settings once, builds the
immutable SessionOptions, installs the session entry middleware, registers
the session routes and the exception handlers. Tests call create_app() with
their own Settings / overrides to get an isolated app.

Middleware stack (outermost to innermost):
  1. log_requests    -- method, path, status and latency for every request
  2. session_entry   -- verifies the incoming token, refreshes it, attaches it
                        to request.state and flushes token writes

Exception handlers all return the same ErrorResponse envelope. Unauthorized
maps to 401 for "invalid" / "stale" and to 403 for "insufficient" (the
session is fine, the claims are not enough).
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.session import build_router
from auth.errors import Unauthorized
from auth.middleware import initialize
from auth.options import SessionOptions
from auth.tokens import Token
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("jwtsession.api")


def _log_revoke(token: Token) -> None:
    """Default revoke hook for the reference app: audit log only.

    Persisting a denylist is the host's concern; swap this out through
    create_app(on_revoke=...).
    """
    logger.info("Token revoked (sub=%s)", token.claims.get("sub"))


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    options: SessionOptions = app.state.session_options
    logger.info(
        "Session API starting up (transport=%s, cookie=%s)",
        options.transport,
        options.cookie_name,
    )
    yield
    logger.info("Session API shutdown complete")


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
    status_code = 403 if exc.reason == "insufficient" else 401
    logger.info("Guard rejected %s %s (reason=%s)", request.method, request.url.path, exc.reason)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.reason,
                message=str(exc),
                detail=exc.diagnostics,
            )
        ).model_dump(),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The raw exception is logged, never returned to the client.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, **option_overrides: Any) -> FastAPI:
    """Build the application.

    option_overrides are forwarded to SessionOptions.from_settings(), which is
    how callables such as on_revoke / additional_verify are supplied.
    """
    settings = settings or get_settings()
    option_overrides.setdefault("on_revoke", _log_revoke)
    options = SessionOptions.from_settings(settings, **option_overrides)

    app = FastAPI(
        title="JWT Session API",
        description="Signed session tokens with staleness-based refresh and claim guards.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session_options = options

    # Registered first so it sits inside log_requests.
    app.middleware("http")(initialize(settings.secret_key, options))

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    app.include_router(build_router(options), prefix="/api/v1", tags=["Session"])

    app.add_exception_handler(Unauthorized, unauthorized_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/api/v1/health", tags=["Health"])
    async def health() -> HealthResponse:
        """Return API liveness and current version."""
        return HealthResponse(version=__version__)

    return app


app = create_app()
