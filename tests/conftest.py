"""
tests/conftest.py -- Shared fixtures for the session library tests.

This module provides:
  - SECRET: the signing key every test app verifies with
  - make_app():a minimal FastAPI app with the entry middleware, a login route
    that issues tokens, and one route per guard
  - client: TestClient over make_app() with cookie transport defaults

The DEBUG and SECRET_KEY env vars must be set before any api/ or core/ import
so get_settings() accepts the environment instead of raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from typing import Any

# CRITICAL: set before importing api.main, which builds its app at import time.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789")

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from auth import (
    SessionContext,
    SessionOptions,
    Token,
    Unauthorized,
    active_guard,
    claim_guard,
    get_session,
    initialize,
    valid_guard,
)

SECRET = "unit-test-secret-0123456789abcdef0123456789"


def make_app(secret: Any = SECRET, options: SessionOptions | None = None) -> FastAPI:
    """Build a throwaway app exercising every public request-time operation."""
    opts = options or SessionOptions()
    app = FastAPI()
    app.middleware("http")(initialize(secret, opts))

    @app.exception_handler(Unauthorized)
    async def unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
        return JSONResponse(status_code=401, content=exc.to_dict())

    @app.post("/login")
    async def login(request: Request, session: SessionContext = Depends(get_session)) -> dict:
        claims = await request.json()
        token = session.issue(claims)
        return {"token": token.raw_value}

    @app.post("/logout")
    async def logout(session: SessionContext = Depends(get_session)) -> dict:
        session.clear()
        return {"ok": True}

    @app.get("/state")
    async def state(request: Request) -> dict:
        token: Token = getattr(request.state, opts.request_property)
        return token.serialize()

    @app.get("/valid")
    async def valid(token: Token = Depends(valid_guard(opts))) -> dict:
        return {"ok": True}

    @app.get("/active")
    async def active(token: Token = Depends(active_guard(opts))) -> dict:
        return {"ok": True}

    @app.get("/admin", dependencies=[Depends(claim_guard("admin", options=opts))])
    async def admin() -> dict:
        return {"ok": True}

    @app.get("/level", dependencies=[Depends(claim_guard("level", ">", 3, options=opts))])
    async def level() -> dict:
        return {"ok": True}

    return app


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    with TestClient(make_app()) as c:
        yield c
