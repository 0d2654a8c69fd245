"""
tests/test_api_routes.py -- Integration tests for the reference app in api/main.py.

Covers:
  - GET /api/v1/health is public
  - GET /api/v1/session and /session/active guard behavior and the error envelope
  - DELETE /api/v1/session revokes through the on_revoke hook and clears the cookie
  - Unauthorized reason -> status mapping (401 invalid/stale, 403 insufficient)
"""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from api.main import create_app
from auth import claim_guard, create
from core.config import Settings

SECRET_KEY = "api-test-secret-0123456789abcdef0123456789"
COOKIE = "jwt-express"


@pytest.fixture
def revoke_hook() -> MagicMock:
    return MagicMock()


@pytest.fixture
def api_client(revoke_hook: MagicMock) -> Generator[TestClient, None, None]:
    settings = Settings(secret_key=SECRET_KEY, _env_file=None)
    app = create_app(settings, on_revoke=revoke_hook)
    options = app.state.session_options

    @app.get("/api/v1/admin", dependencies=[Depends(claim_guard("role", "===", "admin", options=options))])
    async def admin_only() -> dict:
        return {"ok": True}

    with TestClient(app) as client:
        yield client


def _login(client: TestClient, **claims) -> str:
    raw = create(SECRET_KEY, claims).raw_value
    client.cookies.set(COOKIE, raw)
    return raw


def test_health_is_public(api_client: TestClient) -> None:
    resp = api_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert "version" in resp.json()


def test_session_requires_token(api_client: TestClient) -> None:
    resp = api_client.get("/api/v1/session")
    assert resp.status_code == 401
    error = resp.json()["error"]
    assert error["code"] == "invalid"
    assert error["message"] == "JWT is invalid"
    assert error["detail"] is None


def test_session_returns_token_view(api_client: TestClient) -> None:
    _login(api_client, sub="alice", role="analyst")
    resp = api_client.get("/api/v1/session")
    assert resp.status_code == 200
    data = resp.json()
    assert data["claims"]["sub"] == "alice"
    assert data["is_valid"] is True
    assert data["is_stale"] is False
    assert "raw_value" not in data


def test_stale_session_rejected_by_active_only(api_client: TestClient) -> None:
    with patch("auth.tokens._now_ms", return_value=1_000):
        _login(api_client, sub="alice")

    assert api_client.get("/api/v1/session").status_code == 200
    resp = api_client.get("/api/v1/session/active")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "stale"


def test_delete_session_revokes_and_clears(api_client: TestClient, revoke_hook: MagicMock) -> None:
    _login(api_client, sub="alice")
    resp = api_client.delete("/api/v1/session")

    assert resp.status_code == 204
    revoke_hook.assert_called_once()
    revoked = revoke_hook.call_args.args[0]
    assert revoked.claims["sub"] == "alice"

    cleared = [h for h in resp.headers.get_list("set-cookie") if h.startswith(f"{COOKIE}=")]
    assert len(cleared) == 1
    assert "max-age=0" in cleared[0].lower() or "expires=" in cleared[0].lower()


def test_delete_session_without_token(api_client: TestClient, revoke_hook: MagicMock) -> None:
    resp = api_client.delete("/api/v1/session")
    assert resp.status_code == 401
    revoke_hook.assert_not_called()


def test_insufficient_claims_map_to_403(api_client: TestClient) -> None:
    _login(api_client, sub="alice", role="analyst")
    resp = api_client.get("/api/v1/admin")
    assert resp.status_code == 403
    error = resp.json()["error"]
    assert error["code"] == "insufficient"
    assert error["detail"] == {
        "key": "role",
        "actual_value": "analyst",
        "operator": "===",
        "expected_value": "admin",
    }


def test_sufficient_claims_pass(api_client: TestClient) -> None:
    _login(api_client, sub="root", role="admin")
    assert api_client.get("/api/v1/admin").status_code == 200
