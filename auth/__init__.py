"""auth/ -- Signed session tokens and claim guards for FastAPI.

Layer rule: auth/ imports only stdlib + third-party libraries (+ core/ for
Settings). It does NOT import from api/.

Typical wiring:

    options = SessionOptions.from_settings(get_settings())
    app.middleware("http")(initialize(settings.secret_key, options))

    @router.get("/me")
    async def me(token: Token = Depends(active_guard(options))): ...
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from auth.errors import (
    ConfigurationError,
    ExpiredError,
    InvalidError,
    NotInitializedError,
    SessionError,
    TokenError,
    Unauthorized,
)
from auth.guards import active_guard, check_active, check_claim, check_valid, claim_guard, current_token, valid_guard
from auth.keys import SecretResolver, as_resolver
from auth.middleware import SessionContext, clear, get_session, initialize, issue
from auth.options import CookieOptions, SessionOptions
from auth.tokens import STALES_CLAIM, Token


def create(
    secret: str | Callable[[Any], Any] | SecretResolver,
    claims: Mapping[str, Any],
    options: SessionOptions | None = None,
) -> Token:
    """Sign a new Token without storing it anywhere.

    A callable secret receives the claims mapping as its context.
    """
    key = as_resolver(secret).resolve(claims)
    return Token(key, options).sign(claims)


async def acreate(
    secret: str | Callable[[Any], Any] | SecretResolver,
    claims: Mapping[str, Any],
    options: SessionOptions | None = None,
) -> Token:
    """create() for secret resolvers that must be awaited."""
    key = await as_resolver(secret).aresolve(claims)
    return Token(key, options).sign(claims)


__all__ = [
    "STALES_CLAIM",
    "ConfigurationError",
    "CookieOptions",
    "ExpiredError",
    "InvalidError",
    "NotInitializedError",
    "SecretResolver",
    "SessionContext",
    "SessionError",
    "SessionOptions",
    "Token",
    "TokenError",
    "Unauthorized",
    "acreate",
    "active_guard",
    "as_resolver",
    "check_active",
    "check_claim",
    "check_valid",
    "claim_guard",
    "clear",
    "create",
    "current_token",
    "get_session",
    "initialize",
    "issue",
    "valid_guard",
]
