"""
auth/guards.py -- Pass/fail checks against the current request's Token.

Each guard comes in two layers:
  check_*()       pure function of a Token (or None). Raises Unauthorized.
  *_guard()       factory returning a FastAPI dependency that reads the Token
                  the entry middleware attached to request.state, runs the
                  check, and returns the Token to the route on success.

A missing Token (entry middleware not installed, or not run for this route)
is treated as "no valid session", never as an attribute error.

Usage:
    @router.get("/admin", dependencies=[Depends(claim_guard("admin"))])
    async def admin_only(): ...

    @router.get("/me")
    async def me(token: Token = Depends(active_guard())): ...

claim_guard() validates its arguments when it is constructed, so a typo in an
operator fails at import/startup time rather than on the first request.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from starlette.requests import Request

from auth.compare import DEFAULT_EXPECTED, DEFAULT_OPERATOR, compare, validate_operator
from auth.errors import ConfigurationError, Unauthorized
from auth.options import SessionOptions
from auth.tokens import Token

_UNSET: Any = object()


def current_token(request: Request, options: SessionOptions | None = None) -> Optional[Token]:
    """Return the Token attached by the entry middleware, or None."""
    prop = (options or SessionOptions()).request_property
    token = getattr(request.state, prop, None)
    return token if isinstance(token, Token) else None


# ---------------------------------------------------------------------------
# Pure checks
# ---------------------------------------------------------------------------


def check_valid(token: Optional[Token]) -> Token:
    if token is None or not token.is_valid:
        raise Unauthorized("invalid")
    return token


def check_active(token: Optional[Token]) -> Token:
    token = check_valid(token)
    if token.is_stale:
        raise Unauthorized("stale")
    return token


def check_claim(token: Optional[Token], key: str, operator: str, expected: Any) -> Optional[Token]:
    claims = token.claims if token is not None else {}
    actual = claims.get(key)
    if not compare(actual, operator, expected):
        raise Unauthorized(
            "insufficient",
            key=key,
            actual_value=actual,
            operator=operator,
            expected_value=expected,
        )
    return token


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------


def valid_guard(options: SessionOptions | None = None) -> Callable[[Request], Token]:
    """Require a Token whose signature (and additional_verify) passed."""
    opts = options or SessionOptions()

    def require_valid(request: Request) -> Token:
        return check_valid(current_token(request, opts))

    return require_valid


def active_guard(options: SessionOptions | None = None) -> Callable[[Request], Token]:
    """Require a valid Token that is not stale."""
    opts = options or SessionOptions()

    def require_active(request: Request) -> Token:
        return check_active(current_token(request, opts))

    return require_active


def claim_guard(
    key: str,
    operator: str | None = None,
    expected: Any = _UNSET,
    options: SessionOptions | None = None,
) -> Callable[[Request], Optional[Token]]:
    """Require claims[key] <operator> expected.

    With no operator the check is claims[key] == True. With an operator but
    no expected value, the claim is compared against None.
    """
    if not key:
        raise ConfigurationError("key must be defined")
    if operator is None:
        operator, expected = DEFAULT_OPERATOR, DEFAULT_EXPECTED
    else:
        validate_operator(operator)
        if expected is _UNSET:
            expected = None
    opts = options or SessionOptions()

    def require_claim(request: Request) -> Optional[Token]:
        return check_claim(current_token(request, opts), key, operator, expected)

    return require_claim
