"""
auth/middleware.py -- Per-request session entry.

initialize() validates configuration once and returns an HTTP middleware
coroutine for app.middleware("http"). For every request it:

  1. resolves the signing secret for this request (sync or async resolver),
  2. extracts the raw token through the configured transport,
  3. builds a Token, verifies it, and attaches it to
     request.state.<request_property>,
  4. silently extends the session -- resign() + store() -- iff the token is
     valid, not stale, and refresh_on_activity is on,
  5. installs a SessionContext (issue / clear) for route handlers,
  6. after the handler returns, flushes any pending token write onto the
     response.

Stale or invalid tokens are never refreshed here. The client has to obtain a
new token (log in again) through a route that calls issue().

Route handlers reach the session through get_session() (a FastAPI
dependency) or the issue() / clear() helpers. All of them raise
NotInitializedError when the entry middleware did not run for the request.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Mapping
from typing import Any, Callable

from starlette.requests import Request
from starlette.responses import Response

from auth.errors import NotInitializedError
from auth.keys import SecretResolver, as_resolver
from auth.options import SessionOptions
from auth.tokens import Token
from auth.transport import DeferredTransport, build_transport

logger = logging.getLogger("jwtsession.auth.middleware")

_CONTEXT_ATTR = "jwt_session"

CallNext = Callable[[Request], Awaitable[Response]]


class SessionContext:
    """Request-scoped capabilities installed by the entry middleware."""

    def __init__(self, key: str, options: SessionOptions, transport: DeferredTransport) -> None:
        self._key = key
        self.options = options
        self.transport = transport

    def issue(self, claims: Mapping[str, Any]) -> Token:
        """Sign a new token for this request and store it on the response."""
        token = Token(self._key, self.options).sign(claims)
        logger.debug("Issued new session token")
        return token.store(self.transport)

    def clear(self) -> None:
        """Remove the persisted token from the client."""
        if self.options.uses_cookies:
            self.transport.clear()


def initialize(
    secret: str | Callable[[Any], Any] | SecretResolver,
    options: SessionOptions | None = None,
) -> Callable[[Request, CallNext], Awaitable[Response]]:
    """Validate configuration and return the session entry middleware.

    Raises ConfigurationError immediately for a missing or malformed secret.
    """
    resolver = as_resolver(secret)
    opts = options or SessionOptions()
    transport = build_transport(opts)
    logger.info(
        "Session middleware initialized (transport=%s, refresh_on_activity=%s, stale_after_ms=%d)",
        opts.transport,
        opts.refresh_on_activity,
        opts.stale_after_ms,
    )

    async def session_entry(request: Request, call_next: CallNext) -> Response:
        key = await resolver.aresolve(request)
        deferred = DeferredTransport(transport)

        token = Token(key, opts).verify(deferred.extract(request))
        setattr(request.state, opts.request_property, token)

        if token.is_valid and not token.is_stale and opts.refresh_on_activity:
            token.resign().store(deferred)

        setattr(request.state, _CONTEXT_ATTR, SessionContext(key, opts, deferred))

        response = await call_next(request)
        deferred.flush(response)
        return response

    return session_entry


# ---------------------------------------------------------------------------
# Route-handler helpers
# ---------------------------------------------------------------------------


def get_session(request: Request) -> SessionContext:
    """FastAPI dependency returning this request's SessionContext."""
    context = getattr(request.state, _CONTEXT_ATTR, None)
    if not isinstance(context, SessionContext):
        raise NotInitializedError("initialize must be called before issue or clear")
    return context


def issue(request: Request, claims: Mapping[str, Any]) -> Token:
    return get_session(request).issue(claims)


def clear(request: Request) -> None:
    get_session(request).clear()
