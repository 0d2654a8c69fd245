"""
api/routes/v1/session.py -- Session inspection and logout endpoints.

Routes:
  GET    /api/v1/session         -- current token view (valid token required)
  GET    /api/v1/session/active  -- current token view (valid and not stale)
  DELETE /api/v1/session         -- revoke the token and clear it from the client

Issuing tokens is the host application's job (a login route that calls
get_session(request).issue(claims) after checking credentials), so there is
no POST here.

The router is built per SessionOptions because the guards need to know which
request.state attribute holds the Token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from api.models import TokenView
from auth.guards import active_guard, valid_guard
from auth.middleware import SessionContext, get_session
from auth.options import SessionOptions
from auth.tokens import Token

logger = logging.getLogger("jwtsession.api.session")


def build_router(options: SessionOptions) -> APIRouter:
    router = APIRouter()
    require_valid = valid_guard(options)
    require_active = active_guard(options)

    @router.get("/session", response_model=TokenView)
    async def read_session(token: Token = Depends(require_valid)) -> TokenView:
        """Return claims and flags of the current (possibly stale) session."""
        return TokenView.from_token(token)

    @router.get("/session/active", response_model=TokenView)
    async def read_active_session(token: Token = Depends(require_active)) -> TokenView:
        """Return claims and flags; rejects stale sessions."""
        return TokenView.from_token(token)

    @router.delete("/session", status_code=204)
    async def end_session(
        token: Token = Depends(require_valid),
        session: SessionContext = Depends(get_session),
    ) -> Response:
        """Revoke the current token (on_revoke hook) and clear it from the client."""
        token.revoke()
        session.clear()
        logger.info("Session ended (sub=%s)", token.claims.get("sub"))
        return Response(status_code=204)

    return router
