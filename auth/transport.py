"""
auth/transport.py -- Where raw tokens are read from and written to.

The library never parses cookie or header syntax itself beyond pulling a bare
token string. Two transports ship:

  CookieTransport   reads request.cookies[name]; writes with set_cookie();
                    clears with delete_cookie().
  HeaderTransport   reads "Authorization: Bearer <token>". Header clients keep
                    their own copy of the token, so persist / clear do nothing.

Handlers mint tokens before the response object exists, so writes go through a
request-scoped DeferredTransport: persist() / clear() record the intent (last
write wins) and the entry middleware flush()es it onto the final response.
"""

from __future__ import annotations

import logging
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from auth.options import CookieOptions, SessionOptions

logger = logging.getLogger("jwtsession.auth.transport")


class CookieTransport:
    def __init__(self, name: str, cookie_options: CookieOptions | None = None) -> None:
        self.name = name
        self.cookie_options = cookie_options or CookieOptions()

    def extract(self, request: Request) -> Optional[str]:
        return request.cookies.get(self.name) or None

    def persist(self, response: Response, raw_value: str) -> None:
        response.set_cookie(self.name, value=raw_value, **self.cookie_options.as_kwargs())

    def clear(self, response: Response) -> None:
        response.delete_cookie(
            self.name,
            path=self.cookie_options.path,
            domain=self.cookie_options.domain,
            secure=self.cookie_options.secure,
            httponly=self.cookie_options.httponly,
            samesite=self.cookie_options.samesite,
        )


class HeaderTransport:
    scheme = "bearer"

    def extract(self, request: Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        scheme, _, value = header.partition(" ")
        if scheme.lower() != self.scheme:
            return None
        return value.strip() or None

    def persist(self, response: Response, raw_value: str) -> None:
        return None

    def clear(self, response: Response) -> None:
        return None


Transport = CookieTransport | HeaderTransport


def build_transport(options: SessionOptions) -> Transport:
    if options.uses_cookies:
        return CookieTransport(options.cookie_name, options.cookie_options)
    return HeaderTransport()


class DeferredTransport:
    """Request-scoped write buffer in front of a Transport."""

    _PERSIST = "persist"
    _CLEAR = "clear"

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self._pending: tuple[str, str] | None = None

    @property
    def pending(self) -> tuple[str, str] | None:
        return self._pending

    def extract(self, request: Request) -> Optional[str]:
        return self.transport.extract(request)

    def persist(self, raw_value: str) -> None:
        self._pending = (self._PERSIST, raw_value)

    def clear(self) -> None:
        self._pending = (self._CLEAR, "")

    def flush(self, response: Response) -> None:
        if self._pending is None:
            return
        action, raw_value = self._pending
        if action == self._PERSIST:
            self.transport.persist(response, raw_value)
        else:
            self.transport.clear(response)
        logger.debug("Flushed token %s onto response", action)
        self._pending = None
