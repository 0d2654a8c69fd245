"""
auth/options.py -- Immutable session configuration.

SessionOptions is built once while wiring the app and then shared, read-only,
by the entry middleware, every Token and every guard. All fields are
defaulted and validated in __post_init__, so nothing is re-validated per
request and a bad value aborts startup with ConfigurationError.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Optional

from auth.codec import SIGN_OPTION_KEYS, VERIFY_OPTION_KEYS, check_options
from auth.errors import ConfigurationError

if TYPE_CHECKING:
    from auth.tokens import Token
    from core.config import Settings

TRANSPORTS = ("cookie", "header")
SAMESITE_VALUES = ("lax", "strict", "none")


def _noop_revoke(token: Token) -> None:
    return None


def _always_valid(token: Token) -> bool:
    return True


@dataclass(frozen=True)
class CookieOptions:
    """Attributes used when the cookie transport writes a token.

    max_age=None writes a session cookie.
    """

    httponly: bool = True
    secure: bool = False
    samesite: str = "lax"
    max_age: Optional[int] = None
    path: str = "/"
    domain: Optional[str] = None

    def __post_init__(self) -> None:
        if self.samesite not in SAMESITE_VALUES:
            raise ConfigurationError(f"Invalid cookie samesite value: {self.samesite!r}")
        if self.max_age is not None and self.max_age < 0:
            raise ConfigurationError("cookie max_age must be zero or greater")

    def as_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for starlette Response.set_cookie()."""
        return {
            "httponly": self.httponly,
            "secure": self.secure,
            "samesite": self.samesite,
            "max_age": self.max_age,
            "path": self.path,
            "domain": self.domain,
        }


@dataclass(frozen=True)
class SessionOptions:
    transport: str = "cookie"
    cookie_name: str = "jwt-express"
    cookie_options: CookieOptions = field(default_factory=CookieOptions)
    refresh_on_activity: bool = True
    request_property: str = "jwt"
    on_revoke: Callable[[Token], None] = _noop_revoke
    sign_options: Mapping[str, Any] = field(default_factory=dict)
    stale_after_ms: int = 900000
    additional_verify: Callable[[Token], bool] = _always_valid
    verify_options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(f"Invalid transport: {self.transport!r} (expected one of {TRANSPORTS})")
        if not self.cookie_name:
            raise ConfigurationError("cookie_name must not be empty")
        if not self.request_property or not self.request_property.isidentifier():
            raise ConfigurationError(f"request_property must be an identifier, got {self.request_property!r}")
        if not isinstance(self.stale_after_ms, int) or isinstance(self.stale_after_ms, bool):
            raise ConfigurationError("stale_after_ms must be an integer number of milliseconds")
        if self.stale_after_ms < 0:
            raise ConfigurationError("stale_after_ms must be zero or greater")
        if not callable(self.on_revoke):
            raise ConfigurationError("on_revoke must be callable")
        if not callable(self.additional_verify):
            raise ConfigurationError("additional_verify must be callable")

        check_options(self.sign_options, SIGN_OPTION_KEYS, "sign")
        check_options(self.verify_options, VERIFY_OPTION_KEYS, "verify")
        # Read-only views so a shared instance cannot be mutated after startup.
        object.__setattr__(self, "sign_options", MappingProxyType(dict(self.sign_options)))
        object.__setattr__(self, "verify_options", MappingProxyType(dict(self.verify_options)))

    @property
    def uses_cookies(self) -> bool:
        return self.transport == "cookie"

    def evolve(self, **changes: Any) -> SessionOptions:
        """Return a copy with some fields replaced (re-validated)."""
        return replace(self, **changes)

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> SessionOptions:
        """Build options from environment-sourced Settings.

        Callables (on_revoke, additional_verify) cannot come from the
        environment and are passed through overrides.
        """
        sign_options: dict[str, Any] = {"algorithm": settings.algorithm}
        if settings.token_expire_seconds:
            sign_options["expires_in"] = settings.token_expire_seconds
        values: dict[str, Any] = {
            "transport": settings.transport,
            "cookie_name": settings.cookie_name,
            "cookie_options": CookieOptions(
                secure=settings.cookie_secure,
                samesite=settings.cookie_samesite,
                max_age=settings.cookie_max_age or None,
            ),
            "refresh_on_activity": settings.refresh_on_activity,
            "request_property": settings.request_property,
            "sign_options": sign_options,
            "stale_after_ms": settings.stale_after_ms,
            "verify_options": {"algorithms": [settings.algorithm]},
        }
        values.update(overrides)
        return cls(**values)
