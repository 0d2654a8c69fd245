"""
auth/keys.py -- Secret resolvers.

A secret is either a constant string or a function of some context value:
the incoming Request when verifying or issuing inside a request, the outgoing
claims mapping for create(). Both shapes are wrapped behind SecretResolver so
the token state machine only ever sees a resolved string.

Resolution happens once per operation. The entry middleware uses aresolve()
so an async lookup (e.g. a secrets-manager client) can be awaited without
blocking the event loop.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable

from auth.errors import ConfigurationError


class SecretResolver:
    """Base resolver. Subclasses implement _lookup()."""

    def _lookup(self, context: Any) -> Any:
        raise NotImplementedError

    def resolve(self, context: Any = None) -> str:
        secret = self._lookup(context)
        if inspect.isawaitable(secret):
            # Close the coroutine so it does not warn about never being awaited.
            close = getattr(secret, "close", None)
            if close is not None:
                close()
            raise ConfigurationError("Secret resolver is asynchronous; use the async variant of this call.")
        return _check(secret)

    async def aresolve(self, context: Any = None) -> str:
        secret = self._lookup(context)
        if inspect.isawaitable(secret):
            secret = await secret
        return _check(secret)


class ConstantSecret(SecretResolver):
    def __init__(self, value: str) -> None:
        self._value = _check(value)

    def _lookup(self, context: Any) -> str:
        return self._value

    def __repr__(self) -> str:
        return "ConstantSecret(<hidden>)"


class CallableSecret(SecretResolver):
    def __init__(self, func: Callable[[Any], Any]) -> None:
        self._func = func

    def _lookup(self, context: Any) -> Any:
        return self._func(context)

    def __repr__(self) -> str:
        return f"CallableSecret({getattr(self._func, '__name__', self._func)!r})"


def as_resolver(secret: str | Callable[[Any], Any] | SecretResolver | None) -> SecretResolver:
    """Wrap a string or callable into a SecretResolver.

    Raises ConfigurationError for a missing secret or an unsupported type.
    """
    if isinstance(secret, SecretResolver):
        return secret
    if isinstance(secret, str):
        if not secret:
            raise ConfigurationError("secret must be defined")
        return ConstantSecret(secret)
    if callable(secret):
        return CallableSecret(secret)
    if secret is None:
        raise ConfigurationError("secret must be defined")
    raise ConfigurationError(f"secret must be a string or a callable, got {type(secret).__name__}")


def _check(secret: Any) -> str:
    if not isinstance(secret, str) or not secret:
        raise ConfigurationError("Secret resolver must return a non-empty string")
    return secret
