"""
auth/errors.py -- Exception taxonomy for the session library.

Three families:
  Setup-time      ConfigurationError -- bad operator, missing secret, invalid
                  option. Raised synchronously while wiring the app so a
                  misconfigured process never starts serving.
  API misuse      NotInitializedError -- request helpers called on a request
                  the entry middleware never saw.
  Request-time    Unauthorized -- the only error that reaches the host's
                  exception handlers. Carries a reason and, for claim guards,
                  the diagnostic fields.

TokenError / ExpiredError / InvalidError are raised by auth/codec.py and
caught inside auth/tokens.py. They are converted into Token flags and never
escape Token.verify().
"""

from __future__ import annotations

from typing import Any


class SessionError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(SessionError, ValueError):
    pass


class NotInitializedError(SessionError, RuntimeError):
    pass


class Unauthorized(SessionError):
    """A guard rejected the current request.

    reason is one of "invalid", "stale", "insufficient". The diagnostic
    fields are only populated by claim guards; actual_value is None both when
    the claim is missing and when it is JSON null.
    """

    REASONS = ("invalid", "stale", "insufficient")

    def __init__(
        self,
        reason: str,
        *,
        key: str | None = None,
        actual_value: Any = None,
        operator: str | None = None,
        expected_value: Any = None,
    ) -> None:
        if reason not in self.REASONS:
            raise ValueError(f"Unknown Unauthorized reason: {reason!r}")
        super().__init__(f"JWT is {reason}")
        self.reason = reason
        self.key = key
        self.actual_value = actual_value
        self.operator = operator
        self.expected_value = expected_value

    @property
    def diagnostics(self) -> dict[str, Any] | None:
        if self.key is None:
            return None
        return {
            "key": self.key,
            "actual_value": self.actual_value,
            "operator": self.operator,
            "expected_value": self.expected_value,
        }

    def to_dict(self) -> dict[str, Any]:
        """Stable, JSON-friendly shape for exception handlers."""
        data: dict[str, Any] = {"reason": self.reason, "message": str(self)}
        diagnostics = self.diagnostics
        if diagnostics is not None:
            data["diagnostics"] = diagnostics
        return data


class TokenError(SessionError):
    pass


class ExpiredError(TokenError):
    """Signature is valid but the exp claim has passed."""


class InvalidError(TokenError):
    """Signature mismatch, malformed token, or any other rejection."""
