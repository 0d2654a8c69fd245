"""
API response models for the reference session endpoints.

These Pydantic v2 models define the HTTP contract. They are intentionally
separate from auth.tokens.Token, which owns the in-memory session state. Route
handlers map between the two via TokenView.from_token().
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from auth.tokens import Token

# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str


class TokenView(BaseModel):
    """Public view of the current session token.

    The encoded token text is not echoed back: cookie clients cannot read it
    by design, and header clients already hold it.
    """

    claims: dict[str, Any] = Field(default_factory=dict)
    is_valid: bool
    is_expired: bool
    is_stale: bool

    @classmethod
    def from_token(cls, token: Token) -> "TokenView":
        data = token.serialize()
        data.pop("raw_value")
        return cls(**data)


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every exception handler."""

    error: ErrorDetail
