"""
auth/tokens.py -- The Token entity and its lifecycle.

A Token is created per request (entry middleware -> verify) or per explicit
creation call (create / SessionContext.issue -> sign). It is owned by the
request that created it and is never shared across requests, so it carries
no locking.

State after the last sign()/verify() call:

  sign()                         valid, not expired, fresh
  verify() signature ok          valid, not expired, fresh or stale
  verify() exp passed            invalid, expired, fresh or stale
  verify() anything else         invalid, not expired, fresh or stale

Stale is a pure function of the stalesAt claim and the clock, independent of
validity: it measures inactivity, not trust. A token without a numeric
stalesAt claim is always stale.

The signing key is held privately and never appears in serialize() or repr().
"""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from auth import codec
from auth.errors import ExpiredError, InvalidError
from auth.options import SessionOptions

if TYPE_CHECKING:
    from auth.transport import DeferredTransport

logger = logging.getLogger("jwtsession.auth.tokens")

# Epoch milliseconds after which the token is considered stale.
STALES_CLAIM = "stalesAt"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_fresh(claims: Mapping[str, Any], now_ms: int) -> bool:
    stales_at = claims.get(STALES_CLAIM)
    if isinstance(stales_at, bool) or not isinstance(stales_at, (int, float)):
        return False
    return stales_at > now_ms


class Token:
    """A JSON Web Token, its claims, and its trust / freshness flags."""

    def __init__(self, key: str, options: SessionOptions | None = None) -> None:
        self.raw_value: str = ""
        self.claims: dict[str, Any] = {}
        self._key = key
        self._options = options or SessionOptions()
        self.is_valid = False
        self.is_expired = False
        self.is_stale = True

    @property
    def options(self) -> SessionOptions:
        return self._options

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def sign(self, claims: Mapping[str, Any]) -> Token:
        """Stamp stalesAt, encode, and mark this token valid and fresh."""
        payload = dict(claims)
        payload[STALES_CLAIM] = _now_ms() + self._options.stale_after_ms

        self.raw_value = codec.encode(payload, self._key, self._options.sign_options)
        self.claims = payload
        self.is_valid = True
        self.is_expired = False
        self.is_stale = False
        return self

    def verify(self, raw_value: str | None) -> Token:
        """Verify raw_value and classify it. Never raises for a bad token."""
        self.raw_value = raw_value or ""
        self.is_valid = False
        self.is_expired = False

        try:
            self.claims = codec.decode_verified(self.raw_value, self._key, self._options.verify_options)
            self.is_valid = True
        except ExpiredError:
            self.claims = codec.decode_unverified(self.raw_value)
            self.is_expired = True
            logger.debug("Token rejected: expired")
        except InvalidError as exc:
            self.claims = codec.decode_unverified(self.raw_value)
            if self.raw_value:
                logger.debug("Token rejected: %s", exc)

        if self.is_valid and not self._options.additional_verify(self):
            self.is_valid = False
            logger.debug("Token rejected by additional_verify")

        self.is_stale = not _is_fresh(self.claims, _now_ms())
        return self

    def resign(self) -> Token:
        """Reissue a fresh token from whatever claims are currently held."""
        return self.sign(self.claims)

    def revoke(self) -> Token:
        """Hand this token to the configured on_revoke hook.

        The hook owns any side effect (denylist entry, audit record). The
        token's own state is left untouched.
        """
        self._options.on_revoke(self)
        return self

    def store(self, transport: DeferredTransport) -> Token:
        """Persist raw_value through the request's transport binding.

        A no-op unless the options select the cookie transport.
        """
        if self._options.uses_cookies:
            transport.persist(self.raw_value)
        return self

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def serialize(self) -> dict[str, Any]:
        return {
            "raw_value": self.raw_value,
            "claims": copy.deepcopy(self.claims),
            "is_valid": self.is_valid,
            "is_expired": self.is_expired,
            "is_stale": self.is_stale,
        }

    def __repr__(self) -> str:
        return (
            f"Token(is_valid={self.is_valid}, is_expired={self.is_expired}, "
            f"is_stale={self.is_stale}, claims={self.claims!r})"
        )
