"""
auth/codec.py -- JWT encode / decode boundary (python-jose).

The rest of the package treats this module as the signing primitive:

  encode(claims, key, sign_options)            -> encoded token string
  decode_verified(raw, key, verify_options)    -> claims, or raises
                                                  ExpiredError / InvalidError
  decode_unverified(raw)                        -> claims, {} on malformation

python-jose verifies the signature before validating registered claims, so an
ExpiredSignatureError always means the signature itself was good. That is the
only failure classified as ExpiredError; everything else is InvalidError.

Sign options (all optional):
  algorithm   JWS algorithm, default HS256
  expires_in  seconds from now, written as the exp claim
  not_before  seconds from now, written as the nbf claim
  audience / issuer / subject   written as aud / iss / sub
  headers     extra JOSE header fields

Verify options (all optional):
  algorithms  accepted algorithms, default [HS256]
  audience / issuer / subject   required values for aud / iss / sub; each
              claim is checked only when its expected value is given
  leeway      clock skew tolerance in seconds for exp / nbf
  options     python-jose verification flags (e.g. {"verify_exp": False}),
              layered over the defaults above; iat and jti are never checked
              unless enabled here
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from auth.errors import ConfigurationError, ExpiredError, InvalidError

logger = logging.getLogger("jwtsession.auth.codec")

DEFAULT_ALGORITHM = "HS256"

SIGN_OPTION_KEYS = frozenset({"algorithm", "expires_in", "not_before", "audience", "issuer", "subject", "headers"})
VERIFY_OPTION_KEYS = frozenset({"algorithms", "audience", "issuer", "subject", "leeway", "options"})


def check_options(options: Mapping[str, Any], allowed: frozenset[str], label: str) -> None:
    """Raise ConfigurationError if options carries keys the codec does not understand."""
    unknown = set(options) - allowed
    if unknown:
        raise ConfigurationError(f"Unknown {label} options: {sorted(unknown)!r}")


def encode(claims: Mapping[str, Any], key: str, sign_options: Mapping[str, Any] | None = None) -> str:
    opts = dict(sign_options or {})
    check_options(opts, SIGN_OPTION_KEYS, "sign")

    payload = dict(claims)
    now = int(time.time())
    if opts.get("expires_in") is not None:
        payload["exp"] = now + int(opts["expires_in"])
    if opts.get("not_before") is not None:
        payload["nbf"] = now + int(opts["not_before"])
    for option, claim in (("audience", "aud"), ("issuer", "iss"), ("subject", "sub")):
        if opts.get(option) is not None:
            payload[claim] = opts[option]

    return jwt.encode(
        payload,
        key,
        algorithm=opts.get("algorithm", DEFAULT_ALGORITHM),
        headers=opts.get("headers"),
    )


def decode_verified(raw: str, key: str, verify_options: Mapping[str, Any] | None = None) -> dict[str, Any]:
    opts = dict(verify_options or {})
    check_options(opts, VERIFY_OPTION_KEYS, "verify")

    # Registered claims are only checked when an expected value is configured.
    jose_options: dict[str, Any] = {
        "verify_aud": opts.get("audience") is not None,
        "verify_iss": opts.get("issuer") is not None,
        "verify_sub": opts.get("subject") is not None,
        "verify_jti": False,
        "verify_iat": False,
    }
    jose_options.update(opts.get("options") or {})
    if opts.get("leeway") is not None:
        jose_options["leeway"] = opts["leeway"]

    try:
        claims = jwt.decode(
            raw,
            key,
            algorithms=opts.get("algorithms") or [DEFAULT_ALGORITHM],
            options=jose_options,
            audience=opts.get("audience"),
            issuer=opts.get("issuer"),
            subject=opts.get("subject"),
        )
    except ExpiredSignatureError as exc:
        raise ExpiredError(str(exc)) from exc
    except JWTError as exc:
        raise InvalidError(str(exc)) from exc
    if not isinstance(claims, dict):
        raise InvalidError("Token payload is not a JSON object")
    return claims


def decode_unverified(raw: str) -> dict[str, Any]:
    """Best-effort payload decode with no signature check.

    Used only to recover the claims of an expired or otherwise rejected token
    so callers can inspect what it said. Never raises.
    """
    if not raw:
        return {}
    try:
        claims = jwt.get_unverified_claims(raw)
    except (JWTError, ValueError, TypeError):
        logger.debug("Token could not be structurally decoded")
        return {}
    return claims if isinstance(claims, dict) else {}
