"""Unit tests for configuration: core/config.py Settings, auth/options.py, auth/keys.py.

Covers:
- SECRET_KEY policy (dev auto-generation, production refusal, minimum length)
- SessionOptions defaults and fail-fast validation
- SessionOptions.from_settings mapping
- Secret resolver variants
"""

from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from auth import ConfigurationError, CookieOptions, SessionOptions, create
from auth.keys import CallableSecret, ConstantSecret, as_resolver
from core.config import Settings

LONG_KEY = "k" * 32

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_debug_generates_secret(self, monkeypatch) -> None:
        monkeypatch.delenv("SECRET_KEY", raising=False)
        settings = Settings(debug=True, _env_file=None)
        assert len(settings.secret_key) >= 32

    def test_production_requires_secret(self, monkeypatch) -> None:
        monkeypatch.delenv("SECRET_KEY", raising=False)
        monkeypatch.delenv("DEBUG", raising=False)
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(_env_file=None)

    def test_short_secret_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least 32"):
            Settings(secret_key="short", _env_file=None)

    def test_negative_stale_window_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(secret_key=LONG_KEY, stale_after_ms=-1, _env_file=None)

    def test_defaults(self) -> None:
        settings = Settings(secret_key=LONG_KEY, _env_file=None)
        assert settings.transport == "cookie"
        assert settings.cookie_name == "jwt-express"
        assert settings.refresh_on_activity is True
        assert settings.request_property == "jwt"
        assert settings.stale_after_ms == 900000

    def test_env_vars_are_read(self, monkeypatch) -> None:
        monkeypatch.setenv("SECRET_KEY", LONG_KEY)
        monkeypatch.setenv("TRANSPORT", "header")
        monkeypatch.setenv("STALE_AFTER_MS", "1000")
        settings = Settings(_env_file=None)
        assert settings.transport == "header"
        assert settings.stale_after_ms == 1000


# ---------------------------------------------------------------------------
# SessionOptions
# ---------------------------------------------------------------------------


class TestSessionOptions:
    def test_defaults(self) -> None:
        options = SessionOptions()
        assert options.transport == "cookie"
        assert options.cookie_name == "jwt-express"
        assert options.cookie_options.httponly is True
        assert options.refresh_on_activity is True
        assert options.request_property == "jwt"
        assert options.stale_after_ms == 900000
        assert dict(options.sign_options) == {}
        assert dict(options.verify_options) == {}
        assert options.additional_verify(None) is True
        assert options.on_revoke(None) is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"transport": "query"},
            {"stale_after_ms": -1},
            {"stale_after_ms": 1.5},
            {"cookie_name": ""},
            {"request_property": "not valid"},
            {"on_revoke": "nope"},
            {"additional_verify": None},
            {"sign_options": {"expiresIn": 10}},
            {"verify_options": {"ignoreExpiration": True}},
        ],
    )
    def test_invalid_options_fail_fast(self, kwargs: dict) -> None:
        with pytest.raises(ConfigurationError):
            SessionOptions(**kwargs)

    def test_invalid_cookie_samesite(self) -> None:
        with pytest.raises(ConfigurationError):
            CookieOptions(samesite="sometimes")

    def test_options_are_immutable(self) -> None:
        options = SessionOptions(sign_options={"expires_in": 60})
        with pytest.raises(AttributeError):
            options.stale_after_ms = 1  # type: ignore[misc]
        with pytest.raises(TypeError):
            options.sign_options["expires_in"] = 1  # type: ignore[index]

    def test_evolve_revalidates(self) -> None:
        options = SessionOptions()
        assert options.evolve(stale_after_ms=10).stale_after_ms == 10
        with pytest.raises(ConfigurationError):
            options.evolve(transport="smoke-signal")

    def test_from_settings(self) -> None:
        settings = Settings(
            secret_key=LONG_KEY,
            transport="header",
            cookie_secure=True,
            cookie_max_age=3600,
            stale_after_ms=5000,
            token_expire_seconds=600,
            _env_file=None,
        )
        options = SessionOptions.from_settings(settings, refresh_on_activity=False)
        assert options.transport == "header"
        assert options.cookie_options.secure is True
        assert options.cookie_options.max_age == 3600
        assert options.stale_after_ms == 5000
        assert options.refresh_on_activity is False
        assert dict(options.sign_options) == {"algorithm": "HS256", "expires_in": 600}
        assert dict(options.verify_options) == {"algorithms": ["HS256"]}


# ---------------------------------------------------------------------------
# Secret resolvers
# ---------------------------------------------------------------------------


class TestSecretResolvers:
    def test_string_becomes_constant(self) -> None:
        resolver = as_resolver(LONG_KEY)
        assert isinstance(resolver, ConstantSecret)
        assert resolver.resolve({"any": "context"}) == LONG_KEY
        assert LONG_KEY not in repr(resolver)

    def test_callable_receives_context(self) -> None:
        resolver = as_resolver(lambda claims: f"tenant-{claims['tenant']}-" + "x" * 32)
        assert isinstance(resolver, CallableSecret)
        assert resolver.resolve({"tenant": "acme"}).startswith("tenant-acme-")

    def test_existing_resolver_passes_through(self) -> None:
        resolver = ConstantSecret(LONG_KEY)
        assert as_resolver(resolver) is resolver

    @pytest.mark.parametrize("secret", [None, "", 0, ["k"]])
    def test_missing_or_wrong_type(self, secret) -> None:
        with pytest.raises(ConfigurationError):
            as_resolver(secret)

    def test_resolver_returning_empty_secret(self) -> None:
        with pytest.raises(ConfigurationError):
            as_resolver(lambda ctx: "").resolve(None)

    def test_async_resolver_needs_async_call(self) -> None:
        async def lookup(ctx) -> str:
            return LONG_KEY

        resolver = as_resolver(lookup)
        with pytest.raises(ConfigurationError):
            resolver.resolve(None)
        assert asyncio.run(resolver.aresolve(None)) == LONG_KEY

    def test_create_resolves_secret_from_claims(self) -> None:
        seen: list = []

        def lookup(claims) -> str:
            seen.append(dict(claims))
            return LONG_KEY

        token = create(lookup, {"sub": "alice"})
        assert seen == [{"sub": "alice"}]
        assert token.is_valid is True

    def test_create_without_secret(self) -> None:
        with pytest.raises(ConfigurationError):
            create(None, {"sub": "alice"})
