"""
request_orchestrator.auth.tokens

Token providers for bearer injection.

Responsibilities:
- Supply the current bearer token (or nothing) on demand.
- Mint and cache service JWTs from settings.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol

from request_orchestrator.auth.jwt import JwtConfig, issue_token
from request_orchestrator.settings import Settings


class TokenProvider(Protocol):
    def __call__(self) -> str | None: ...


class StaticTokenProvider:
    """
    Returns whatever token the host session currently holds; `set` swaps it in place.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def set(self, token: str | None) -> None:
        self._token = token

    def __call__(self) -> str | None:
        return self._token


class ServiceTokenProvider:
    # Re-mint this long before expiry so a token never expires mid-flight.
    _refresh_margin = timedelta(seconds=30)

    def __init__(self, *, settings: Settings) -> None:
        if not settings.jwt_secret:
            raise ValueError("jwt_secret is required for service tokens")
        self._cfg = JwtConfig(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )
        self._subject = settings.jwt_subject
        self._ttl = timedelta(seconds=settings.jwt_ttl_s)
        self._token: str | None = None
        self._expires_at: datetime | None = None

    def __call__(self) -> str | None:
        now = datetime.now(tz=UTC)
        if self._token is None or self._expires_at is None or now >= self._expires_at - self._refresh_margin:
            self._token = issue_token(cfg=self._cfg, subject=self._subject, ttl=self._ttl, now=now)
            self._expires_at = now + self._ttl
        return self._token


def token_provider_from_settings(settings: Settings) -> TokenProvider:
    if settings.api_token:
        return StaticTokenProvider(settings.api_token)
    if settings.jwt_secret:
        return ServiceTokenProvider(settings=settings)
    return StaticTokenProvider(None)


# --- Module Notes -----------------------------------------------------------
# Providers are synchronous: they are consulted inside `httpx.Auth.auth_flow` for every
# outgoing request.
