"""
request_orchestrator.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for transport, tracing and auth.
- Hide secrets from repr/logging (static API token, JWT secret).
- Offer a cached settings instance for composition roots.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single settings object injected into the orchestrator, transport and token providers.
    """

    model_config = SettingsConfigDict(env_prefix="REQORCH_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "request-orchestrator"
    log_level: str = "INFO"
    log_json: bool = True

    # Transport
    api_base_url: str = "http://localhost:8080/api"
    request_timeout_s: float = 30.0
    follow_redirects: bool = True

    # Dev/test aid: delays every dispatch, overriding per-request delays.
    artificial_delay_ms: int | None = Field(default=None, ge=0)

    # Proxy-timeout heuristic (404 + non-JSON body)
    proxy_timeout_redirect_delay_ms: int = Field(default=500, ge=0)
    proxy_timeout_redirect_path: str = "/oops"

    # Tracing
    tracer_name: str = "request-orchestrator"

    # Auth: a static token wins over minted service tokens when both are configured.
    api_token: str | None = Field(default=None, repr=False)
    jwt_alg: str = "HS256"
    jwt_issuer: str = "request-orchestrator"
    jwt_audience: str = "api"
    jwt_secret: str | None = Field(default=None, repr=False)
    jwt_subject: str = "request-orchestrator"
    jwt_ttl_s: int = Field(default=300, gt=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Tests construct `Settings(...)` directly instead of going through the cached accessor.
