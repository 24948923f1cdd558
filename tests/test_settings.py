"""
tests.test_settings

Env-driven configuration.
"""

from __future__ import annotations

from request_orchestrator.settings import Settings


def test_env_prefix(monkeypatch) -> None:
    monkeypatch.setenv("REQORCH_API_BASE_URL", "https://api.example.test/v1")
    monkeypatch.setenv("REQORCH_ARTIFICIAL_DELAY_MS", "200")

    settings = Settings()

    assert settings.api_base_url == "https://api.example.test/v1"
    assert settings.artificial_delay_ms == 200


def test_secrets_are_hidden_from_repr() -> None:
    settings = Settings(api_token="tok-123", jwt_secret="s3cret")
    assert "tok-123" not in repr(settings)
    assert "s3cret" not in repr(settings)
