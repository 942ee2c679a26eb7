"""Tests for Settings.from_env."""

from pathlib import Path

import pytest

from voice_inbox.config import Settings

_VARS = (
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_TOKEN_URI",
    "REALTIME_URL",
    "REALTIME_MODEL",
    "PROFILE_MODEL",
    "SESSION_SECRET",
    "DISPATCH_URL",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "BUILD_PROFILE_ON_LOGIN",
    "SESSION_TTL_SECONDS",
    "TOOL_TIMEOUT_SECONDS",
    "VOICE_INBOX_TOKEN_FILE",
    "REALTIME_VOICE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings.from_env()
    assert settings == Settings()
    assert settings.token_file is None
    assert settings.build_profile_on_login is True


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("SESSION_TTL_SECONDS", "600")
    monkeypatch.setenv("TOOL_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("VOICE_INBOX_TOKEN_FILE", "/tmp/tokens.json")
    monkeypatch.setenv("REALTIME_VOICE", "alloy")

    settings = Settings.from_env()

    assert settings.openai_api_key == "sk-test"
    assert settings.session_ttl_seconds == 600
    assert settings.tool_timeout_seconds == 2.5
    assert settings.token_file == Path("/tmp/tokens.json")
    assert settings.realtime_voice == "alloy"


@pytest.mark.parametrize("raw, expected", [("false", False), ("0", False), ("YES", True)])
def test_profile_flag(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("BUILD_PROFILE_ON_LOGIN", raw)
    assert Settings.from_env().build_profile_on_login is expected
