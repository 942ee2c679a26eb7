"""Runtime settings — read once from the environment (and .env) at startup."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_TRUE = ("1", "true", "yes")


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in _TRUE


@dataclass(frozen=True)
class Settings:
    """Every tunable the servers, the bridge and the CLI share.

    Built with ``Settings.from_env()`` after ``load_dotenv()`` has run, so a
    local ``.env`` file and the real environment are interchangeable.
    """

    # Google OAuth client — needed to refresh access tokens in a token bundle
    google_client_id: str = ""
    google_client_secret: str = ""
    google_token_uri: str = "https://oauth2.googleapis.com/token"

    # Realtime speech/LLM session
    openai_api_key: str = ""
    realtime_url: str = "wss://api.openai.com/v1/realtime"
    realtime_model: str = "gpt-4o-realtime-preview-2024-12-17"
    realtime_voice: str = "verse"

    # Profile enrichment
    anthropic_api_key: str = ""
    profile_model: str = "claude-haiku-4-5-20251001"
    build_profile_on_login: bool = True

    # Sessions and dispatch
    session_secret: str = "change-me"
    session_ttl_seconds: int = 60 * 60 * 24
    tool_timeout_seconds: float = 30.0
    token_file: Path | None = None
    dispatch_url: str = "http://localhost:8000/api/tools/call"

    @classmethod
    def from_env(cls) -> Settings:
        """Build Settings from environment variables."""
        token_file = os.environ.get("VOICE_INBOX_TOKEN_FILE", "")
        return cls(
            google_client_id=os.environ.get("GOOGLE_CLIENT_ID", ""),
            google_client_secret=os.environ.get("GOOGLE_CLIENT_SECRET", ""),
            google_token_uri=os.environ.get(
                "GOOGLE_TOKEN_URI", "https://oauth2.googleapis.com/token"
            ),
            openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
            realtime_url=os.environ.get("REALTIME_URL", "wss://api.openai.com/v1/realtime"),
            realtime_model=os.environ.get(
                "REALTIME_MODEL", "gpt-4o-realtime-preview-2024-12-17"
            ),
            realtime_voice=os.environ.get("REALTIME_VOICE", "verse"),
            anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
            profile_model=os.environ.get("PROFILE_MODEL", "claude-haiku-4-5-20251001"),
            build_profile_on_login=_flag("BUILD_PROFILE_ON_LOGIN", "true"),
            session_secret=os.environ.get("SESSION_SECRET", "change-me"),
            session_ttl_seconds=int(os.environ.get("SESSION_TTL_SECONDS", "86400")),
            tool_timeout_seconds=float(os.environ.get("TOOL_TIMEOUT_SECONDS", "30")),
            token_file=Path(token_file) if token_file else None,
            dispatch_url=os.environ.get(
                "DISPATCH_URL", "http://localhost:8000/api/tools/call"
            ),
        )
