"""Credential contexts and the in-memory session store that owns them."""

from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from voice_inbox.profile.types import BehavioralProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialContext:
    """One user session's provider token bundle and (optional) profile.

    Produced by the auth collaborator at login; the orchestrator only reads it.
    ``provider_tokens`` is the opaque OAuth bundle (``access_token``,
    ``refresh_token``, ``scope``, …) exactly as the provider returned it.
    """

    provider_tokens: dict[str, Any] = field(default_factory=dict)
    profile: BehavioralProfile | None = None
    expiry: datetime | None = None
    user_email: str = ""

    def is_authenticated(self, now: datetime | None = None) -> bool:
        """True if the bundle holds an access token and the session has not expired."""
        if not self.provider_tokens.get("access_token"):
            return False
        if self.expiry is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now < self.expiry

    def with_profile(self, profile: BehavioralProfile | None) -> CredentialContext:
        """Return a copy carrying ``profile`` (contexts themselves are never mutated)."""
        return CredentialContext(
            provider_tokens=self.provider_tokens,
            profile=profile,
            expiry=self.expiry,
            user_email=self.user_email,
        )


#: A context with no tokens — what an anonymous caller gets.
ANONYMOUS = CredentialContext()


class SessionStore:
    """Maps opaque session IDs to CredentialContexts with a fixed TTL.

    Single-process and in-memory: restarting the server logs everyone out.
    Expired entries are dropped lazily on lookup, and swept whenever a new
    session is created so abandoned logins do not accumulate.

    Usage::

        store = SessionStore(ttl_seconds=3600)
        sid = store.create(context)
        context = store.get(sid)
        store.delete(sid)
    """

    def __init__(self, ttl_seconds: int = 60 * 60 * 24, clock: Any = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, tuple[CredentialContext, float]] = {}

    def create(self, context: CredentialContext) -> str:
        """Store ``context`` and return its new session ID."""
        self.purge_expired()
        session_id = secrets.token_urlsafe(24)
        self._sessions[session_id] = (context, self._clock() + self._ttl)
        logger.info("Session created (%d active)", len(self._sessions))
        return session_id

    def get(self, session_id: str | None) -> CredentialContext | None:
        """Return the context for ``session_id``, or None if unknown or expired."""
        if not session_id:
            return None
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        context, expires_at = entry
        if self._clock() >= expires_at:
            del self._sessions[session_id]
            logger.info("Session expired")
            return None
        return context

    def delete(self, session_id: str | None) -> bool:
        """Destroy a session. Returns True if it existed."""
        if not session_id:
            return False
        return self._sessions.pop(session_id, None) is not None

    def purge_expired(self) -> int:
        """Drop every expired session; returns how many were removed."""
        now = self._clock()
        expired = [sid for sid, (_, exp) in self._sessions.items() if now >= exp]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


def parse_expiry(value: Any) -> datetime | None:
    """Accept an ISO-8601 string, a Unix timestamp (s or ms), or None."""
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def context_from_dict(data: dict[str, Any]) -> CredentialContext:
    """Build a CredentialContext from ``{tokens, profile?, expiry?, user_email?}``."""
    tokens = data.get("tokens") or {}
    if not isinstance(tokens, dict):
        raise ValueError("'tokens' must be an object")
    raw_profile = data.get("profile")
    profile = BehavioralProfile.from_dict(raw_profile) if isinstance(raw_profile, dict) else None
    return CredentialContext(
        provider_tokens=dict(tokens),
        profile=profile,
        expiry=parse_expiry(data.get("expiry")),
        user_email=str(data.get("user_email", "")),
    )


def load_context(path: Path) -> CredentialContext:
    """Read a token file written by the auth collaborator.

    A missing file yields the anonymous context rather than an error, so the
    dispatcher can answer with "authentication required".
    """
    if not path.exists():
        logger.warning("Token file %s not found; continuing unauthenticated", path)
        return ANONYMOUS
    data = json.loads(path.read_text(encoding="utf-8"))
    return context_from_dict(data)
