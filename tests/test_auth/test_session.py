"""Tests for credential contexts and the session store."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from voice_inbox.auth.session import (
    ANONYMOUS,
    CredentialContext,
    SessionStore,
    context_from_dict,
    load_context,
    parse_expiry,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


# ── CredentialContext ──────────────────────────────────────────────────────────


class TestCredentialContext:
    def test_anonymous_is_not_authenticated(self) -> None:
        assert ANONYMOUS.is_authenticated() is False

    def test_access_token_authenticates(self, auth_context: CredentialContext) -> None:
        assert auth_context.is_authenticated() is True

    def test_expired_bundle(self) -> None:
        expiry = datetime(2026, 1, 1, tzinfo=timezone.utc)
        ctx = CredentialContext(provider_tokens={"access_token": "t"}, expiry=expiry)
        assert ctx.is_authenticated(now=expiry - timedelta(seconds=1)) is True
        assert ctx.is_authenticated(now=expiry) is False

    def test_with_profile_returns_copy(self, auth_context: CredentialContext) -> None:
        bare = auth_context.with_profile(None)
        assert bare.profile is None
        assert auth_context.profile is not None
        assert bare.provider_tokens == auth_context.provider_tokens


# ── SessionStore ───────────────────────────────────────────────────────────────


class TestSessionStore:
    def test_create_and_get(self, auth_context: CredentialContext) -> None:
        store = SessionStore(ttl_seconds=60, clock=FakeClock())
        sid = store.create(auth_context)
        assert store.get(sid) is auth_context
        assert len(store) == 1

    def test_entries_expire(self, auth_context: CredentialContext) -> None:
        clock = FakeClock()
        store = SessionStore(ttl_seconds=60, clock=clock)
        sid = store.create(auth_context)
        clock.now += 60
        assert store.get(sid) is None
        assert len(store) == 0

    def test_unknown_and_empty_ids(self) -> None:
        store = SessionStore()
        assert store.get(None) is None
        assert store.get("nope") is None
        assert store.delete(None) is False

    def test_delete(self, auth_context: CredentialContext) -> None:
        store = SessionStore()
        sid = store.create(auth_context)
        assert store.delete(sid) is True
        assert store.get(sid) is None
        assert store.delete(sid) is False

    def test_purge_expired(self, auth_context: CredentialContext) -> None:
        clock = FakeClock()
        store = SessionStore(ttl_seconds=10, clock=clock)
        store.create(auth_context)
        clock.now += 5
        keep = store.create(auth_context)
        clock.now += 6
        assert store.purge_expired() == 1
        assert store.get(keep) is auth_context

    def test_abandoned_sessions_swept_on_create(self, auth_context: CredentialContext) -> None:
        clock = FakeClock()
        store = SessionStore(ttl_seconds=10, clock=clock)
        for _ in range(3):
            store.create(auth_context)
        clock.now += 11
        fresh = store.create(auth_context)
        assert len(store) == 1
        assert store.get(fresh) is auth_context

    def test_session_ids_are_unique(self, auth_context: CredentialContext) -> None:
        store = SessionStore()
        assert store.create(auth_context) != store.create(auth_context)


# ── Parsing ────────────────────────────────────────────────────────────────────


class TestParsing:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, None),
            ("", None),
            ("2026-03-04T10:00:00Z", datetime(2026, 3, 4, 10, tzinfo=timezone.utc)),
            ("2026-03-04T10:00:00", datetime(2026, 3, 4, 10, tzinfo=timezone.utc)),
            (1772618400, datetime(2026, 3, 4, 10, tzinfo=timezone.utc)),
            (1772618400000, datetime(2026, 3, 4, 10, tzinfo=timezone.utc)),
        ],
    )
    def test_parse_expiry(self, value: object, expected: datetime | None) -> None:
        assert parse_expiry(value) == expected

    def test_context_from_dict(self) -> None:
        ctx = context_from_dict(
            {
                "tokens": {"access_token": "t"},
                "profile": {"displayName": "Ana"},
                "user_email": "ana@acme.io",
            }
        )
        assert ctx.is_authenticated()
        assert ctx.profile is not None
        assert ctx.profile.display_name == "Ana"
        assert ctx.user_email == "ana@acme.io"

    def test_context_without_profile(self) -> None:
        assert context_from_dict({"tokens": {}}).profile is None

    def test_tokens_must_be_object(self) -> None:
        with pytest.raises(ValueError):
            context_from_dict({"tokens": "abc"})

    def test_load_context_missing_file(self, tmp_path: Path) -> None:
        assert load_context(tmp_path / "absent.json") is ANONYMOUS

    def test_load_context_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "tokens.json"
        path.write_text(json.dumps({"tokens": {"access_token": "t"}}), encoding="utf-8")
        assert load_context(path).is_authenticated()
