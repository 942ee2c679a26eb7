"""Shared pytest fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from voice_inbox.auth.session import CredentialContext
from voice_inbox.capabilities.base import Capabilities
from voice_inbox.profile.types import BehavioralProfile, Contact


@pytest.fixture
def sample_profile() -> BehavioralProfile:
    """A profile with one named contact and one frequent-contact address."""
    return BehavioralProfile(
        display_name="Ana Pereira",
        primary_email="ana@acme.io",
        tone="friendly and casual",
        contacts=(Contact(name="john smith", email="js@x.com"),),
        frequent_contacts=("bob.builder@acme.io",),
        coworkers=("bob.builder@acme.io",),
    )


@pytest.fixture
def auth_context(sample_profile: BehavioralProfile) -> CredentialContext:
    return CredentialContext(
        provider_tokens={"access_token": "ya29.token", "refresh_token": "1//refresh"},
        profile=sample_profile,
        user_email="ana@acme.io",
    )


@pytest.fixture
def mail() -> MagicMock:
    """A MailClient double whose every method is an AsyncMock."""
    m = MagicMock()
    m.list_messages = AsyncMock(return_value=[])
    m.get_message = AsyncMock()
    m.send_message = AsyncMock(return_value={"id": "sent_1"})
    m.mark_read = AsyncMock()
    m.trash_message = AsyncMock()
    m.list_sent = AsyncMock(return_value=[])
    return m


@pytest.fixture
def calendar() -> MagicMock:
    """A CalendarClient double whose every method is an AsyncMock."""
    c = MagicMock()
    c.create_event = AsyncMock()
    c.get_event = AsyncMock()
    c.update_event = AsyncMock()
    c.delete_event = AsyncMock(return_value=None)
    c.list_events = AsyncMock(return_value=[])
    c.free_busy = AsyncMock(return_value=[])
    return c


@pytest.fixture
def capabilities(mail: MagicMock, calendar: MagicMock) -> Capabilities:
    return Capabilities(mail=mail, calendar=calendar)
