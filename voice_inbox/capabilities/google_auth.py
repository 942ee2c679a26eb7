"""Turn a session's OAuth token bundle into Google API clients."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from voice_inbox.capabilities.base import Capabilities

if TYPE_CHECKING:
    from voice_inbox.auth.session import CredentialContext
    from voice_inbox.config import Settings

logger = logging.getLogger(__name__)

SCOPES: list[str] = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/calendar",
]


def build_credentials(tokens: dict[str, Any], settings: Settings) -> Credentials:
    """Map the provider's token bundle onto google-auth Credentials.

    The refresh fields are filled from settings so an expired access token can
    be refreshed transparently by the Google client library.
    """
    scope = tokens.get("scope")
    scopes = scope.split() if isinstance(scope, str) else scope or SCOPES
    return Credentials(
        token=tokens.get("access_token"),
        refresh_token=tokens.get("refresh_token"),
        token_uri=settings.google_token_uri,
        client_id=settings.google_client_id or None,
        client_secret=settings.google_client_secret or None,
        scopes=scopes,
    )


def google_capabilities(settings: Settings):
    """Return a capability factory bound to ``settings``.

    The factory is what the dispatcher calls after its auth gate::

        dispatcher = ToolDispatcher(google_capabilities(settings))
    """
    from voice_inbox.capabilities.calendar_client import GoogleCalendarClient
    from voice_inbox.capabilities.gmail_client import GmailClient

    def factory(context: CredentialContext) -> Capabilities:
        creds = build_credentials(context.provider_tokens, settings)
        gmail = build("gmail", "v1", credentials=creds, cache_discovery=False)
        calendar = build("calendar", "v3", credentials=creds, cache_discovery=False)
        logger.debug("Built Google capability clients for %s", context.user_email or "session")
        return Capabilities(mail=GmailClient(gmail), calendar=GoogleCalendarClient(calendar))

    return factory
