"""Capability interfaces — what the dispatcher needs from a mail/calendar provider."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from voice_inbox.capabilities.types import (
    BusyWindow,
    CalendarEvent,
    EmailEnvelope,
    EventDraft,
    SentMessage,
)
from voice_inbox.orchestrator.errors import ToolError


class CapabilityError(ToolError):
    """Raised when a provider call fails (network, rejection, missing resource)."""


# ── Mail ───────────────────────────────────────────────────────────────────────


@runtime_checkable
class MailClient(Protocol):
    """Mail operations, bound to one authenticated session."""

    async def list_messages(
        self, max_results: int = 20, query: str | None = None
    ) -> list[EmailEnvelope]: ...

    async def get_message(self, message_id: str) -> EmailEnvelope: ...

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        cc: list[str] | None = None,
        reply_to_id: str | None = None,
    ) -> dict[str, Any]: ...

    async def mark_read(self, message_id: str, is_read: bool = True) -> dict[str, Any]: ...

    async def trash_message(self, message_id: str) -> dict[str, Any]: ...

    async def list_sent(
        self, max_results: int = 200, include_body: bool = False
    ) -> list[SentMessage]: ...


# ── Calendar ───────────────────────────────────────────────────────────────────


@runtime_checkable
class CalendarClient(Protocol):
    """Calendar operations, bound to one authenticated session."""

    async def create_event(self, draft: EventDraft) -> CalendarEvent: ...

    async def get_event(self, event_id: str) -> CalendarEvent: ...

    async def update_event(self, event_id: str, draft: EventDraft) -> CalendarEvent: ...

    async def delete_event(self, event_id: str) -> None: ...

    async def list_events(
        self,
        max_results: int = 10,
        time_min: str | None = None,
        time_max: str | None = None,
        query: str | None = None,
    ) -> list[CalendarEvent]: ...

    async def free_busy(self, time_min: str, time_max: str) -> list[BusyWindow]: ...


@dataclass(frozen=True)
class Capabilities:
    """The pair of clients one dispatch may use."""

    mail: MailClient
    calendar: CalendarClient


#: Builds the capability clients for an authenticated context.
#: Only called after the dispatcher's auth gate has passed.
CapabilityFactory = Callable[[Any], Capabilities]
