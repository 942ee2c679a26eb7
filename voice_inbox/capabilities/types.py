"""Envelope types returned by the mail and calendar capability clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class EmailEnvelope:
    """A read-only mirror of one provider message.

    Fields populated by list operations (metadata fetch):
        id, subject, sender, to, date, is_read, snippet

    Fields populated by get operations (full fetch):
        body  (plus all of the above)
    """

    id: str
    subject: str
    sender: str
    to: str
    date: str
    is_read: bool
    snippet: str
    body: str | None = None

    def to_dict(self, include_body: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "subject": self.subject,
            "from": self.sender,
            "to": self.to,
            "date": self.date,
            "isRead": self.is_read,
            "snippet": self.snippet,
        }
        if include_body:
            data["body"] = self.body or ""
        return data


@dataclass(frozen=True)
class SentMessage:
    """One item of the user's sent-mail history (resolver and profile input)."""

    id: str
    sender: str
    to: tuple[str, ...] = ()        # bare addresses
    cc: tuple[str, ...] = ()
    subject: str = ""
    body: str = ""
    # "Display Name <addr>" pairs as written in the headers, for contact extraction
    named_recipients: tuple[tuple[str, str], ...] = ()

    @property
    def recipients(self) -> tuple[str, ...]:
        return self.to + self.cc


@dataclass(frozen=True)
class CalendarEvent:
    """A read-only mirror of one provider calendar event."""

    id: str
    title: str
    start_time: str
    end_time: str
    description: str = ""
    location: str = ""
    timezone: str | None = None
    attendees: list[str] = field(default_factory=list)
    meet_link: str | None = None
    calendar_link: str | None = None
    status: str = ""
    created_by: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "timezone": self.timezone,
            "attendees": list(self.attendees),
            "meet_link": self.meet_link,
            "calendar_link": self.calendar_link,
            "status": self.status,
            "created_by": self.created_by,
        }


@dataclass(frozen=True)
class EventDraft:
    """Write-side event fields. ``None`` means "leave unchanged" on update."""

    title: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    description: str | None = None
    location: str | None = None
    timezone: str | None = None
    attendees: list[str] | None = None
    create_meet_link: bool = False


@dataclass(frozen=True)
class BusyWindow:
    """A busy interval returned by a free/busy query."""

    start: str
    end: str


def summarize_inbox(emails: list[EmailEnvelope]) -> dict[str, Any]:
    """Unread/total counts plus a sentence the model can read aloud."""
    unread = sum(1 for e in emails if not e.is_read)
    total = len(emails)
    return {
        "unreadCount": unread,
        "totalCount": total,
        "summary": (
            f"You have {unread} unread emails out of {total} total emails in your inbox."
        ),
    }
