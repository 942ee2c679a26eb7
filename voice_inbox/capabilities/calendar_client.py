"""Google Calendar capability client."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from googleapiclient.errors import HttpError

from voice_inbox.capabilities.base import CapabilityError
from voice_inbox.capabilities.types import BusyWindow, CalendarEvent, EventDraft

logger = logging.getLogger(__name__)

_DEFAULT_TZ = "UTC"

# Reminders applied to events the assistant creates: 1 day by email, 10 min popup
_REMINDERS: dict[str, Any] = {
    "useDefault": False,
    "overrides": [
        {"method": "email", "minutes": 24 * 60},
        {"method": "popup", "minutes": 10},
    ],
}


class GoogleCalendarClient:
    """Async wrapper around a Calendar API ``Resource`` for one calendar.

    Attendee changes are always sent with ``sendUpdates="all"`` so invitees
    hear about creations, edits and cancellations.
    """

    def __init__(self, service: Any, calendar_id: str = "primary") -> None:
        self._service = service
        self._calendar_id = calendar_id

    # ── Public API ─────────────────────────────────────────────────────────────

    async def create_event(self, draft: EventDraft) -> CalendarEvent:
        """Create an event, optionally with a Google Meet link."""
        if not (draft.title and draft.start_time and draft.end_time):
            raise CapabilityError("Missing required fields: title, start_time, end_time")

        tz = draft.timezone or _DEFAULT_TZ
        body: dict[str, Any] = {
            "summary": draft.title,
            "description": draft.description or "",
            "location": draft.location or "",
            "start": {"dateTime": draft.start_time, "timeZone": tz},
            "end": {"dateTime": draft.end_time, "timeZone": tz},
            "attendees": [{"email": a.strip()} for a in draft.attendees or []],
            "reminders": _REMINDERS,
        }
        if draft.create_meet_link:
            body["conferenceData"] = _meet_request()

        created = await self._execute(
            self._events().insert(
                calendarId=self._calendar_id,
                body=body,
                conferenceDataVersion=1 if draft.create_meet_link else 0,
                sendUpdates="all",
            ),
            "create event",
        )
        event = self._parse_event(created)
        logger.info("Created calendar event %s (%r)", event.id, event.title)
        return event

    async def get_event(self, event_id: str) -> CalendarEvent:
        raw = await self._execute(
            self._events().get(calendarId=self._calendar_id, eventId=event_id),
            f"get event {event_id}",
        )
        return self._parse_event(raw)

    async def update_event(self, event_id: str, draft: EventDraft) -> CalendarEvent:
        """Merge the non-None fields of ``draft`` into the stored event."""
        current = await self._execute(
            self._events().get(calendarId=self._calendar_id, eventId=event_id),
            f"get event {event_id}",
        )
        merged = dict(current)
        if draft.title is not None:
            merged["summary"] = draft.title
        if draft.description is not None:
            merged["description"] = draft.description
        if draft.location is not None:
            merged["location"] = draft.location
        if draft.start_time is not None:
            merged["start"] = {
                "dateTime": draft.start_time,
                "timeZone": draft.timezone or current.get("start", {}).get("timeZone") or _DEFAULT_TZ,
            }
        if draft.end_time is not None:
            merged["end"] = {
                "dateTime": draft.end_time,
                "timeZone": draft.timezone or current.get("end", {}).get("timeZone") or _DEFAULT_TZ,
            }
        if draft.attendees is not None:
            merged["attendees"] = [{"email": a.strip()} for a in draft.attendees]
        add_meet = draft.create_meet_link and not current.get("conferenceData")
        if add_meet:
            merged["conferenceData"] = _meet_request()

        updated = await self._execute(
            self._events().update(
                calendarId=self._calendar_id,
                eventId=event_id,
                body=merged,
                conferenceDataVersion=1 if add_meet else 0,
                sendUpdates="all",
            ),
            f"update event {event_id}",
        )
        logger.info("Updated calendar event %s", event_id)
        return self._parse_event(updated)

    async def delete_event(self, event_id: str) -> None:
        await self._execute(
            self._events().delete(
                calendarId=self._calendar_id, eventId=event_id, sendUpdates="all"
            ),
            f"delete event {event_id}",
        )
        logger.info("Deleted calendar event %s", event_id)

    async def list_events(
        self,
        max_results: int = 10,
        time_min: str | None = None,
        time_max: str | None = None,
        query: str | None = None,
    ) -> list[CalendarEvent]:
        """List single (expanded) events ordered by start time.

        ``time_min`` defaults to now when no query is given, so a bare listing
        means "upcoming events".
        """
        params: dict[str, Any] = {
            "calendarId": self._calendar_id,
            "maxResults": max_results,
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if time_min:
            params["timeMin"] = time_min
        elif not query:
            params["timeMin"] = datetime.now(timezone.utc).isoformat()
        if time_max:
            params["timeMax"] = time_max
        if query:
            params["q"] = query

        raw = await self._execute(self._events().list(**params), "list events")
        return [self._parse_event(item) for item in raw.get("items", [])]

    async def free_busy(self, time_min: str, time_max: str) -> list[BusyWindow]:
        raw = await self._execute(
            self._service.freebusy().query(
                body={
                    "timeMin": time_min,
                    "timeMax": time_max,
                    "items": [{"id": self._calendar_id}],
                }
            ),
            "query free/busy",
        )
        calendar = raw.get("calendars", {}).get(self._calendar_id, {})
        if calendar.get("errors"):
            raise CapabilityError(f"Free/busy query failed: {calendar['errors']}")
        return [
            BusyWindow(start=str(slot.get("start", "")), end=str(slot.get("end", "")))
            for slot in calendar.get("busy", [])
        ]

    # ── Internal helpers ───────────────────────────────────────────────────────

    def _events(self) -> Any:
        return self._service.events()

    @staticmethod
    async def _execute(request: Any, what: str) -> dict[str, Any]:
        logger.debug("Calendar → %s", what)
        try:
            result = await asyncio.to_thread(request.execute)
        except HttpError as exc:
            status = getattr(exc.resp, "status", "?")
            raise CapabilityError(
                f"Calendar could not {what} (HTTP {status}): {exc}"
            ) from exc
        return result or {}

    @staticmethod
    def _parse_event(data: dict[str, Any]) -> CalendarEvent:
        """Map a Calendar event resource to a CalendarEvent."""
        start = data.get("start", {})
        end = data.get("end", {})
        entry_points = data.get("conferenceData", {}).get("entryPoints", [])
        return CalendarEvent(
            id=str(data.get("id", "")),
            title=data.get("summary") or "No Title",
            description=data.get("description", ""),
            location=data.get("location", ""),
            start_time=start.get("dateTime") or start.get("date", ""),
            end_time=end.get("dateTime") or end.get("date", ""),
            timezone=start.get("timeZone"),
            attendees=[a["email"] for a in data.get("attendees", []) if a.get("email")],
            meet_link=entry_points[0].get("uri") if entry_points else None,
            calendar_link=data.get("htmlLink"),
            status=data.get("status", ""),
            created_by=data.get("creator", {}).get("email", "Unknown"),
        )


def _meet_request() -> dict[str, Any]:
    return {
        "createRequest": {
            "requestId": f"meet_{uuid.uuid4().hex}",
            "conferenceSolutionKey": {"type": "hangoutsMeet"},
        }
    }
