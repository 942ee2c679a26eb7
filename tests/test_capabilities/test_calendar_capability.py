"""Tests for GoogleCalendarClient — the Calendar API Resource is mocked."""

from typing import Any
from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from voice_inbox.capabilities.base import CapabilityError
from voice_inbox.capabilities.calendar_client import GoogleCalendarClient
from voice_inbox.capabilities.types import EventDraft


# ── Helpers ────────────────────────────────────────────────────────────────────


def _request(result: Any) -> MagicMock:
    req = MagicMock()
    req.execute.return_value = result
    return req


def _event_resource(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": "evt_1",
        "summary": "Design review",
        "description": "Q2 roadmap",
        "location": "Room 4",
        "start": {"dateTime": "2026-03-04T10:00:00+01:00", "timeZone": "Europe/Paris"},
        "end": {"dateTime": "2026-03-04T11:00:00+01:00", "timeZone": "Europe/Paris"},
        "attendees": [{"email": "bob@acme.io"}, {"email": "carol@acme.io"}],
        "htmlLink": "https://calendar.google.com/event?eid=1",
        "status": "confirmed",
        "creator": {"email": "ana@acme.io"},
    }
    data.update(overrides)
    return data


@pytest.fixture
def service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def events(service: MagicMock) -> MagicMock:
    return service.events.return_value


# ── create_event ───────────────────────────────────────────────────────────────


class TestCreateEvent:
    async def test_builds_request_with_reminders(self, service: MagicMock, events: MagicMock) -> None:
        events.insert.return_value = _request(_event_resource())
        draft = EventDraft(
            title="Design review",
            start_time="2026-03-04T10:00:00+01:00",
            end_time="2026-03-04T11:00:00+01:00",
            timezone="Europe/Paris",
            attendees=["bob@acme.io", " carol@acme.io "],
        )

        event = await GoogleCalendarClient(service).create_event(draft)

        kwargs = events.insert.call_args.kwargs
        body = kwargs["body"]
        assert kwargs["calendarId"] == "primary"
        assert kwargs["sendUpdates"] == "all"
        assert kwargs["conferenceDataVersion"] == 0
        assert body["start"] == {"dateTime": "2026-03-04T10:00:00+01:00", "timeZone": "Europe/Paris"}
        assert body["attendees"] == [{"email": "bob@acme.io"}, {"email": "carol@acme.io"}]
        assert body["reminders"]["overrides"] == [
            {"method": "email", "minutes": 1440},
            {"method": "popup", "minutes": 10},
        ]
        assert "conferenceData" not in body
        assert event.title == "Design review"
        assert event.attendees == ["bob@acme.io", "carol@acme.io"]

    async def test_meet_link_requested(self, service: MagicMock, events: MagicMock) -> None:
        events.insert.return_value = _request(
            _event_resource(
                conferenceData={"entryPoints": [{"uri": "https://meet.google.com/abc-defg-hij"}]}
            )
        )
        draft = EventDraft(title="Sync", start_time="a", end_time="b", create_meet_link=True)

        event = await GoogleCalendarClient(service).create_event(draft)

        kwargs = events.insert.call_args.kwargs
        assert kwargs["conferenceDataVersion"] == 1
        create = kwargs["body"]["conferenceData"]["createRequest"]
        assert create["conferenceSolutionKey"] == {"type": "hangoutsMeet"}
        assert create["requestId"].startswith("meet_")
        assert event.meet_link == "https://meet.google.com/abc-defg-hij"

    async def test_default_timezone(self, service: MagicMock, events: MagicMock) -> None:
        events.insert.return_value = _request(_event_resource())
        await GoogleCalendarClient(service).create_event(
            EventDraft(title="x", start_time="a", end_time="b")
        )
        assert events.insert.call_args.kwargs["body"]["start"]["timeZone"] == "UTC"

    async def test_missing_fields(self, service: MagicMock, events: MagicMock) -> None:
        with pytest.raises(CapabilityError, match="Missing required fields"):
            await GoogleCalendarClient(service).create_event(EventDraft(title="x"))
        events.insert.assert_not_called()


# ── update / get / delete ──────────────────────────────────────────────────────


class TestUpdateEvent:
    async def test_merges_only_given_fields(self, service: MagicMock, events: MagicMock) -> None:
        events.get.return_value = _request(_event_resource())
        events.update.return_value = _request(_event_resource(summary="Renamed"))

        event = await GoogleCalendarClient(service).update_event("evt_1", EventDraft(title="Renamed"))

        body = events.update.call_args.kwargs["body"]
        assert body["summary"] == "Renamed"
        assert body["description"] == "Q2 roadmap"
        assert body["attendees"] == [{"email": "bob@acme.io"}, {"email": "carol@acme.io"}]
        assert event.title == "Renamed"

    async def test_new_start_keeps_existing_timezone(self, service: MagicMock, events: MagicMock) -> None:
        events.get.return_value = _request(_event_resource())
        events.update.return_value = _request(_event_resource())
        await GoogleCalendarClient(service).update_event(
            "evt_1", EventDraft(start_time="2026-03-05T10:00:00+01:00")
        )
        body = events.update.call_args.kwargs["body"]
        assert body["start"] == {"dateTime": "2026-03-05T10:00:00+01:00", "timeZone": "Europe/Paris"}

    async def test_no_second_meet_link(self, service: MagicMock, events: MagicMock) -> None:
        existing = _event_resource(conferenceData={"entryPoints": [{"uri": "https://meet/x"}]})
        events.get.return_value = _request(existing)
        events.update.return_value = _request(existing)
        await GoogleCalendarClient(service).update_event("evt_1", EventDraft(create_meet_link=True))
        assert events.update.call_args.kwargs["conferenceDataVersion"] == 0


class TestGetAndDelete:
    async def test_get_event_defaults(self, service: MagicMock, events: MagicMock) -> None:
        events.get.return_value = _request({"id": "e2", "start": {"date": "2026-03-04"}, "end": {}})
        event = await GoogleCalendarClient(service).get_event("e2")
        assert event.title == "No Title"
        assert event.start_time == "2026-03-04"
        assert event.created_by == "Unknown"
        assert event.meet_link is None

    async def test_delete_notifies_attendees(self, service: MagicMock, events: MagicMock) -> None:
        events.delete.return_value = _request("")
        await GoogleCalendarClient(service).delete_event("e2")
        assert events.delete.call_args.kwargs == {
            "calendarId": "primary",
            "eventId": "e2",
            "sendUpdates": "all",
        }

    async def test_not_found(self, service: MagicMock, events: MagicMock) -> None:
        resp = MagicMock()
        resp.status = 404
        resp.reason = "Not Found"
        req = MagicMock()
        req.execute.side_effect = HttpError(resp, b"")
        events.get.return_value = req
        with pytest.raises(CapabilityError, match="HTTP 404"):
            await GoogleCalendarClient(service).get_event("missing")


# ── list / free-busy ───────────────────────────────────────────────────────────


class TestListEvents:
    async def test_bare_listing_starts_now(self, service: MagicMock, events: MagicMock) -> None:
        events.list.return_value = _request({"items": [_event_resource()]})
        result = await GoogleCalendarClient(service).list_events(max_results=3)
        kwargs = events.list.call_args.kwargs
        assert kwargs["maxResults"] == 3
        assert kwargs["singleEvents"] is True
        assert kwargs["orderBy"] == "startTime"
        assert "timeMin" in kwargs
        assert "q" not in kwargs
        assert [e.id for e in result] == ["evt_1"]

    async def test_query_without_time_min_searches_all(self, service: MagicMock, events: MagicMock) -> None:
        events.list.return_value = _request({})
        await GoogleCalendarClient(service).list_events(query="review")
        kwargs = events.list.call_args.kwargs
        assert kwargs["q"] == "review"
        assert "timeMin" not in kwargs

    async def test_explicit_range(self, service: MagicMock, events: MagicMock) -> None:
        events.list.return_value = _request({})
        await GoogleCalendarClient(service).list_events(time_min="t0", time_max="t1")
        kwargs = events.list.call_args.kwargs
        assert (kwargs["timeMin"], kwargs["timeMax"]) == ("t0", "t1")


class TestFreeBusy:
    async def test_returns_windows(self, service: MagicMock) -> None:
        service.freebusy.return_value.query.return_value = _request(
            {"calendars": {"primary": {"busy": [{"start": "s1", "end": "e1"}]}}}
        )
        windows = await GoogleCalendarClient(service).free_busy("t0", "t1")
        assert [(w.start, w.end) for w in windows] == [("s1", "e1")]
        body = service.freebusy.return_value.query.call_args.kwargs["body"]
        assert body["items"] == [{"id": "primary"}]

    async def test_calendar_errors_raise(self, service: MagicMock) -> None:
        service.freebusy.return_value.query.return_value = _request(
            {"calendars": {"primary": {"errors": [{"reason": "notFound"}]}}}
        )
        with pytest.raises(CapabilityError):
            await GoogleCalendarClient(service).free_busy("t0", "t1")
