"""The tool catalog — every operation the model may call, with its input schema.

The catalog is the single source of truth for both what is advertised to the
model and what the dispatcher accepts.  Adding a tool means adding a
``ToolName`` member, a definition here, and a branch in the dispatcher's
``match`` (which fails type checking until the branch exists).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

#: Bumped whenever a tool is added, removed, or its schema changes.
CATALOG_VERSION = "2026.10.2"


class ToolName(str, Enum):
    """Closed set of tool names."""

    LIST_EMAILS = "list_emails"
    GET_EMAIL_DETAILS = "get_email_details"
    SEND_EMAIL = "send_email"
    MARK_EMAIL_READ = "mark_email_read"
    DELETE_EMAIL = "delete_email"
    CREATE_EVENT = "create_event"
    LIST_EVENTS = "list_events"
    GET_EVENT_DETAILS = "get_event_details"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"
    SEARCH_EVENTS = "search_events"
    GET_FREE_BUSY = "get_free_busy"
    GET_USER_PROFILE = "get_user_profile"


class ParamType(str, Enum):
    """JSON Schema primitive types a parameter may declare."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"


@dataclass(frozen=True)
class ParamSpec:
    """One declared parameter of a tool."""

    name: str
    type: ParamType
    description: str
    required: bool = False
    default: Any = None
    enum: tuple[Any, ...] | None = None
    maximum: int | None = None            # upper bound for numeric params
    item_type: ParamType | None = None    # element type for ARRAY params
    recipient: bool = False               # address field; names are resolved to addresses

    def to_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type.value, "description": self.description}
        if self.type is ParamType.ARRAY:
            schema["items"] = {"type": (self.item_type or ParamType.STRING).value}
        if self.default is not None:
            schema["default"] = self.default
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        return schema


@dataclass(frozen=True)
class ToolDefinition:
    """A named, schema-declared operation."""

    name: ToolName
    description: str
    params: tuple[ParamSpec, ...] = field(default_factory=tuple)

    def param(self, name: str) -> ParamSpec | None:
        for spec in self.params:
            if spec.name == name:
                return spec
        return None

    @property
    def required(self) -> list[str]:
        return [p.name for p in self.params if p.required]

    def input_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.params},
        }
        if self.required:
            schema["required"] = self.required
        return schema

    def to_dict(self) -> dict[str, Any]:
        """MCP/HTTP listing shape: ``{name, description, inputSchema}``."""
        return {
            "name": self.name.value,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }

    def to_realtime_function(self) -> dict[str, Any]:
        """Realtime session function-calling shape."""
        return {
            "type": "function",
            "name": self.name.value,
            "description": self.description,
            "parameters": self.input_schema(),
        }


# ── Shared parameter specs ─────────────────────────────────────────────────────

_EMAIL_ID = ParamSpec("emailId", ParamType.STRING, "Email ID", required=True)
_EVENT_ID = ParamSpec("eventId", ParamType.STRING, "Calendar event ID", required=True)
_TIME_MIN = ParamSpec("timeMin", ParamType.STRING, "Start of the time range (ISO 8601)")
_TIME_MAX = ParamSpec("timeMax", ParamType.STRING, "End of the time range (ISO 8601)")

_EVENT_FIELDS: tuple[ParamSpec, ...] = (
    ParamSpec("description", ParamType.STRING, "Event description"),
    ParamSpec("timezone", ParamType.STRING, "IANA timezone for the event, e.g. Europe/Paris"),
    ParamSpec("location", ParamType.STRING, "Event location"),
    ParamSpec(
        "attendees",
        ParamType.ARRAY,
        "Attendee email addresses or contact names",
        item_type=ParamType.STRING,
        recipient=True,
    ),
)


_CATALOG: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        ToolName.LIST_EMAILS,
        "List emails from the inbox with optional filtering",
        (
            ParamSpec(
                "maxResults",
                ParamType.NUMBER,
                "Maximum number of emails to return (default: 20, at most 100)",
                default=20,
                maximum=100,
            ),
            ParamSpec(
                "query",
                ParamType.STRING,
                'Gmail search query (e.g., "is:unread", "from:example@email.com")',
            ),
        ),
    ),
    ToolDefinition(
        ToolName.GET_EMAIL_DETAILS,
        "Get detailed information about a specific email, including its body",
        (_EMAIL_ID,),
    ),
    ToolDefinition(
        ToolName.SEND_EMAIL,
        "Send an email or reply to an existing email",
        (
            ParamSpec(
                "to",
                ParamType.STRING,
                "Recipient email address or contact name",
                required=True,
                recipient=True,
            ),
            ParamSpec("subject", ParamType.STRING, "Email subject", required=True),
            ParamSpec("body", ParamType.STRING, "Email body content", required=True),
            ParamSpec(
                "cc",
                ParamType.ARRAY,
                "Email addresses or contact names to CC",
                item_type=ParamType.STRING,
                recipient=True,
            ),
            ParamSpec("replyToId", ParamType.STRING, "ID of the email being replied to"),
        ),
    ),
    ToolDefinition(
        ToolName.MARK_EMAIL_READ,
        "Mark an email as read or unread",
        (
            _EMAIL_ID,
            ParamSpec(
                "isRead",
                ParamType.BOOLEAN,
                "Whether to mark as read (true) or unread (false)",
                default=True,
            ),
        ),
    ),
    ToolDefinition(ToolName.DELETE_EMAIL, "Move an email to the trash", (_EMAIL_ID,)),
    ToolDefinition(
        ToolName.CREATE_EVENT,
        "Create a new calendar event with optional Google Meet link",
        (
            ParamSpec("title", ParamType.STRING, "Event title", required=True),
            ParamSpec(
                "start_time", ParamType.STRING, "Event start time in ISO 8601 format", required=True
            ),
            ParamSpec(
                "end_time", ParamType.STRING, "Event end time in ISO 8601 format", required=True
            ),
            *_EVENT_FIELDS,
            ParamSpec(
                "create_meet_link",
                ParamType.BOOLEAN,
                "Whether to create a Google Meet link",
                default=False,
            ),
        ),
    ),
    ToolDefinition(
        ToolName.LIST_EVENTS,
        "List upcoming calendar events",
        (
            ParamSpec(
                "maxResults",
                ParamType.NUMBER,
                "Maximum number of events to return",
                default=10,
                maximum=250,
            ),
            _TIME_MIN,
            _TIME_MAX,
            ParamSpec("query", ParamType.STRING, "Text query to filter events"),
        ),
    ),
    ToolDefinition(
        ToolName.GET_EVENT_DETAILS,
        "Get detailed information about a specific calendar event",
        (_EVENT_ID,),
    ),
    ToolDefinition(
        ToolName.UPDATE_EVENT,
        "Update an existing calendar event; only the given fields change",
        (
            _EVENT_ID,
            ParamSpec("title", ParamType.STRING, "Updated event title"),
            ParamSpec("start_time", ParamType.STRING, "Updated start time (ISO 8601)"),
            ParamSpec("end_time", ParamType.STRING, "Updated end time (ISO 8601)"),
            *_EVENT_FIELDS,
            ParamSpec("create_meet_link", ParamType.BOOLEAN, "Whether to add a Google Meet link"),
        ),
    ),
    ToolDefinition(ToolName.DELETE_EVENT, "Delete a calendar event", (_EVENT_ID,)),
    ToolDefinition(
        ToolName.SEARCH_EVENTS,
        "Search calendar events by keyword and date range",
        (
            ParamSpec("query", ParamType.STRING, "Search query", required=True),
            ParamSpec(
                "maxResults",
                ParamType.NUMBER,
                "Maximum number of events to return",
                default=25,
                maximum=250,
            ),
            _TIME_MIN,
            _TIME_MAX,
        ),
    ),
    ToolDefinition(
        ToolName.GET_FREE_BUSY,
        "Get the busy time windows of the user's calendar within a time range",
        (
            ParamSpec("timeMin", ParamType.STRING, "Start of the range (ISO 8601)", required=True),
            ParamSpec("timeMax", ParamType.STRING, "End of the range (ISO 8601)", required=True),
        ),
    ),
    ToolDefinition(
        ToolName.GET_USER_PROFILE,
        "Retrieve the current user's profile including contacts list for name→email resolution",
    ),
)

_BY_NAME: dict[str, ToolDefinition] = {d.name.value: d for d in _CATALOG}


def list_tools() -> tuple[ToolDefinition, ...]:
    """Return every tool definition, in advertisement order. Needs no auth."""
    return _CATALOG


def get_tool(name: str) -> ToolDefinition | None:
    """Look up a definition by its wire name."""
    return _BY_NAME.get(name)
