"""Tool dispatcher — the single, stateless entry point for executing tool calls.

Both transports (the HTTP endpoint and the stdio MCP server) hand every
call to ``ToolDispatcher.dispatch``; the realtime bridge reaches it through
the HTTP endpoint.  A dispatch always returns a ToolResult and never raises.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, assert_never

from voice_inbox.capabilities.base import Capabilities, CapabilityError, CapabilityFactory
from voice_inbox.capabilities.types import EventDraft, summarize_inbox
from voice_inbox.orchestrator.catalog import ToolDefinition, ToolName, get_tool
from voice_inbox.orchestrator.errors import (
    AuthRequired,
    ResolutionError,
    ToolError,
    UnknownTool,
    ValidationError,
)
from voice_inbox.orchestrator.resolver import ContactResolver
from voice_inbox.orchestrator.validation import validate_arguments

if TYPE_CHECKING:
    from voice_inbox.auth.session import CredentialContext
    from voice_inbox.capabilities.base import MailClient
    from voice_inbox.profile.types import BehavioralProfile

logger = logging.getLogger(__name__)

TOOL_TIMEOUT_SECONDS = 30.0


class CallState(str, Enum):
    """Lifecycle of one call: received → validating → (rejected | routing) → (succeeded | failed)."""

    RECEIVED = "received"
    VALIDATING = "validating"
    REJECTED = "rejected"
    ROUTING = "routing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CallState.REJECTED, CallState.SUCCEEDED, CallState.FAILED)


@dataclass(frozen=True)
class ToolCall:
    """One logical invocation requested by the model."""

    call_id: str
    name: str
    arguments: Any = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """The closure for one ToolCall — a success payload or ``{"error": message}``."""

    call_id: str
    output: Any
    state: CallState

    @property
    def is_error(self) -> bool:
        return self.state is not CallState.SUCCEEDED

    def to_json(self) -> str:
        return json.dumps(self.output, indent=2, default=str)


ResolverFactory = Callable[["MailClient"], ContactResolver]


# ── Dispatcher ─────────────────────────────────────────────────────────────────


class ToolDispatcher:
    """Authenticates, validates, resolves recipients, routes, and shapes results.

    Holds no per-call state, so one instance serves every session
    concurrently.  Deduplication by ``call_id`` belongs to the caller.

    Usage::

        dispatcher = ToolDispatcher(google_capabilities(settings))
        result = await dispatcher.dispatch(ToolCall("c1", "list_emails", {}), context)
    """

    def __init__(
        self,
        capability_factory: CapabilityFactory,
        resolver_factory: ResolverFactory = ContactResolver,
        timeout: float = TOOL_TIMEOUT_SECONDS,
    ) -> None:
        self._capability_factory = capability_factory
        self._resolver_factory = resolver_factory
        self._timeout = timeout

    async def dispatch(self, call: ToolCall, context: CredentialContext | None) -> ToolResult:
        """Execute ``call`` on behalf of ``context``. Never raises."""
        state = CallState.RECEIVED
        try:
            if context is None or not context.is_authenticated():
                raise AuthRequired()
            tool = get_tool(call.name)
            if tool is None:
                raise UnknownTool(call.name)

            state = CallState.VALIDATING
            arguments = validate_arguments(tool, call.arguments)

            state = CallState.ROUTING
            output = await asyncio.wait_for(self._run(tool, arguments, context), self._timeout)
        except (AuthRequired, UnknownTool, ValidationError, ResolutionError) as exc:
            return self._finish(call, {"error": str(exc)}, CallState.REJECTED)
        except TimeoutError:
            message = f"{call.name} timed out after {self._timeout:g}s"
            return self._finish(call, {"error": message}, CallState.FAILED)
        except ToolError as exc:
            return self._finish(call, {"error": str(exc)}, CallState.FAILED)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "call=%s tool=%s crashed in state %s", call.call_id, call.name, state.value,
                exc_info=True,
            )
            return self._finish(call, {"error": str(exc) or type(exc).__name__}, CallState.FAILED)
        return self._finish(call, output, CallState.SUCCEEDED)

    # ── Pipeline steps ─────────────────────────────────────────────────────────

    async def _run(
        self, tool: ToolDefinition, arguments: dict[str, Any], context: CredentialContext
    ) -> Any:
        """Build capabilities, resolve recipients, and route; bounded as one unit by dispatch."""
        # Building Google API clients parses discovery documents; keep it off the loop.
        capabilities = await asyncio.to_thread(self._capability_factory, context)
        arguments = await self._resolve_recipients(
            tool, arguments, capabilities.mail, context.profile
        )
        return await self._route(tool.name, arguments, capabilities, context)

    async def _resolve_recipients(
        self,
        tool: ToolDefinition,
        arguments: dict[str, Any],
        mail: MailClient,
        profile: BehavioralProfile | None,
    ) -> dict[str, Any]:
        """Replace every name in a recipient field with an address, or fail the call."""
        fields = [p.name for p in tool.params if p.recipient and p.name in arguments]
        if not fields:
            return arguments

        resolver = self._resolver_factory(mail)
        resolved = dict(arguments)
        for name in fields:
            value = arguments[name]
            if isinstance(value, list):
                resolved[name] = [await _resolve_one(resolver, v, name, profile) for v in value]
            else:
                resolved[name] = await _resolve_one(resolver, value, name, profile)
        return resolved

    async def _route(
        self,
        name: ToolName,
        args: dict[str, Any],
        capabilities: Capabilities,
        context: CredentialContext,
    ) -> Any:
        mail = capabilities.mail
        calendar = capabilities.calendar

        match name:
            case ToolName.LIST_EMAILS:
                emails = await mail.list_messages(
                    max_results=_count(args["maxResults"]), query=args.get("query")
                )
                return {
                    "summary": summarize_inbox(emails),
                    "emails": [e.to_dict() for e in emails],
                }
            case ToolName.GET_EMAIL_DETAILS:
                email = await mail.get_message(args["emailId"])
                return email.to_dict(include_body=True)
            case ToolName.SEND_EMAIL:
                return await mail.send_message(
                    to=args["to"],
                    subject=args["subject"],
                    body=args["body"],
                    cc=args.get("cc"),
                    reply_to_id=args.get("replyToId"),
                )
            case ToolName.MARK_EMAIL_READ:
                return await mail.mark_read(args["emailId"], is_read=args["isRead"])
            case ToolName.DELETE_EMAIL:
                return await mail.trash_message(args["emailId"])
            case ToolName.CREATE_EVENT:
                event = await calendar.create_event(_draft(args))
                return event.to_dict()
            case ToolName.LIST_EVENTS:
                events = await calendar.list_events(
                    max_results=_count(args["maxResults"]),
                    time_min=args.get("timeMin"),
                    time_max=args.get("timeMax"),
                    query=args.get("query"),
                )
                return {
                    "events": [e.to_dict() for e in events],
                    "summary": f"Found {len(events)} upcoming events",
                }
            case ToolName.GET_EVENT_DETAILS:
                event = await calendar.get_event(args["eventId"])
                return event.to_dict()
            case ToolName.UPDATE_EVENT:
                event = await calendar.update_event(args["eventId"], _draft(args))
                return event.to_dict()
            case ToolName.DELETE_EVENT:
                await calendar.delete_event(args["eventId"])
                return {
                    "success": True,
                    "message": "Event deleted successfully",
                    "eventId": args["eventId"],
                }
            case ToolName.SEARCH_EVENTS:
                query = args["query"]
                events = await calendar.list_events(
                    max_results=_count(args["maxResults"]),
                    time_min=args.get("timeMin"),
                    time_max=args.get("timeMax"),
                    query=query,
                )
                return {
                    "events": [e.to_dict() for e in events],
                    "query": query,
                    "summary": f'Found {len(events)} events matching "{query}"',
                }
            case ToolName.GET_FREE_BUSY:
                windows = await calendar.free_busy(args["timeMin"], args["timeMax"])
                return {
                    "timeMin": args["timeMin"],
                    "timeMax": args["timeMax"],
                    "busy": [{"start": w.start, "end": w.end} for w in windows],
                }
            case ToolName.GET_USER_PROFILE:
                if context.profile is None:
                    raise CapabilityError("User profile not available. Please log in again.")
                return context.profile.to_dict()
            case _:
                assert_never(name)

    @staticmethod
    def _finish(call: ToolCall, output: Any, state: CallState) -> ToolResult:
        if state is CallState.SUCCEEDED:
            logger.info("call=%s tool=%s state=%s", call.call_id, call.name, state.value)
        else:
            logger.warning(
                "call=%s tool=%s state=%s error=%s",
                call.call_id,
                call.name,
                state.value,
                output.get("error") if isinstance(output, dict) else output,
            )
        return ToolResult(call_id=call.call_id, output=output, state=state)


# ── Helpers ────────────────────────────────────────────────────────────────────


async def _resolve_one(
    resolver: ContactResolver,
    value: str,
    field_name: str,
    profile: BehavioralProfile | None,
) -> str:
    if "@" in value:
        return value.strip()
    address = await resolver.resolve(value, profile)
    if address is None:
        raise ResolutionError(value, field_name)
    return address


def _count(value: Any) -> int:
    """maxResults arrives as a JSON number; the providers want a positive int."""
    return max(1, int(value))


def _draft(args: dict[str, Any]) -> EventDraft:
    return EventDraft(
        title=args.get("title"),
        start_time=args.get("start_time"),
        end_time=args.get("end_time"),
        description=args.get("description"),
        location=args.get("location"),
        timezone=args.get("timezone"),
        attendees=args.get("attendees"),
        create_meet_link=bool(args.get("create_meet_link", False)),
    )
