"""Realtime event bridge — turns function-call events into dispatches and back.

One ``RealtimeSession`` exists per connection and owns every piece of
mutable state: the set of call IDs already handled, the session-bootstrap
flags, and the in-flight call tasks.  The bridge itself is reusable across
connections; ``open()`` swaps in the new session.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from voice_inbox.orchestrator.catalog import ToolDefinition
from voice_inbox.realtime.events import (
    SESSION_CREATED,
    ArgumentsError,
    FunctionCall,
    extract_function_calls,
    function_call_output,
    parse_arguments,
    response_create,
    session_update,
)
from voice_inbox.realtime.transport import ToolTransport, TransportError

logger = logging.getLogger(__name__)

EventSender = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass
class RealtimeSession:
    """State scoped to one realtime connection. Never shared between connections."""

    send: EventSender
    processed_call_ids: set[str] = field(default_factory=set)
    session_created: bool = False
    session_update_sent: bool = False
    pending_session_update: dict[str, Any] | None = None
    pending_personalization: str | None = None
    tasks: set[asyncio.Task[None]] = field(default_factory=set)


class RealtimeBridge:
    """Consumes server events for the current session and answers every function call.

    Each call is forwarded through ``transport`` on its own task, so results
    go back to the model in completion order.  Whatever happens, every
    accepted call gets exactly one ``function_call_output`` followed by a
    ``response.create``.

    Usage::

        bridge = RealtimeBridge(HttpToolTransport(url, cookies=cookies))
        bridge.open(RealtimeSession(send=ws_send))
        bridge.queue_session_update(list_tools(), instructions)
        async for event in events:
            await bridge.handle_event(event)
        await bridge.drain()
    """

    def __init__(self, transport: ToolTransport) -> None:
        self._transport = transport
        self._session: RealtimeSession | None = None

    @property
    def session(self) -> RealtimeSession:
        if self._session is None:
            raise RuntimeError("RealtimeBridge.open() has not been called")
        return self._session

    def open(self, session: RealtimeSession) -> RealtimeSession:
        """Start handling events for a new connection.

        Call IDs from any earlier connection are irrelevant, so the session
        starts with an empty set.  Tasks of an earlier session keep running.
        """
        session.processed_call_ids.clear()
        self._session = session
        logger.info("Realtime session opened")
        return session

    # ── Session bootstrap ──────────────────────────────────────────────────────

    async def queue_session_update(
        self, tools: list[ToolDefinition] | tuple[ToolDefinition, ...], instructions: str
    ) -> None:
        """Queue the one-time ``session.update``; it is sent once the session exists."""
        session = self.session
        if session.session_update_sent:
            logger.debug("session.update already sent for this connection; ignoring")
            return
        session.pending_session_update = session_update(
            [t.to_realtime_function() for t in tools], instructions
        )
        await self._flush_session_update(session)

    async def queue_personalization(self, text: str) -> None:
        """Queue profile-derived text to ride along with the session update."""
        session = self.session
        if session.session_update_sent:
            logger.warning("Personalisation arrived after session.update; dropping it")
            return
        session.pending_personalization = text

    async def _flush_session_update(self, session: RealtimeSession) -> None:
        if not session.session_created or session.session_update_sent:
            return
        update = session.pending_session_update
        if update is None:
            return
        if session.pending_personalization:
            update["session"]["instructions"] += "\n\n" + session.pending_personalization
        session.session_update_sent = True
        session.pending_session_update = None
        session.pending_personalization = None
        await session.send(update)
        logger.info("Sent session.update with %d tool(s)", len(update["session"]["tools"]))

    # ── Event handling ─────────────────────────────────────────────────────────

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Process one server event. Never blocks on a tool call."""
        session = self.session
        if event.get("type") == SESSION_CREATED:
            session.session_created = True
            await self._flush_session_update(session)
            return

        for call in extract_function_calls(event):
            if call.call_id in session.processed_call_ids:
                logger.debug("Duplicate delivery of call %s (%s); skipping", call.call_id, event.get("type"))
                continue
            session.processed_call_ids.add(call.call_id)
            logger.info("Function call %s: %s", call.call_id, call.name)
            task = asyncio.create_task(self._process(session, call))
            session.tasks.add(task)
            task.add_done_callback(session.tasks.discard)

    async def drain(self, session: RealtimeSession | None = None) -> None:
        """Wait for every in-flight call of ``session`` (default: the current one)."""
        session = session or self._session
        if session is None:
            return
        pending = [t for t in session.tasks if not t.done()]
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [t for t in session.tasks if not t.done()]

    async def _process(self, session: RealtimeSession, call: FunctionCall) -> None:
        try:
            arguments = parse_arguments(call.arguments)
        except ArgumentsError as exc:
            output = _error_output(str(exc))
        else:
            try:
                output = await self._transport.call(call.name, arguments, call.call_id)
            except TransportError as exc:
                logger.warning("Call %s could not reach the dispatcher: %s", call.call_id, exc)
                output = _error_output(str(exc))
            except Exception as exc:  # noqa: BLE001
                logger.error("Call %s failed in transport", call.call_id, exc_info=True)
                output = _error_output(str(exc) or type(exc).__name__)

        try:
            await session.send(function_call_output(call.call_id, output))
            await session.send(response_create())
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not deliver result of call %s: %s", call.call_id, exc)


def _error_output(message: str) -> str:
    return json.dumps({"error": message})
