"""Realtime conversation events — parsing server events, building client events."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Any

# Server event types that can carry a completed function call
ARGUMENTS_DONE = "response.function_call_arguments.done"
OUTPUT_ITEM_DONE = "response.output_item.done"
RESPONSE_DONE = "response.done"
SESSION_CREATED = "session.created"


class ArgumentsError(ValueError):
    """Function-call arguments that are not a JSON object."""


@dataclass(frozen=True)
class FunctionCall:
    """One function call as observed on the event stream (arguments still raw)."""

    call_id: str
    name: str
    arguments: Any


def extract_function_calls(event: dict[str, Any]) -> list[FunctionCall]:
    """Return the function calls a server event carries, in order.

    Three shapes are recognised; the same logical call may arrive through
    more than one of them, so callers must deduplicate by ``call_id``:

    - ``response.function_call_arguments.done``: fields at the top level
    - ``response.output_item.done``: fields under ``item``
    - ``response.done``: every ``function_call`` entry of ``response.output``
    """
    kind = event.get("type")
    if kind == ARGUMENTS_DONE:
        candidates = [event]
    elif kind == OUTPUT_ITEM_DONE:
        item = event.get("item") or {}
        candidates = [item] if item.get("type") == "function_call" else []
    elif kind == RESPONSE_DONE:
        output = (event.get("response") or {}).get("output") or []
        candidates = [o for o in output if isinstance(o, dict) and o.get("type") == "function_call"]
    else:
        return []

    calls: list[FunctionCall] = []
    for raw in candidates:
        call_id = raw.get("call_id")
        name = raw.get("name")
        if not call_id or not name:
            continue
        calls.append(FunctionCall(str(call_id), str(name), raw.get("arguments")))
    return calls


def parse_arguments(raw: Any) -> dict[str, Any]:
    """Decode arguments sent as JSON text; pass structured arguments through.

    Raises:
        ArgumentsError: if the text is not JSON, or does not decode to an object.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ArgumentsError(f"arguments are not valid JSON: {exc.msg}") from exc
        if isinstance(decoded, dict):
            return decoded
    raise ArgumentsError("arguments must be a JSON object")


# ── Client events ──────────────────────────────────────────────────────────────


def new_event_id() -> str:
    return f"evt_{uuid.uuid4().hex}"


def client_event(event_type: str, **fields: Any) -> dict[str, Any]:
    """A client event with a fresh ``event_id``."""
    return {"type": event_type, "event_id": new_event_id(), **fields}


def function_call_output(call_id: str, output: str) -> dict[str, Any]:
    """Conversation item carrying one call's serialised result."""
    return client_event(
        "conversation.item.create",
        item={"type": "function_call_output", "call_id": call_id, "output": output},
    )


def response_create() -> dict[str, Any]:
    """Ask the model to continue generating."""
    return client_event("response.create")


def session_update(tools: list[dict[str, Any]], instructions: str) -> dict[str, Any]:
    """The one-time session bootstrap: tool schemas plus operating instructions."""
    return client_event(
        "session.update",
        session={"tools": tools, "tool_choice": "auto", "instructions": instructions},
    )
