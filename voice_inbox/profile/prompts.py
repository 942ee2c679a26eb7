"""Anthropic tool definition and prompt builder for behavioral profiling."""

from html.parser import HTMLParser
from typing import Any

from voice_inbox.capabilities.types import SentMessage

# Chunking limits: each chunk is one LLM call, so these bound cost per login.
CHUNK_CHAR_LIMIT = 4_500
MAX_CHUNKS = 5
SUBJECT_CHAR_LIMIT = 200
BODY_CHAR_LIMIT = 4_000


# ── HTML stripper ───────────────────────────────────────────────────────────────


class _HTMLStripper(HTMLParser):
    """Minimal HTMLParser subclass that collects visible text nodes."""

    def __init__(self) -> None:
        super().__init__()
        self._parts: list[str] = []

    def handle_data(self, data: str) -> None:
        text = data.strip()
        if text:
            self._parts.append(text)

    def get_text(self) -> str:
        return " ".join(self._parts)


def strip_html(text: str) -> str:
    """Return plain text from an HTML string.

    If the input doesn't look like HTML, or stripping produces nothing useful,
    the original string is returned unchanged.
    """
    if "<" not in text:
        return text
    stripper = _HTMLStripper()
    try:
        stripper.feed(text)
        result = stripper.get_text()
        # stripping away >90% means the input was probably not HTML
        return result if len(result) > len(text) * 0.1 else text
    except Exception:  # noqa: BLE001
        return text


# ── Chunking ───────────────────────────────────────────────────────────────────


def format_message(message: SentMessage) -> str:
    """Render one sent message as a plain-text block for the prompt."""
    return "\n".join(
        [
            f"Subject: {strip_html(message.subject)[:SUBJECT_CHAR_LIMIT]}",
            f"From: {message.sender}",
            f"To: {', '.join(message.to)}",
            "Body:",
            strip_html(message.body)[:BODY_CHAR_LIMIT],
            "---",
        ]
    )


def chunk_messages(
    messages: list[SentMessage],
    max_chars: int = CHUNK_CHAR_LIMIT,
    max_chunks: int = MAX_CHUNKS,
) -> list[str]:
    """Pack message blocks into at most ``max_chunks`` chunks of ~``max_chars``.

    A single block longer than ``max_chars`` still gets a chunk of its own.
    Blocks that do not fit once ``max_chunks`` is reached are dropped.
    """
    chunks: list[str] = []
    current = ""
    for message in messages:
        block = format_message(message)
        if current and len(current) + len(block) > max_chars:
            chunks.append(current)
            if len(chunks) == max_chunks:
                return chunks
            current = block
        else:
            current = f"{current}\n{block}" if current else block
    if current and len(chunks) < max_chunks:
        chunks.append(current)
    return chunks


# ── Tool definition ────────────────────────────────────────────────────────────

_STRING_LIST: dict[str, Any] = {"type": "array", "items": {"type": "string"}}

#: Anthropic tool schema for one partial profile.
PROFILE_TOOL: dict[str, Any] = {
    "name": "record_user_profile",
    "description": "Record a partial behavioral profile of the author of these e-mails.",
    "input_schema": {
        "type": "object",
        "properties": {
            "displayName": {"type": "string", "description": "The author's own name."},
            "profession": {"type": "string", "description": "Job title or field, if evident."},
            "tone": {
                "type": "string",
                "description": "Overall writing tone, e.g. 'formal', 'friendly and casual'.",
            },
            "signature": {"type": "string", "description": "Usual sign-off block, verbatim."},
            "typicalAvailability": {
                **_STRING_LIST,
                "description": "Time phrases the author uses about availability.",
            },
            "hobbies": {**_STRING_LIST, "description": "Interests mentioned outside work."},
            "commonEmailIntents": {
                **_STRING_LIST,
                "description": "Most common reasons for writing, most common first.",
            },
            "contacts": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "email": {"type": "string"},
                    },
                    "required": ["name", "email"],
                },
                "description": "People the author writes to, by name and address.",
            },
        },
        "required": ["tone", "commonEmailIntents", "contacts"],
    },
}


# ── Prompt builder ─────────────────────────────────────────────────────────────


def build_messages(chunk: str, user_email: str = "") -> list[dict[str, str]]:
    """Build the Anthropic messages list for profiling one chunk of sent mail."""
    author = f" The author's address is {user_email}." if user_email else ""
    return [
        {
            "role": "user",
            "content": (
                "The e-mails below were all sent by the same person." + author + " "
                "Describe the author and call record_user_profile with your findings. "
                "Leave a field empty rather than guessing.\n\n" + chunk
            ),
        }
    ]
