"""Behavioral profile builder — heuristics over sent mail, enriched by Claude."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from collections import Counter
from email.utils import parseaddr
from typing import Protocol

from anthropic import AsyncAnthropic
from anthropic.types import ToolUseBlock

from voice_inbox.capabilities.types import SentMessage
from voice_inbox.profile.prompts import PROFILE_TOOL, build_messages, chunk_messages, strip_html
from voice_inbox.profile.types import BehavioralProfile, Contact, dedupe_contacts

logger = logging.getLogger(__name__)

_MODEL = "claude-haiku-4-5-20251001"
_MAX_TOKENS = 2048

#: Upper bound on sent messages read per login.
MAX_MESSAGES = 1_000
#: How many of the most recent bodies feed the tone/signature/length heuristics.
SAMPLE_SIZE = 10
TOP_CONTACTS = 10
TOP_PHRASES = 10

_FORMAL_MARKERS = ("regards", "sincerely")
_FRIENDLY_MARKERS = ("hey", "hi", "thanks")

_SIGNATURE_RE = re.compile(
    r"(?:^|\n)((?:best|thanks|regards|cheers|sincerely)\b[^\n]*\n[\s\S]{0,200})$",
    re.IGNORECASE,
)
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_WORD_RE = re.compile(r"[a-z][a-z']*")

_STOPWORDS = frozenset(
    "a an and are as at be but by for from have i if in is it me my of on or so "
    "that the this to was we will with you your".split()
)


class ProfileError(Exception):
    """Raised when Claude does not return a profile tool call."""


class SentMailReader(Protocol):
    async def list_sent(
        self, max_results: int = 200, include_body: bool = False
    ) -> list[SentMessage]: ...


# ── Builder ────────────────────────────────────────────────────────────────────


class ProfileBuilder:
    """Builds a BehavioralProfile from the user's most recent sent mail.

    The statistical fields (frequent contacts, coworkers, sentence length,
    phrases, signature) are always computed locally.  When an API key is
    available, up to five chunks of mail are also sent to Claude, and the
    partial profiles it returns are merged on top.  Any LLM failure falls
    back to the heuristic profile; building never raises for that reason.

    Usage::

        builder = ProfileBuilder(mail_client)
        profile = await builder.build(user_email="me@example.com")
    """

    def __init__(
        self,
        mail: SentMailReader,
        api_key: str | None = None,
        model: str = _MODEL,
        client: AsyncAnthropic | None = None,
    ) -> None:
        self._mail = mail
        self._model = model
        key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if client is not None:
            self._client: AsyncAnthropic | None = client
        elif key:
            self._client = AsyncAnthropic(api_key=key)
        else:
            self._client = None

    async def build(self, user_email: str = "") -> BehavioralProfile:
        """Fetch up to MAX_MESSAGES sent messages and profile them."""
        messages = await self._mail.list_sent(max_results=MAX_MESSAGES, include_body=True)
        logger.info("Building profile from %d sent message(s)", len(messages))
        return await self.build_from_messages(messages, user_email)

    async def build_from_messages(
        self, messages: list[SentMessage], user_email: str = ""
    ) -> BehavioralProfile:
        """Profile an already-fetched list, most recent first."""
        if not messages:
            return BehavioralProfile(primary_email=user_email)

        base = heuristic_profile(messages, user_email)
        if self._client is None:
            logger.info("No Anthropic API key; using heuristic profile only")
            return base

        chunks = chunk_messages(messages[:MAX_MESSAGES])
        results = await asyncio.gather(
            *(self._analyse_chunk(c, base.primary_email) for c in chunks),
            return_exceptions=True,
        )
        partials: list[BehavioralProfile] = []
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.warning("Profile chunk %d failed: %s", index, result)
                continue
            partials.append(result)

        if not partials:
            logger.warning("LLM profile generation failed; falling back to heuristics")
            return base
        return merge_profiles(base, partials)

    async def _analyse_chunk(self, chunk: str, user_email: str) -> BehavioralProfile:
        assert self._client is not None
        response = await self._client.messages.create(
            model=self._model,
            max_tokens=_MAX_TOKENS,
            tools=[PROFILE_TOOL],  # type: ignore[list-item]
            tool_choice={"type": "tool", "name": "record_user_profile"},
            messages=build_messages(chunk, user_email),  # type: ignore[arg-type]
        )
        for block in response.content:
            if isinstance(block, ToolUseBlock) and block.name == "record_user_profile":
                return BehavioralProfile.from_dict(block.input)  # type: ignore[arg-type]
        raise ProfileError(
            f"Claude did not return a record_user_profile tool call "
            f"(stop_reason={response.stop_reason!r})"
        )


# ── Heuristics ─────────────────────────────────────────────────────────────────


def heuristic_profile(messages: list[SentMessage], user_email: str = "") -> BehavioralProfile:
    """Everything that can be derived without a model."""
    display_name, sender_email = _sender_identity(messages)
    primary_email = user_email or sender_email
    samples = [b for b in (clean_body(m.body) for m in messages[:SAMPLE_SIZE]) if b.strip()]

    frequent = frequent_contacts(messages, exclude=primary_email)
    return BehavioralProfile(
        display_name=display_name,
        primary_email=primary_email,
        tone=detect_tone(samples),
        signature=extract_signature(samples[0]) if samples else "",
        frequent_contacts=tuple(frequent),
        coworkers=tuple(coworkers(frequent, primary_email)),
        contacts=named_contacts(messages, exclude=primary_email),
        average_sentence_length=average_sentence_length(samples),
        frequent_phrases=tuple(frequent_phrases(samples)),
    )


def clean_body(body: str) -> str:
    """Plain text with quoted reply lines removed."""
    text = strip_html(body or "")
    return "\n".join(line for line in text.splitlines() if not line.lstrip().startswith(">"))


def detect_tone(samples: list[str]) -> str:
    """'formal', 'friendly and casual', or 'neutral' by marker-word votes."""
    formal = friendly = 0
    for text in samples:
        words = set(_WORD_RE.findall(text.lower()))
        if any(w in words for w in _FORMAL_MARKERS):
            formal += 1
        if any(w in words for w in _FRIENDLY_MARKERS) or "!" in text:
            friendly += 1
    if formal > friendly:
        return "formal"
    if friendly > formal:
        return "friendly and casual"
    return "neutral"


def extract_signature(text: str) -> str:
    """The sign-off block at the end of ``text`` (e.g. ``Best,\\nAna``), or ''."""
    match = _SIGNATURE_RE.search(text.strip())
    return match.group(1).strip() if match else ""


def average_sentence_length(samples: list[str]) -> float:
    """Mean words per sentence across ``samples``, to one decimal place."""
    words = sentences = 0
    for text in samples:
        for sentence in _SENTENCE_SPLIT_RE.split(text.strip()):
            count = len(sentence.split())
            if count:
                words += count
                sentences += 1
    return round(words / sentences, 1) if sentences else 0.0


def frequent_phrases(samples: list[str], limit: int = TOP_PHRASES) -> list[str]:
    """Top repeated word bigrams, skipping pairs made only of stopwords."""
    counts: Counter[str] = Counter()
    for text in samples:
        words = _WORD_RE.findall(text.lower())
        for first, second in zip(words, words[1:]):
            if first in _STOPWORDS and second in _STOPWORDS:
                continue
            counts[f"{first} {second}"] += 1
    return [phrase for phrase, n in counts.most_common(limit) if n > 1]


def frequent_contacts(
    messages: list[SentMessage], exclude: str = "", limit: int = TOP_CONTACTS
) -> list[str]:
    """Recipient addresses ordered by how often they were written to."""
    counts: Counter[str] = Counter()
    for message in messages:
        for address in message.recipients:
            address = address.strip().lower()
            if address and address != exclude.lower():
                counts[address] += 1
    return [address for address, _ in counts.most_common(limit)]


def coworkers(addresses: list[str], user_email: str) -> list[str]:
    """The subset of ``addresses`` sharing the user's mail domain."""
    _, _, domain = user_email.lower().rpartition("@")
    if not domain:
        return []
    return [a for a in addresses if a.lower().endswith("@" + domain)]


def named_contacts(messages: list[SentMessage], exclude: str = "") -> tuple[Contact, ...]:
    """Contacts from ``Name <address>`` recipient headers, deduplicated."""
    found = [
        Contact(name=name, email=address)
        for message in messages
        for name, address in message.named_recipients
        if name.strip() and address.lower() != exclude.lower()
    ]
    return dedupe_contacts(found)


def _sender_identity(messages: list[SentMessage]) -> tuple[str, str]:
    for message in messages:
        name, address = parseaddr(message.sender)
        if address:
            return name, address
    return "", ""


# ── Merge ──────────────────────────────────────────────────────────────────────


def merge_profiles(base: BehavioralProfile, partials: list[BehavioralProfile]) -> BehavioralProfile:
    """Combine the heuristic profile with per-chunk LLM partials.

    Counted fields stay heuristic.  Free-text fields take the most common
    non-empty partial value; list fields are ranked by how many partials
    mention each item.  Header-derived contacts win over model-reported ones.
    """
    return BehavioralProfile(
        display_name=base.display_name or _mode(p.display_name for p in partials),
        profession=_mode(p.profession for p in partials) or base.profession,
        primary_email=base.primary_email,
        tone=_mode(p.tone for p in partials) or base.tone,
        signature=base.signature or _mode(p.signature for p in partials),
        frequent_contacts=base.frequent_contacts,
        coworkers=base.coworkers,
        typical_availability=_ranked(p.typical_availability for p in partials),
        hobbies=_ranked(p.hobbies for p in partials),
        common_email_intents=_ranked(p.common_email_intents for p in partials),
        contacts=dedupe_contacts(
            list(base.contacts) + [c for p in partials for c in p.contacts]
        ),
        average_sentence_length=base.average_sentence_length,
        frequent_phrases=base.frequent_phrases,
    )


def _mode(values) -> str:
    counts = Counter(v.strip() for v in values if v and v.strip())
    return counts.most_common(1)[0][0] if counts else ""


def _ranked(lists) -> tuple[str, ...]:
    counts: Counter[str] = Counter()
    display: dict[str, str] = {}
    for items in lists:
        for item in dict.fromkeys(i.strip() for i in items if i.strip()):
            key = item.lower()
            display.setdefault(key, item)
            counts[key] += 1
    return tuple(display[key] for key, _ in counts.most_common())
