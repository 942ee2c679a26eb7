"""Contact resolution — map a spoken name to a concrete email address."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Protocol

from voice_inbox.capabilities.types import SentMessage
from voice_inbox.profile.types import BehavioralProfile

logger = logging.getLogger(__name__)

#: How many recent sent messages the last-resort scan reads.
SENT_SCAN_LIMIT = 200


class SentMailSource(Protocol):
    async def list_sent(
        self, max_results: int = 200, include_body: bool = False
    ) -> list[SentMessage]: ...


class ContactResolver:
    """Resolves names to addresses, cheapest and most exact source first.

    Order, stopping at the first hit:
      1. input already containing "@" is returned unchanged
      2. exact (case-insensitive) name match in ``profile.contacts``
      3. partial match — every query token is a substring of the stored name
      4. a ``profile.frequent_contacts`` address containing the query
      5. the most frequent matching recipient in recent sent mail
    Returns None when nothing matches; callers must not guess.

    Usage::

        resolver = ContactResolver(mail_client)
        address = await resolver.resolve("Marie", context.profile)
    """

    def __init__(self, sent_mail: SentMailSource, scan_limit: int = SENT_SCAN_LIMIT) -> None:
        self._sent_mail = sent_mail
        self._scan_limit = scan_limit

    async def resolve(
        self, name_or_address: str, profile: BehavioralProfile | None = None
    ) -> str | None:
        query = name_or_address.strip()
        if not query:
            return None
        if "@" in query:
            return query

        if profile is not None:
            found = self.resolve_from_profile(query, profile)
            if found:
                logger.debug("Resolved %r from profile → %s", query, found)
                return found

        found = await self._scan_sent(query)
        if found:
            logger.debug("Resolved %r from sent history → %s", query, found)
        else:
            logger.info("Could not resolve recipient %r", query)
        return found

    @staticmethod
    def resolve_from_profile(query: str, profile: BehavioralProfile) -> str | None:
        """Steps 2–4: the pre-computed, no-network part of the chain."""
        needle = query.lower()

        for contact in profile.contacts:
            if contact.name.lower() == needle:
                return contact.email

        tokens = needle.split()
        for contact in profile.contacts:
            stored = contact.name.lower()
            if tokens and all(token in stored for token in tokens):
                return contact.email

        for address in profile.frequent_contacts:
            if needle in address.lower():
                return address
        return None

    async def _scan_sent(self, query: str) -> str | None:
        """Step 5: count matching recipients of recent sent mail."""
        needle = query.lower()
        try:
            sent = await self._sent_mail.list_sent(max_results=self._scan_limit)
        except Exception as exc:  # noqa: BLE001
            logger.error("Sent-mail scan failed while resolving %r: %s", query, exc)
            return None

        counts: Counter[str] = Counter()
        for message in sent:
            for address in message.recipients:
                if needle in address.lower():
                    counts[address] += 1
        if not counts:
            return None
        # most_common() keeps first-seen order on ties, i.e. the most recent message wins
        return counts.most_common(1)[0][0]
