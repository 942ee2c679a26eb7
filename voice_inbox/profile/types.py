"""Behavioral profile types shared by the profile builder, resolver and bridge."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Contact:
    """A named correspondent. ``name`` is always stored lower-cased."""

    name: str
    email: str


# camelCase wire key → dataclass attribute
_WIRE_KEYS: dict[str, str] = {
    "displayName": "display_name",
    "name": "display_name",
    "profession": "profession",
    "primaryEmail": "primary_email",
    "email": "primary_email",
    "tone": "tone",
    "signature": "signature",
    "frequentContacts": "frequent_contacts",
    "coworkers": "coworkers",
    "typicalAvailability": "typical_availability",
    "hobbies": "hobbies",
    "commonEmailIntents": "common_email_intents",
    "contacts": "contacts",
    "averageSentenceLength": "average_sentence_length",
    "frequentPhrases": "frequent_phrases",
}

_LIST_FIELDS = (
    "frequent_contacts",
    "coworkers",
    "typical_availability",
    "hobbies",
    "common_email_intents",
    "frequent_phrases",
)


@dataclass(frozen=True)
class BehavioralProfile:
    """A digest of the user's sent mail, built once per login.

    Every field has an explicit empty default so callers never need to
    distinguish "missing" from "empty".  Immutable for the session lifetime.
    """

    display_name: str = ""
    profession: str = ""
    primary_email: str = ""
    tone: str = ""
    signature: str = ""
    frequent_contacts: tuple[str, ...] = ()   # most frequent first
    coworkers: tuple[str, ...] = ()           # frequent contacts on the user's domain
    typical_availability: tuple[str, ...] = ()
    hobbies: tuple[str, ...] = ()
    common_email_intents: tuple[str, ...] = ()
    contacts: tuple[Contact, ...] = ()
    average_sentence_length: float = 0.0
    frequent_phrases: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the camelCase keys the model and the browser expect."""
        return {
            "displayName": self.display_name,
            "profession": self.profession,
            "primaryEmail": self.primary_email,
            "tone": self.tone,
            "signature": self.signature,
            "frequentContacts": list(self.frequent_contacts),
            "coworkers": list(self.coworkers),
            "typicalAvailability": list(self.typical_availability),
            "hobbies": list(self.hobbies),
            "commonEmailIntents": list(self.common_email_intents),
            "contacts": [{"name": c.name, "email": c.email} for c in self.contacts],
            "averageSentenceLength": self.average_sentence_length,
            "frequentPhrases": list(self.frequent_phrases),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BehavioralProfile:
        """Parse a profile from camelCase or snake_case keys; unknown keys are ignored."""
        values: dict[str, Any] = {}
        attrs = set(_WIRE_KEYS.values())
        for key, raw in data.items():
            attr = _WIRE_KEYS.get(key, key)
            if attr not in attrs or raw is None:
                continue
            values.setdefault(attr, raw)

        for attr in _LIST_FIELDS:
            if attr in values:
                values[attr] = tuple(str(v) for v in _as_list(values[attr]) if v)
        if "contacts" in values:
            values["contacts"] = dedupe_contacts(_parse_contacts(values["contacts"]))
        if "average_sentence_length" in values:
            try:
                values["average_sentence_length"] = float(values["average_sentence_length"])
            except (TypeError, ValueError):
                values.pop("average_sentence_length")
        for attr in ("display_name", "profession", "primary_email", "tone", "signature"):
            if attr in values:
                values[attr] = str(values[attr])
        return cls(**values)


def dedupe_contacts(contacts: list[Contact]) -> tuple[Contact, ...]:
    """Drop contacts whose name or address was already seen, keeping the first."""
    seen: set[str] = set()
    result: list[Contact] = []
    for contact in contacts:
        name = contact.name.strip().lower()
        email = contact.email.strip()
        if not name or not email:
            continue
        if name in seen or email.lower() in seen:
            continue
        seen.add(name)
        seen.add(email.lower())
        result.append(Contact(name=name, email=email))
    return tuple(result)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return [value]
    return []


def _parse_contacts(value: Any) -> list[Contact]:
    contacts: list[Contact] = []
    for item in _as_list(value):
        if isinstance(item, Contact):
            contacts.append(item)
        elif isinstance(item, dict) and item.get("name") and item.get("email"):
            contacts.append(Contact(name=str(item["name"]), email=str(item["email"])))
    return contacts
