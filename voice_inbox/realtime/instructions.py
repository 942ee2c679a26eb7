"""Operating instructions sent to the realtime model in ``session.update``."""

from __future__ import annotations

from datetime import date

from voice_inbox.orchestrator.catalog import ToolDefinition
from voice_inbox.profile.types import BehavioralProfile

_BASE = """\
You are an AI email and calendar assistant helping the user manage their inbox \
and calendar through voice commands.

Never describe, list or mention any email or event without first calling the \
matching tool. Always wait for tool results and speak only about the real data \
they contain. Never invent email IDs, event IDs, subjects, senders or dates.

Tool usage:
- Any question about emails: call list_emails (maxResults for "last N", query for filters).
- Unread emails: list_emails with query "is:unread".
- A specific email: get_email_details with an emailId taken from an earlier result.
- Sending: send_email. The "to" field may be a contact name; it is resolved for you.
- Calendar questions: list_events, search_events, get_event_details, get_free_busy.
- Questions about who the user knows or how they write: get_user_profile.

Convert spoken dates to Gmail query syntax:
- "today" → "newer_than:1d"
- "yesterday" → "older_than:1d newer_than:2d"
- "this week" → "newer_than:7d"
- "last week" → "older_than:7d newer_than:14d"
- "January" → "after:{year}/01/01 before:{year}/02/01"
- "last 3 days" → "newer_than:3d"

If a tool result contains an "error", tell the user briefly what went wrong. \
If a recipient could not be resolved, ask the user for the full address.
Ask for confirmation before sending email or changing or deleting anything.
Today is {today}."""


def build_instructions(
    tools: list[ToolDefinition] | tuple[ToolDefinition, ...],
    profile: BehavioralProfile | None = None,
    today: date | None = None,
) -> str:
    """Base instructions, the advertised tool list, and any personalisation."""
    today = today or date.today()
    sections = [
        _BASE.format(year=today.year, today=today.isoformat()),
        "Available tools:\n" + "\n".join(f"- {t.name.value}: {t.description}" for t in tools),
    ]
    if profile is not None:
        personal = personalization(profile)
        if personal:
            sections.append(personal)
    return "\n\n".join(sections)


def personalization(profile: BehavioralProfile) -> str:
    """Describe the user so replies match their voice. Empty if nothing is known."""
    lines: list[str] = []
    if profile.display_name:
        lines.append(f"The user's name is {profile.display_name}.")
    if profile.profession:
        lines.append(f"They work as {profile.profession}.")
    if profile.tone:
        lines.append(f"Write emails in a {profile.tone} tone.")
    if profile.average_sentence_length:
        lines.append(
            f"Their sentences average about {profile.average_sentence_length:g} words."
        )
    if profile.signature:
        lines.append(f"Sign emails with:\n{profile.signature}")
    if profile.frequent_phrases:
        lines.append("Phrases they often use: " + ", ".join(profile.frequent_phrases[:5]) + ".")
    if profile.typical_availability:
        lines.append("They are usually available " + "; ".join(profile.typical_availability) + ".")
    if profile.contacts:
        names = ", ".join(c.name for c in profile.contacts[:10])
        lines.append(f"People they write to often: {names}.")
    if not lines:
        return ""
    return "About the user:\n" + "\n".join(lines)
