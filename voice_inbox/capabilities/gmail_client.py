"""Gmail capability client — wraps the Gmail REST API behind a typed async API."""

import asyncio
import base64
import logging
from email.message import EmailMessage
from email.utils import getaddresses, parsedate_to_datetime
from typing import Any

from googleapiclient.errors import HttpError

from voice_inbox.capabilities.base import CapabilityError
from voice_inbox.capabilities.types import EmailEnvelope, SentMessage

logger = logging.getLogger(__name__)

# Gmail system label IDs
_UNREAD = "UNREAD"

_METADATA_HEADERS = ["Subject", "From", "Date", "To", "Cc"]
_REPLY_HEADERS = ["Message-ID", "References", "In-Reply-To", "Subject"]

# Gmail caps messages.list page size at 500
_MAX_PAGE_SIZE = 500

# Gmail advises against batches larger than 50 requests
_BATCH_SIZE = 50


class GmailClient:
    """Thin async wrapper around a Gmail API ``Resource``.

    The googleapiclient transport is blocking, so every request is executed
    in a worker thread.  Per-message fetches go out as batch requests.

    Usage::

        client = GmailClient(build("gmail", "v1", credentials=creds))
        emails = await client.list_messages(max_results=5, query="is:unread")
    """

    def __init__(self, service: Any, user_id: str = "me") -> None:
        self._service = service
        self._user_id = user_id
        self._lock = asyncio.Lock()

    # ── Public API ─────────────────────────────────────────────────────────────

    async def list_messages(
        self, max_results: int = 20, query: str | None = None
    ) -> list[EmailEnvelope]:
        """Return inbox envelopes (metadata only), newest first.

        ``query`` is Gmail search syntax and is ANDed with ``in:inbox``.
        Individual messages that fail to load are logged and skipped.
        """
        q = f"in:inbox {query}".strip() if query else "in:inbox"
        ids = await self._list_ids(q, max_results)
        if not ids:
            return []

        results = await self._get_many(
            [self._metadata_request(msg_id) for msg_id in ids], "get inbox messages"
        )
        emails: list[EmailEnvelope] = []
        for msg_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                logger.error("Error fetching message %s: %s", msg_id, result)
                continue
            emails.append(self._parse_envelope(result))
        logger.info("Listed %d/%d inbox message(s) for q=%r", len(emails), len(ids), q)
        return emails

    async def get_message(self, message_id: str) -> EmailEnvelope:
        """Return a single message including its plain-text body."""
        raw = await self._execute(
            self._messages().get(userId=self._user_id, id=message_id, format="full"),
            f"get message {message_id}",
        )
        return self._parse_envelope(raw, with_body=True)

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        cc: list[str] | None = None,
        reply_to_id: str | None = None,
    ) -> dict[str, Any]:
        """Send a message, threading it onto ``reply_to_id`` when given."""
        msg = EmailMessage()
        msg["To"] = to
        if cc:
            msg["Cc"] = ", ".join(cc)
        msg["Subject"] = subject
        msg.set_content(body)

        request_body: dict[str, Any] = {}
        if reply_to_id:
            original = await self._execute(
                self._messages().get(
                    userId=self._user_id,
                    id=reply_to_id,
                    format="metadata",
                    metadataHeaders=_REPLY_HEADERS,
                ),
                f"get reply target {reply_to_id}",
            )
            headers = _header_map(original)
            message_id = headers.get("message-id")
            if message_id:
                msg["In-Reply-To"] = message_id
                msg["References"] = f"{headers.get('references', '')} {message_id}".strip()
            if original.get("threadId"):
                request_body["threadId"] = original["threadId"]

        request_body["raw"] = base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii")
        sent = await self._execute(
            self._messages().send(userId=self._user_id, body=request_body),
            f"send message to {to}",
        )
        logger.info("Sent email to %s: %r", to, subject)
        return {
            "id": sent.get("id"),
            "threadId": sent.get("threadId"),
            "labelIds": sent.get("labelIds", []),
            "to": to,
            "cc": list(cc or []),
            "subject": subject,
        }

    async def mark_read(self, message_id: str, is_read: bool = True) -> dict[str, Any]:
        """Add or remove the UNREAD label."""
        body = (
            {"removeLabelIds": [_UNREAD], "addLabelIds": []}
            if is_read
            else {"removeLabelIds": [], "addLabelIds": [_UNREAD]}
        )
        result = await self._execute(
            self._messages().modify(userId=self._user_id, id=message_id, body=body),
            f"modify message {message_id}",
        )
        logger.debug("Marked message %s as %s", message_id, "read" if is_read else "unread")
        return {"id": result.get("id", message_id), "isRead": is_read}

    async def trash_message(self, message_id: str) -> dict[str, Any]:
        """Move a message to the trash (recoverable for 30 days)."""
        result = await self._execute(
            self._messages().trash(userId=self._user_id, id=message_id),
            f"trash message {message_id}",
        )
        logger.info("Trashed message %s", message_id)
        return {"id": result.get("id", message_id), "deleted": True}

    async def list_sent(
        self, max_results: int = 200, include_body: bool = False
    ) -> list[SentMessage]:
        """Return up to ``max_results`` sent messages, most recent first.

        Metadata-only by default (enough for recipient scans); pass
        ``include_body=True`` for profile building.
        """
        ids = await self._list_ids("in:sent", max_results)
        fmt = "full" if include_body else "metadata"
        results = await self._get_many(
            [self._sent_request(msg_id, fmt) for msg_id in ids], "get sent messages"
        )
        sent: list[SentMessage] = []
        for msg_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                logger.warning("Skipping sent message %s: %s", msg_id, result)
                continue
            sent.append(self._parse_sent(result, with_body=include_body))
        return sent

    # ── Internal helpers ───────────────────────────────────────────────────────

    def _messages(self) -> Any:
        return self._service.users().messages()

    async def _list_ids(self, query: str, max_results: int) -> list[str]:
        """Page through messages.list until ``max_results`` IDs are collected."""
        ids: list[str] = []
        page_token: str | None = None
        while len(ids) < max_results:
            params: dict[str, Any] = {
                "userId": self._user_id,
                "q": query,
                "maxResults": min(max_results - len(ids), _MAX_PAGE_SIZE),
            }
            if page_token:
                params["pageToken"] = page_token
            page = await self._execute(self._messages().list(**params), f"list q={query!r}")
            ids.extend(m["id"] for m in page.get("messages", []) if m.get("id"))
            page_token = page.get("nextPageToken")
            if not page_token:
                break
        return ids[:max_results]

    def _metadata_request(self, message_id: str) -> Any:
        return self._messages().get(
            userId=self._user_id,
            id=message_id,
            format="metadata",
            metadataHeaders=_METADATA_HEADERS,
        )

    def _sent_request(self, message_id: str, fmt: str) -> Any:
        params: dict[str, Any] = {"userId": self._user_id, "id": message_id, "format": fmt}
        if fmt == "metadata":
            params["metadataHeaders"] = _METADATA_HEADERS
        return self._messages().get(**params)

    async def _get_many(self, requests: list[Any], what: str) -> list[Any]:
        """Execute ``requests`` as Gmail batch calls, one batch at a time.

        Returns one entry per request, in order: the response dict, or the
        exception Gmail reported for that message.
        """
        results: dict[str, Any] = {}

        def collect(request_id: str, response: Any, exception: Exception | None) -> None:
            results[request_id] = exception if exception is not None else response

        for start in range(0, len(requests), _BATCH_SIZE):
            chunk = requests[start : start + _BATCH_SIZE]
            batch = self._service.new_batch_http_request(callback=collect)
            for offset, request in enumerate(chunk):
                batch.add(request, request_id=str(start + offset))
            await self._execute(batch, f"{what} ({start + 1}-{start + len(chunk)})")

        missing = CapabilityError("no response in batch")
        return [results.get(str(i), missing) for i in range(len(requests))]

    async def _execute(self, request: Any, what: str) -> dict[str, Any]:
        """Run a googleapiclient request off the event loop.

        The service's httplib2 connection is not thread-safe, so requests on
        one client run one at a time.  Raises CapabilityError if Gmail
        rejects the request.
        """
        logger.debug("Gmail → %s", what)
        async with self._lock:
            try:
                result = await asyncio.to_thread(request.execute)
            except HttpError as exc:
                status = getattr(exc.resp, "status", "?")
                raise CapabilityError(f"Gmail could not {what} (HTTP {status}): {exc}") from exc
        return result or {}

    @staticmethod
    def _parse_envelope(data: dict[str, Any], with_body: bool = False) -> EmailEnvelope:
        """Map a Gmail message resource to an EmailEnvelope."""
        headers = _header_map(data)
        return EmailEnvelope(
            id=str(data.get("id", "")),
            subject=headers.get("subject") or "No Subject",
            sender=headers.get("from") or "Unknown",
            to=headers.get("to", ""),
            date=format_date(headers.get("date", "")),
            is_read=_UNREAD not in data.get("labelIds", []),
            snippet=str(data.get("snippet", "")),
            body=extract_body(data.get("payload", {})) if with_body else None,
        )

    @staticmethod
    def _parse_sent(data: dict[str, Any], with_body: bool = False) -> SentMessage:
        """Map a Gmail message resource to a SentMessage."""
        headers = _header_map(data)
        to_pairs = [(n, a) for n, a in getaddresses([headers.get("to", "")]) if a]
        cc_pairs = [(n, a) for n, a in getaddresses([headers.get("cc", "")]) if a]
        return SentMessage(
            id=str(data.get("id", "")),
            sender=headers.get("from", ""),
            to=tuple(a for _, a in to_pairs),
            cc=tuple(a for _, a in cc_pairs),
            subject=headers.get("subject", ""),
            body=extract_body(data.get("payload", {})) if with_body else "",
            named_recipients=tuple(to_pairs + cc_pairs),
        )


def _header_map(data: dict[str, Any]) -> dict[str, str]:
    """Lower-cased header name → value for a message resource."""
    headers = data.get("payload", {}).get("headers", [])
    return {
        str(h.get("name", "")).lower(): str(h.get("value", ""))
        for h in headers
        if isinstance(h, dict)
    }


def extract_body(payload: dict[str, Any]) -> str:
    """Return the text/plain body of a payload, falling back to text/html."""
    return _find_part(payload, "text/plain") or _find_part(payload, "text/html")


def _find_part(payload: dict[str, Any], mime_type: str) -> str:
    data = payload.get("body", {}).get("data")
    if data and payload.get("mimeType", "text/plain").startswith(mime_type):
        return _b64decode(data)
    for part in payload.get("parts", []) or []:
        text = _find_part(part, mime_type)
        if text:
            return text
    return ""


def _b64decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def format_date(raw: str) -> str:
    """Normalise an RFC 2822 date to e.g. ``Mar 4, 2026 9:05 AM``.

    Returns the raw string if it cannot be parsed, ``Unknown`` if empty.
    """
    if not raw:
        return "Unknown"
    try:
        dt = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return raw
    hour = dt.hour % 12 or 12
    return f"{dt:%b} {dt.day}, {dt.year} {hour}:{dt:%M} {dt:%p}"
