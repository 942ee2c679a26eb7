"""How the realtime bridge reaches the dispatcher: the HTTP tool-call endpoint."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The dispatch endpoint could not be reached or answered with a non-2xx status."""


class ToolTransport(Protocol):
    async def call(self, name: str, arguments: dict[str, Any], call_id: str) -> str:
        """Return the serialised ToolResult output for one call."""
        ...


class HttpToolTransport:
    """POSTs tool calls to ``/api/tools/call`` with the session cookie attached.

    Usage::

        async with HttpToolTransport(url, cookies={"session": cookie}) as transport:
            text = await transport.call("list_emails", {"maxResults": 5}, "call_1")
    """

    def __init__(
        self,
        url: str,
        cookies: dict[str, str] | None = None,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0), cookies=cookies
        )

    async def call(self, name: str, arguments: dict[str, Any], call_id: str) -> str:
        payload = {"tool_name": name, "arguments": arguments, "call_id": call_id}
        try:
            response = await self._client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"dispatch endpoint unreachable: {exc}") from exc

        if response.is_error:
            detail = _envelope_text(response) or response.reason_phrase
            raise TransportError(f"HTTP error! status: {response.status_code} {detail}".strip())

        text = _envelope_text(response)
        if text is None:
            raise TransportError("dispatch endpoint returned an unexpected body")
        return text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpToolTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _envelope_text(response: httpx.Response) -> str | None:
    """Pull ``content[0].text`` out of the tool-call envelope."""
    try:
        body = response.json()
        return str(body["content"][0]["text"])
    except (ValueError, KeyError, IndexError, TypeError):
        return None
