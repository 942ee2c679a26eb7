"""Websocket connection to the realtime speech/LLM API, feeding the bridge."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import websockets
from websockets.asyncio.client import ClientConnection

from voice_inbox.orchestrator.catalog import list_tools
from voice_inbox.profile.types import BehavioralProfile
from voice_inbox.realtime.bridge import RealtimeBridge, RealtimeSession
from voice_inbox.realtime.instructions import build_instructions, personalization

logger = logging.getLogger(__name__)

_MAX_BACKOFF_SECONDS = 60


class RealtimeConnection:
    """Keeps one realtime websocket open and pumps its events into a RealtimeBridge.

    Every (re)connect gets a brand-new RealtimeSession.  Calls still in flight
    when a connection drops are left to finish; their late results are
    simply undeliverable.

    Usage::

        connection = RealtimeConnection(url, api_key, model, bridge, profile=profile)
        await connection.run()          # returns after stop()
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        bridge: RealtimeBridge,
        profile: BehavioralProfile | None = None,
        voice: str | None = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._model = model
        self._bridge = bridge
        self._profile = profile
        self._voice = voice
        self._stop_event = asyncio.Event()
        self._websocket: ClientConnection | None = None

    def stop(self) -> None:
        """Close the current connection and stop reconnecting."""
        logger.info("Shutdown requested — closing realtime connection")
        self._stop_event.set()
        if self._websocket is not None:
            asyncio.ensure_future(self._websocket.close())

    async def run(self) -> None:
        """Connect, listen, and reconnect with backoff until stop() is called."""
        attempt = 0
        while not self._stop_event.is_set():
            try:
                await self._connect_once()
                attempt = 0
            except websockets.exceptions.ConnectionClosedOK:
                logger.debug("Realtime connection closed normally")
            except Exception as exc:  # noqa: BLE001
                if self._stop_event.is_set():
                    break
                attempt += 1
                delay = min(2**attempt, _MAX_BACKOFF_SECONDS)
                logger.error(
                    "Realtime connection error (attempt %d): %s — reconnecting in %ds",
                    attempt,
                    exc,
                    delay,
                )
                await self._interruptible_sleep(delay)
        logger.info("Realtime connection stopped")

    # ── Internal ───────────────────────────────────────────────────────────────

    async def _connect_once(self) -> None:
        url = f"{self._url}?model={self._model}"
        headers = {"Authorization": f"Bearer {self._api_key}", "OpenAI-Beta": "realtime=v1"}
        async with websockets.connect(url, additional_headers=headers, max_size=None) as ws:
            self._websocket = ws
            logger.info("Connected to realtime API (%s)", self._model)
            session = self._bridge.open(RealtimeSession(send=self._sender(ws)))
            await self._bootstrap()
            try:
                await self._listen(ws)
            finally:
                self._websocket = None
                logger.info(
                    "Realtime connection closed with %d call(s) in flight", len(session.tasks)
                )

    async def _bootstrap(self) -> None:
        tools = list_tools()
        await self._bridge.queue_session_update(tools, build_instructions(tools))
        if self._profile is not None:
            text = personalization(self._profile)
            if text:
                await self._bridge.queue_personalization(text)

    async def _listen(self, ws: ClientConnection) -> None:
        async for message in ws:
            try:
                event = json.loads(message)
            except json.JSONDecodeError as exc:
                logger.warning("Dropping non-JSON realtime message: %s", exc)
                continue
            if event.get("type") == "error":
                logger.error("Realtime API error: %s", event.get("error"))
                continue
            try:
                await self._bridge.handle_event(event)
            except Exception as exc:  # noqa: BLE001
                logger.error("Error handling %s event: %s", event.get("type"), exc, exc_info=True)

    def _sender(self, ws: ClientConnection):
        async def send(event: dict[str, Any]) -> None:
            if self._voice and event.get("type") == "session.update":
                event["session"].setdefault("voice", self._voice)
            await ws.send(json.dumps(event))

        return send

    async def _interruptible_sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass
