"""stdio MCP server — the same catalog and dispatcher, behind the MCP protocol.

Credentials come from a token file that the auth collaborator keeps
current; it is re-read on every call so a refreshed token is picked up
without restarting the server.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from voice_inbox.auth.session import CredentialContext
from voice_inbox.orchestrator.catalog import list_tools
from voice_inbox.orchestrator.dispatcher import ToolCall, ToolDispatcher

logger = logging.getLogger(__name__)

ContextLoader = Callable[[], CredentialContext]


class McpToolServer:
    """Adapts ToolDispatcher to MCP ``list_tools`` / ``call_tool`` handlers.

    Usage::

        server = McpToolServer(dispatcher, lambda: load_context(token_file))
        await server.serve_stdio()
    """

    def __init__(self, dispatcher: ToolDispatcher, load_context: ContextLoader) -> None:
        self._dispatcher = dispatcher
        self._load_context = load_context
        self.server = Server("voice-inbox")
        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)

    async def list_tools(self) -> list[Tool]:
        return [
            Tool(name=t.name.value, description=t.description, inputSchema=t.input_schema())
            for t in list_tools()
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Dispatch one call; failures come back as ``{"error": ...}`` text, never raised."""
        try:
            context = self._load_context()
        except Exception as exc:  # noqa: BLE001
            logger.error("Could not load credentials: %s", exc)
            context = None
        call = ToolCall(call_id=f"mcp_{uuid.uuid4().hex}", name=name, arguments=arguments)
        result = await self._dispatcher.dispatch(call, context)
        return [TextContent(type="text", text=result.to_json())]

    async def serve_stdio(self) -> None:
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream, write_stream, self.server.create_initialization_options()
            )
