"""CLI command implementations."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from voice_inbox.auth.session import CredentialContext, load_context
from voice_inbox.config import Settings
from voice_inbox.orchestrator.catalog import CATALOG_VERSION, list_tools
from voice_inbox.orchestrator.dispatcher import ToolCall, ToolDispatcher

logger = logging.getLogger(__name__)
console = Console(width=200)

_token_file_option = click.option(
    "--token-file",
    type=click.Path(path_type=Path),
    default=None,
    help="JSON token bundle ({tokens, profile?, expiry?}). Defaults to VOICE_INBOX_TOKEN_FILE.",
)


def _resolve_token_file(settings: Settings, token_file: Path | None) -> Path:
    path = token_file or settings.token_file
    if path is None:
        raise click.UsageError("No token file: pass --token-file or set VOICE_INBOX_TOKEN_FILE.")
    return path


def _google_factory(settings: Settings):
    from voice_inbox.capabilities.google_auth import google_capabilities

    return google_capabilities(settings)


# ── tools ─────────────────────────────────────────────────────────────────────


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw catalog JSON.")
def tools(as_json: bool) -> None:
    """List every tool the model can call."""
    catalog = list_tools()
    if as_json:
        console.print_json(
            json.dumps({"version": CATALOG_VERSION, "tools": [t.to_dict() for t in catalog]})
        )
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Tool", style="bold")
    table.add_column("Description", max_width=60)
    table.add_column("Parameters")
    for tool in catalog:
        params = ", ".join(
            f"[bold]{p.name}[/bold]*" if p.required else p.name for p in tool.params
        )
        table.add_row(tool.name.value, tool.description, params or "[dim]—[/dim]")

    console.print(f"\nTool catalog [dim]v{CATALOG_VERSION}[/dim]\n")
    console.print(table)


# ── call ──────────────────────────────────────────────────────────────────────


@click.command()
@click.argument("name")
@click.option("--args", "raw_args", default="{}", show_default=True, help="Arguments as JSON.")
@_token_file_option
@click.pass_obj
def call(settings: Settings, name: str, raw_args: str, token_file: Path | None) -> None:
    """Dispatch a single tool call with the credentials in a token file."""
    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc.msg}", param_hint="--args") from exc

    context = load_context(_resolve_token_file(settings, token_file))
    dispatcher = ToolDispatcher(_google_factory(settings), timeout=settings.tool_timeout_seconds)
    result = asyncio.run(dispatcher.dispatch(ToolCall("cli", name, arguments), context))

    style = "red" if result.is_error else "green"
    console.print(f"[{style}]{result.state.value}[/{style}]")
    console.print(Syntax(result.to_json(), "json", word_wrap=True))
    if result.is_error:
        raise SystemExit(1)


# ── profile ───────────────────────────────────────────────────────────────────


@click.command()
@_token_file_option
@click.option("--output", type=click.Path(path_type=Path), default=None, help="Write JSON here.")
@click.pass_obj
def profile(settings: Settings, token_file: Path | None, output: Path | None) -> None:
    """Build a behavioral profile from the user's sent mail."""
    from voice_inbox.profile.builder import ProfileBuilder

    context = load_context(_resolve_token_file(settings, token_file))
    if not context.is_authenticated():
        console.print("[red]Token file holds no valid access token.[/red]")
        raise SystemExit(1)

    capabilities = _google_factory(settings)(context)
    builder = ProfileBuilder(
        capabilities.mail,
        api_key=settings.anthropic_api_key or None,
        model=settings.profile_model,
    )
    with console.status("Reading sent mail and building profile..."):
        built = asyncio.run(builder.build(context.user_email))

    text = json.dumps(built.to_dict(), indent=2)
    if output is not None:
        output.write_text(text, encoding="utf-8")
        console.print(f"Profile written to [bold]{output}[/bold]")
    else:
        console.print(Panel(Syntax(text, "json"), title="[bold]Profile[/bold]", border_style="blue"))


# ── serve ─────────────────────────────────────────────────────────────────────


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.pass_obj
def serve(settings: Settings, host: str, port: int) -> None:
    """Run the HTTP server (tool listing, tool calls, auth session)."""
    import uvicorn

    from voice_inbox.server.http_app import build_app

    console.print(f"Serving on [bold]http://{host}:{port}[/bold]")
    uvicorn.run(build_app(settings), host=host, port=port, log_level="info")


# ── mcp ───────────────────────────────────────────────────────────────────────


@click.command()
@_token_file_option
@click.pass_obj
def mcp(settings: Settings, token_file: Path | None) -> None:
    """Run the stdio MCP server (for MCP clients that spawn a subprocess)."""
    from voice_inbox.server.mcp_server import McpToolServer

    path = _resolve_token_file(settings, token_file)
    dispatcher = ToolDispatcher(_google_factory(settings), timeout=settings.tool_timeout_seconds)
    server = McpToolServer(dispatcher, lambda: load_context(path))
    asyncio.run(server.serve_stdio())


# ── bridge ────────────────────────────────────────────────────────────────────


@click.command()
@click.option("--session-cookie", required=True, help="Value of the HTTP server's session cookie.")
@click.option("--dispatch-url", default=None, help="Tool-call endpoint. Defaults to DISPATCH_URL.")
@_token_file_option
@click.pass_obj
def bridge(
    settings: Settings, session_cookie: str, dispatch_url: str | None, token_file: Path | None
) -> None:
    """Connect to the realtime API and answer its function calls via the HTTP server."""
    if not settings.openai_api_key:
        raise click.UsageError("OPENAI_API_KEY is not set.")
    context: CredentialContext | None = None
    path = token_file or settings.token_file
    if path is not None:
        context = load_context(path)
    asyncio.run(
        _bridge_async(settings, session_cookie, dispatch_url or settings.dispatch_url, context)
    )


async def _bridge_async(
    settings: Settings,
    session_cookie: str,
    dispatch_url: str,
    context: CredentialContext | None,
) -> None:
    from voice_inbox.realtime.bridge import RealtimeBridge
    from voice_inbox.realtime.connection import RealtimeConnection
    from voice_inbox.realtime.transport import HttpToolTransport

    # The server bounds each dispatch; leave room for the response to arrive.
    transport_timeout = settings.tool_timeout_seconds + 30.0
    async with HttpToolTransport(
        dispatch_url, cookies={"session": session_cookie}, timeout=transport_timeout
    ) as transport:
        realtime_bridge = RealtimeBridge(transport)
        connection = RealtimeConnection(
            settings.realtime_url,
            settings.openai_api_key,
            settings.realtime_model,
            realtime_bridge,
            profile=context.profile if context else None,
            voice=settings.realtime_voice,
        )
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, connection.stop)
            loop.add_signal_handler(signal.SIGTERM, connection.stop)
        except NotImplementedError:
            pass  # Windows
        console.print("Bridge running — press Ctrl+C to stop")
        await connection.run()
        await realtime_bridge.drain()
