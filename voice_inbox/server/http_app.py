"""HTTP surface — tool listing, tool calls, and the session endpoints.

The tool-call endpoint is a thin adapter: it finds the caller's
CredentialContext from the session cookie and hands the call to the
shared ToolDispatcher.  Tool-level failures come back inside a 200
envelope; only transport-level problems use HTTP status codes.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from voice_inbox.auth.session import CredentialContext, SessionStore, context_from_dict
from voice_inbox.capabilities.base import CapabilityFactory
from voice_inbox.config import Settings
from voice_inbox.orchestrator.catalog import CATALOG_VERSION, list_tools
from voice_inbox.orchestrator.dispatcher import ToolCall, ToolDispatcher
from voice_inbox.profile.builder import ProfileBuilder

logger = logging.getLogger(__name__)

_SESSION_KEY = "sid"

ProfileBuilderFactory = Callable[[CredentialContext], ProfileBuilder]


def create_app(
    settings: Settings,
    dispatcher: ToolDispatcher,
    store: SessionStore | None = None,
    profile_builder_factory: ProfileBuilderFactory | None = None,
) -> FastAPI:
    """Build the FastAPI app around an already-wired dispatcher.

    ``profile_builder_factory`` is called once per login when set; leave it
    None to skip profile building.
    """
    store = store or SessionStore(ttl_seconds=settings.session_ttl_seconds)
    app = FastAPI(title="voice-inbox")
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_ttl_seconds,
    )
    app.state.sessions = store
    app.state.dispatcher = dispatcher

    def current_context(request: Request) -> CredentialContext | None:
        return store.get(request.session.get(_SESSION_KEY))

    # ── Tools ──────────────────────────────────────────────────────────────────

    @app.get("/api/tools")
    async def get_tools() -> dict[str, Any]:
        return {"version": CATALOG_VERSION, "tools": [t.to_dict() for t in list_tools()]}

    @app.post("/api/tools/call")
    async def call_tool(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None or not body.get("tool_name"):
            return _envelope("Error: tool_name is required", status_code=400)

        context = current_context(request)
        if context is None or not context.is_authenticated():
            return _envelope("Error: authentication required", status_code=401)

        call = ToolCall(
            call_id=str(body.get("call_id") or uuid.uuid4()),
            name=str(body["tool_name"]),
            arguments=body.get("arguments"),
        )
        try:
            result = await dispatcher.dispatch(call, context)
        except Exception as exc:  # noqa: BLE001
            logger.error("Dispatch of %s raised: %s", call.name, exc, exc_info=True)
            return _envelope(f"Error: {exc}", status_code=500)
        return _envelope(result.to_json())

    # ── Auth session ───────────────────────────────────────────────────────────

    @app.post("/api/auth/session")
    async def create_session(request: Request) -> JSONResponse:
        """Accept the token bundle produced by the OAuth exchange and log the user in."""
        body = await _json_body(request)
        if body is None:
            return JSONResponse({"error": "expected a JSON object"}, status_code=400)
        try:
            context = context_from_dict(body)
        except ValueError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        if not context.is_authenticated():
            return JSONResponse(
                {"error": "token bundle has no valid access_token"}, status_code=400
            )

        if profile_builder_factory is not None and context.profile is None:
            try:
                builder = await asyncio.to_thread(profile_builder_factory, context)
                context = context.with_profile(await builder.build(context.user_email))
            except Exception as exc:  # noqa: BLE001
                logger.error("Profile build failed; continuing without one: %s", exc, exc_info=True)

        store.delete(request.session.get(_SESSION_KEY))
        request.session[_SESSION_KEY] = store.create(context)
        return JSONResponse({"authenticated": True, "userProfile": _profile_dict(context)})

    @app.get("/api/auth/status")
    async def auth_status(request: Request) -> dict[str, Any]:
        context = current_context(request)
        authenticated = context is not None and context.is_authenticated()
        return {
            "authenticated": authenticated,
            "userProfile": _profile_dict(context) if authenticated else None,
        }

    @app.get("/api/auth/logout")
    async def logout(request: Request) -> dict[str, Any]:
        existed = store.delete(request.session.get(_SESSION_KEY))
        request.session.clear()
        logger.info("Logout (session existed: %s)", existed)
        return {"success": True}

    return app


def build_app(settings: Settings, capability_factory: CapabilityFactory | None = None) -> FastAPI:
    """Wire the production app: Google capabilities, dispatcher, profile builder."""
    if capability_factory is None:
        from voice_inbox.capabilities.google_auth import google_capabilities

        capability_factory = google_capabilities(settings)

    factory = capability_factory

    def profile_builder(context: CredentialContext) -> ProfileBuilder:
        return ProfileBuilder(
            factory(context).mail,
            api_key=settings.anthropic_api_key or None,
            model=settings.profile_model,
        )

    dispatcher = ToolDispatcher(factory, timeout=settings.tool_timeout_seconds)
    return create_app(
        settings,
        dispatcher,
        profile_builder_factory=profile_builder if settings.build_profile_on_login else None,
    )


# ── Helpers ────────────────────────────────────────────────────────────────────


def _envelope(text: str, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"content": [{"type": "text", "text": text}]}, status_code=status_code)


async def _json_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _profile_dict(context: CredentialContext | None) -> dict[str, Any] | None:
    if context is None or context.profile is None:
        return None
    return context.profile.to_dict()
