"""Multi-Space Jira MCP server.

It handles:
- Atlassian OAuth flow (/auth/start, /auth/callback) via oauth/
- MCP over SSE (/v1/sse, /v1/messages/) via sse.py
- Jira tools via tools.py

create_app() owns every shared component: the CredentialStore, the httpx
client, the Jira client and the SSE transport. The lifespan runs the
session sweeper and closes the HTTP client on shutdown.
"""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mcp.server.sse import SseServerTransport
from starlette.middleware.sessions import SessionMiddleware

from config import Config, load_config
from jira_client import JiraClient
from oauth.endpoints import router as oauth_router
from oauth.flow import AuthorizationFlow
from oauth.stores import CredentialStore, run_sweeper
from sse import MESSAGE_PATH, router as sse_router

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Config = app.state.config
    sweeper = asyncio.create_task(run_sweeper(
        app.state.store,
        interval=config.sweep_interval,
        max_age=config.session_max_age,
        pending_max_age=config.pending_max_age,
    ))
    logger.info(f"[STARTUP] OAuth configured: {config.is_oauth_configured()}")
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        if app.state.owns_http_client:
            await app.state.http_client.aclose()
        logger.info("[SHUTDOWN] Server stopped")


def create_app(
    config: Config = None,
    store: CredentialStore = None,
    http_client: httpx.AsyncClient = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application config (defaults to load_config())
        store: Credential store (defaults to a new empty store)
        http_client: Client for Atlassian calls (defaults to one owned by the app)
    """
    config = config or load_config()
    store = store if store is not None else CredentialStore()

    app = FastAPI(
        title="Multi-Space Jira MCP",
        description="MCP server exposing multiple Jira spaces behind one Atlassian login",
        version=VERSION,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.store = store
    app.state.owns_http_client = http_client is None
    # No timeout on downstream calls; a hung call only stalls its own tool call
    app.state.http_client = http_client or httpx.AsyncClient(timeout=None)
    app.state.jira = JiraClient(app.state.http_client)
    app.state.auth_flow = AuthorizationFlow(config, store, app.state.http_client, app.state.jira)
    app.state.sse_transport = SseServerTransport(MESSAGE_PATH)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        max_age=int(config.session_max_age),
        https_only=True,
    )

    app.include_router(oauth_router)
    app.include_router(sse_router)
    app.mount(MESSAGE_PATH.rstrip("/"), app=app.state.sse_transport.handle_post_message)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "multi-space-jira-mcp",
            "sessions": app.state.store.session_count(),
        }

    return app


if __name__ == "__main__":
    from cli import main
    main()
