"""SSE endpoint serving the Jira tools over MCP.

Each GET /v1/sse?token=... opens one channel bound to the Session found in
the CredentialStore. The channel runs a per-connection MCP server over the
SDK's SSE transport; the client posts JSON-RPC messages to /v1/messages/.

Channel lifecycle: CONNECTING -> AUTHENTICATED -> SERVING -> CLOSED. An
unknown token fails with 401 before any stream is opened. Once serving, tool
failures are reported inside results and never close the stream.
"""

import asyncio
import contextlib
import enum
import logging
from typing import Any, Awaitable, Callable, Optional

import mcp.types as types
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from starlette.responses import Response

from errors import UnauthorizedSessionError
from jira_client import JiraClient
from oauth.stores import CredentialStore, Session
from tools import TOOLS, dispatch_tool_call

logger = logging.getLogger(__name__)

SERVER_NAME = "multi-space-jira"
SERVER_VERSION = "1.0.0"

MESSAGE_PATH = "/v1/messages/"
KEEPALIVE = b":keepalive\n\n"

Send = Callable[[dict], Awaitable[None]]

# Router for SSE endpoints
router = APIRouter(tags=["sse"])


class ChannelState(enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    SERVING = "serving"
    CLOSED = "closed"


class Heartbeat:
    """Writes SSE comment lines on an ASGI send channel at a fixed interval.

    Wrap the response's send with Heartbeat.send: beats start once the
    response has started and stop when the final body chunk goes out or
    stop() is called, whichever comes first.
    """

    def __init__(self, send: Send, interval: float = 30.0):
        self._send = send
        self.interval = interval
        self.beats = 0
        self._started = False
        self._closed = False
        self._task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: dict) -> None:
        if message["type"] == "http.response.start":
            self._started = True
        elif message["type"] == "http.response.body" and not message.get("more_body", False):
            self._closed = True
        await self._send(message)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        self._closed = True
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self._closed:
                return
            if not self._started:
                continue
            try:
                await self._send({"type": "http.response.body", "body": KEEPALIVE, "more_body": True})
            except Exception as e:
                logger.info(f"[SSE] Heartbeat stopped: {type(e).__name__}: {e}")
                self._closed = True
                return
            self.beats += 1


def build_mcp_server(session: Session, jira: JiraClient) -> Server:
    """Create an MCP server whose tool handlers are bound to ``session``."""
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=t.name, description=t.description, inputSchema=t.input_schema)
            for t in TOOLS
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        result = await dispatch_tool_call(name, arguments, session, jira)
        return [types.TextContent(type=block.type, text=block.text) for block in result.content]

    return server


class SseChannel:
    """One MCP connection from CONNECTING to CLOSED."""

    def __init__(
        self,
        token: str,
        store: CredentialStore,
        jira: JiraClient,
        heartbeat_interval: float = 30.0,
    ):
        self.token = token
        self.store = store
        self.jira = jira
        self.heartbeat_interval = heartbeat_interval
        self.state = ChannelState.CONNECTING
        self.session: Optional[Session] = None
        self.heartbeat: Optional[Heartbeat] = None

    def authenticate(self) -> Session:
        """Resolve the token to a Session.

        Raises:
            UnauthorizedSessionError: If the token is missing or unknown
        """
        session = self.store.get_session(self.token)
        if session is None:
            self.state = ChannelState.CLOSED
            raise UnauthorizedSessionError("Invalid token")
        self.session = session
        self.state = ChannelState.AUTHENTICATED
        return session

    async def serve(self, transport: SseServerTransport, scope, receive, send: Send) -> None:
        """Run the MCP server over SSE until the client disconnects."""
        if self.state is not ChannelState.AUTHENTICATED:
            raise RuntimeError(f"Cannot serve channel in state {self.state.value}")

        server = build_mcp_server(self.session, self.jira)
        self.heartbeat = Heartbeat(send, self.heartbeat_interval)
        self.state = ChannelState.SERVING
        self.heartbeat.start()
        try:
            async with transport.connect_sse(scope, receive, self.heartbeat.send) as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())
        finally:
            await self.heartbeat.stop()
            self.state = ChannelState.CLOSED
            logger.info(f"[SSE] Connection closed after {self.heartbeat.beats} heartbeats")


def unauthorized_response(error_description: str) -> JSONResponse:
    """Return 401 with a JSON error body."""
    return JSONResponse(
        {"error": "unauthorized", "error_description": error_description},
        status_code=401,
    )


@router.get("/v1/sse")
async def sse_endpoint(request: Request, token: str = "") -> Response:
    """SSE endpoint for MCP client connections."""
    state = request.app.state
    channel = SseChannel(token, state.store, state.jira, state.config.heartbeat_interval)

    try:
        session = channel.authenticate()
    except UnauthorizedSessionError as e:
        logger.info("[SSE] Request rejected: invalid or expired token")
        return unauthorized_response(str(e))

    logger.info(f"[SSE] Connection established for site {session.base_url}")
    await channel.serve(state.sse_transport, request.scope, request.receive, request._send)
    return Response()
