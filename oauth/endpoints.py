"""OAuth endpoints for connecting a Jira account.

This module contains the browser-facing authorization flow:
- Home page (/)
- Authorization start (/auth/start)
- Authorization callback (/auth/callback)
- Session revocation (/auth/revoke)

The AuthorizationFlow and CredentialStore are owned by the application and
reached through request.app.state.
"""

import html
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse

from errors import (
    AuthenticationFailedError,
    ConfigurationError,
    InvalidStateError,
    NoAccessibleWorkspaceError,
)
from oauth.flow import AuthorizationFlow
from oauth.stores import CredentialStore
from oauth.templates import CONNECTED_PAGE, HOME_PAGE, NOT_CONFIGURED_PAGE, TOOL_ITEM
from tools import TOOLS

logger = logging.getLogger(__name__)

# Router for OAuth endpoints
router = APIRouter(tags=["oauth"])


def get_flow(request: Request) -> AuthorizationFlow:
    return request.app.state.auth_flow


def get_store(request: Request) -> CredentialStore:
    return request.app.state.store


def get_server_url(request: Request) -> str:
    """Public base URL: SERVER_URL if configured, else the request's own."""
    configured = request.app.state.config.server_url
    if configured:
        return configured
    return str(request.base_url).rstrip("/")


def callback_url(request: Request) -> str:
    return f"{get_server_url(request)}/auth/callback"


@router.get("/", response_class=HTMLResponse)
async def home():
    """Home page with setup instructions."""
    items = "\n".join(
        TOOL_ITEM.format(name=html.escape(t.name), description=html.escape(t.description))
        for t in TOOLS
    )
    return HTMLResponse(HOME_PAGE.format(tool_items=items))


@router.get("/auth/start")
async def auth_start(request: Request, flow: AuthorizationFlow = Depends(get_flow)):
    """Redirect to Atlassian, or explain how to configure OAuth."""
    redirect_uri = callback_url(request)
    try:
        url = flow.begin_authorization(redirect_uri)
    except ConfigurationError as e:
        logger.warning(f"[AUTH] {e}")
        return HTMLResponse(NOT_CONFIGURED_PAGE.format(callback_url=html.escape(redirect_uri)))

    return RedirectResponse(url=url, status_code=302)


@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    code: str = "",
    state: str = "",
    flow: AuthorizationFlow = Depends(get_flow),
):
    """OAuth callback: exchange the code and show the MCP connection URL."""
    try:
        summary = await flow.complete_authorization(code, state, callback_url(request))
    except InvalidStateError:
        return PlainTextResponse("Invalid state", status_code=400)
    except NoAccessibleWorkspaceError:
        return PlainTextResponse("No Jira sites found", status_code=400)
    except AuthenticationFailedError as e:
        logger.error(f"[AUTH] Auth error: {e}")
        return PlainTextResponse(f"Authentication failed: {e}", status_code=500)

    return HTMLResponse(CONNECTED_PAGE.format(
        project_count=summary.project_count,
        connection_url=html.escape(summary.connection_url),
        space_list=html.escape(", ".join(summary.space_keys)),
    ))


@router.post("/auth/revoke")
async def auth_revoke(token: str = "", store: CredentialStore = Depends(get_store)):
    """Revoke a session token."""
    revoked = store.revoke(token)
    if revoked:
        logger.info("[AUTH] Session revoked")
    return JSONResponse({"revoked": revoked})
