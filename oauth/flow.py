"""Atlassian OAuth 2.0 (3LO) authorization code flow.

begin_authorization() issues a one-time state and builds the Atlassian
authorize URL. complete_authorization() consumes the state, exchanges the
code for an access token, discovers the Jira site, lists its projects and
mints a Session in the CredentialStore.
"""

import logging
import secrets
from dataclasses import dataclass, replace
from urllib.parse import urlencode

import httpx

from config import Config
from errors import (
    AuthExchangeError,
    AuthenticationFailedError,
    ConfigurationError,
    DownstreamApiError,
    InvalidStateError,
    NoAccessibleWorkspaceError,
)
from jira_client import JiraClient, provider_message
from oauth.stores import CredentialStore, Session

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://auth.atlassian.com/authorize"
TOKEN_URL = "https://auth.atlassian.com/oauth/token"
ACCESSIBLE_RESOURCES_URL = "https://api.atlassian.com/oauth/token/accessible-resources"

SCOPES = ["read:jira-work", "write:jira-work", "read:jira-user", "offline_access"]


@dataclass(frozen=True)
class SessionSummary:
    """What the callback page shows after a successful authorization."""

    session_token: str
    connection_url: str
    space_keys: tuple[str, ...]
    project_count: int


def select_workspace(resources: list[dict]) -> dict:
    """Pick the Jira site a new session is bound to.

    Policy: the first accessible resource wins. There is no selection step
    for users with several sites.
    """
    if not resources:
        raise NoAccessibleWorkspaceError("No Jira sites found")
    if len(resources) > 1:
        others = ", ".join(str(r.get("url", r.get("id", "?"))) for r in resources[1:])
        logger.info(f"[AUTH] Multiple Jira sites accessible, ignoring: {others}")
    return resources[0]


class AuthorizationFlow:
    """Drives the OAuth exchange and creates sessions.

    Args:
        config: Application config (client id/secret)
        store: Credential store shared with the SSE endpoint
        http_client: Shared AsyncClient for Atlassian calls
        jira: Jira client used to list projects
    """

    def __init__(
        self,
        config: Config,
        store: CredentialStore,
        http_client: httpx.AsyncClient,
        jira: JiraClient,
    ):
        self.config = config
        self.store = store
        self.http = http_client
        self.jira = jira

    def begin_authorization(self, callback_url: str) -> str:
        """Store a new state and return the Atlassian authorize URL.

        Raises:
            ConfigurationError: If the OAuth client id is not set
        """
        if not self.config.is_oauth_configured():
            raise ConfigurationError("ATLASSIAN_CLIENT_ID is not configured")

        state = secrets.token_hex(16)
        self.store.add_pending(state)

        params = {
            "audience": "api.atlassian.com",
            "client_id": self.config.client_id,
            "scope": " ".join(SCOPES),
            "redirect_uri": callback_url,
            "state": state,
            "response_type": "code",
            "prompt": "consent",
        }
        logger.info("[AUTH] Authorization started")
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def complete_authorization(self, code: str, state: str, callback_url: str) -> SessionSummary:
        """Exchange the code and create a session.

        Args:
            code: Authorization code from the callback
            state: State value from the callback
            callback_url: The redirect_uri used in begin_authorization()

        Raises:
            InvalidStateError: Unknown or already-used state
            AuthenticationFailedError: Any downstream failure (including the
                AuthExchangeError and NoAccessibleWorkspaceError subclasses)
        """
        if self.store.consume_pending(state) is None:
            logger.info("[AUTH] Callback rejected: invalid state")
            raise InvalidStateError("Invalid state")

        try:
            access_token = await self._exchange_code(code, callback_url)
            resources = await self._accessible_resources(access_token)
            site = select_workspace(resources)

            session = Session(
                session_token=secrets.token_hex(32),
                access_token=access_token,
                workspace_id=site["id"],
                base_url=str(site.get("url", "")).rstrip("/"),
            )
            projects = await self.jira.list_projects(session)
            space_keys = tuple(str(p["key"]) for p in projects if p.get("key"))
        except AuthenticationFailedError:
            raise
        except (DownstreamApiError, httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning(f"[AUTH] Authorization failed: {e}")
            raise AuthenticationFailedError(str(e)) from e

        session = replace(session, space_keys=space_keys)
        self.store.add_session(session)
        logger.info(f"[AUTH] Session created for site {session.base_url} with {len(space_keys)} spaces")

        base = self.config.server_url or callback_url.rsplit("/auth/callback", 1)[0]
        return SessionSummary(
            session_token=session.session_token,
            connection_url=f"{base}/v1/sse?token={session.session_token}",
            space_keys=space_keys,
            project_count=len(projects),
        )

    async def _exchange_code(self, code: str, callback_url: str) -> str:
        try:
            response = await self.http.post(TOKEN_URL, json={
                "grant_type": "authorization_code",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "code": code,
                "redirect_uri": callback_url,
            })
        except httpx.HTTPError as e:
            logger.warning(f"[AUTH] Token exchange failed: {e}")
            raise AuthExchangeError(str(e) or type(e).__name__) from e

        if not response.is_success:
            message = provider_message(response)
            logger.warning(f"[AUTH] Token exchange returned {response.status_code}: {message}")
            raise AuthExchangeError(message)

        try:
            data = response.json()
        except ValueError as e:
            raise AuthExchangeError("Token response is not valid JSON") from e
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token or not isinstance(access_token, str):
            raise AuthExchangeError("Token response did not include an access_token")
        return access_token

    async def _accessible_resources(self, access_token: str) -> list[dict]:
        response = await self.http.get(
            ACCESSIBLE_RESOURCES_URL,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
        if not response.is_success:
            raise DownstreamApiError(response.status_code, provider_message(response))
        try:
            resources = response.json()
        except ValueError as e:
            raise DownstreamApiError(response.status_code, "Accessible resources response is not valid JSON") from e
        if not isinstance(resources, list) or not all(isinstance(r, dict) and r.get("id") for r in resources):
            raise DownstreamApiError(response.status_code, "Unexpected accessible resources response")
        return resources
