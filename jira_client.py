"""Thin Jira Cloud REST client bound to an MCP session.

Every call is signed with the session's bearer token and sent through the
Atlassian API gateway under the session's cloud id. Failures are wrapped in
DownstreamApiError and never retried.
"""

import logging
from typing import Any, Optional

import httpx

from errors import DownstreamApiError
from oauth.stores import Session

logger = logging.getLogger(__name__)

ATLASSIAN_API_ROOT = "https://api.atlassian.com"


def provider_message(response: httpx.Response) -> str:
    """Extract a human-readable error from an Atlassian error response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        messages = data.get("errorMessages") or []
        if messages:
            return ", ".join(str(m) for m in messages)
        errors = data.get("errors") or {}
        if isinstance(errors, dict) and errors:
            return ", ".join(f"{field}: {msg}" for field, msg in errors.items())
        if data.get("error_description"):
            return str(data["error_description"])
        if data.get("message"):
            return str(data["message"])

    return f"Request failed with status code {response.status_code}"


class JiraClient:
    """Jira REST API v3 client.

    Args:
        http_client: Shared AsyncClient owned by the application
        api_root: Atlassian API gateway root (overridable for tests)
    """

    def __init__(self, http_client: httpx.AsyncClient, api_root: str = ATLASSIAN_API_ROOT):
        self.http = http_client
        self.api_root = api_root.rstrip("/")

    def base_path(self, session: Session) -> str:
        return f"{self.api_root}/ex/jira/{session.workspace_id}/rest/api/3"

    async def call(
        self,
        session: Session,
        path: str,
        method: str = "GET",
        params: Optional[dict] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Send a request to the Jira REST API on behalf of a session.

        Returns:
            Parsed JSON body, or None if the response has no body

        Raises:
            DownstreamApiError: On transport failure, non-2xx status or a
                body that is not JSON
        """
        url = f"{self.base_path(session)}{path}"
        headers = {
            "Authorization": f"Bearer {session.access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        try:
            response = await self.http.request(method, url, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"[JIRA] {method} {path} failed: {e}")
            raise DownstreamApiError(None, str(e) or type(e).__name__) from e

        if not response.is_success:
            message = provider_message(response)
            logger.warning(f"[JIRA] {method} {path} returned {response.status_code}: {message}")
            raise DownstreamApiError(response.status_code, message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"[JIRA] {method} {path} returned a non-JSON body")
            raise DownstreamApiError(response.status_code, "Response body is not valid JSON") from e

    async def list_projects(self, session: Session) -> list[dict]:
        """List the projects (spaces) visible to the session."""
        projects = await self.call(session, "/project")
        if projects is None:
            return []
        if not isinstance(projects, list):
            raise DownstreamApiError(None, "Unexpected project list response")
        return [p for p in projects if isinstance(p, dict)]
