# Shared fixtures for multi-space-jira-mcp tests.

import httpx
import pytest

from config import Config
from jira_client import JiraClient
from oauth.stores import Session

SITE_URL = "https://acme.atlassian.net"
CLOUD_ID = "cloud-1"
JIRA_API = f"https://api.atlassian.com/ex/jira/{CLOUD_ID}/rest/api/3"


@pytest.fixture
def session():
    return Session(
        session_token="session-token",
        access_token="atl-access",
        workspace_id=CLOUD_ID,
        base_url=SITE_URL,
        space_keys=("ENG", "OPS"),
    )


@pytest.fixture
def config():
    return Config({
        "client_id": "client-123",
        "client_secret": "secret-456",
        "heartbeat_interval": "0.01",
    })


@pytest.fixture
def mock_http():
    """Factory: build an AsyncClient whose requests go to ``handler``."""

    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def jira_with(mock_http):
    """Factory: JiraClient backed by a mock handler."""

    def factory(handler):
        return JiraClient(mock_http(handler))

    return factory
