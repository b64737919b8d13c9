# Tests for oauth/flow.py

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from config import Config
from errors import (
    AuthExchangeError,
    AuthenticationFailedError,
    ConfigurationError,
    InvalidStateError,
    NoAccessibleWorkspaceError,
)
from jira_client import JiraClient
from oauth.flow import AUTHORIZE_URL, AuthorizationFlow, select_workspace
from oauth.stores import CredentialStore, PendingAuthorization, Session

CALLBACK = "https://bridge.example/auth/callback"
RESOURCES = [{"id": "cloud-1", "url": "https://acme.atlassian.net", "name": "acme"}]
PROJECTS = [{"key": "ENG", "name": "Engineering"}, {"key": "OPS", "name": "Operations"}]


class FakeAtlassian:
    """Routes Atlassian identity and Jira calls to canned responses."""

    def __init__(self, token=None, resources=None, projects=None):
        self.token = token if token is not None else httpx.Response(200, json={"access_token": "atl-access", "expires_in": 3600})
        self.resources = resources if resources is not None else httpx.Response(200, json=RESOURCES)
        self.projects = projects if projects is not None else httpx.Response(200, json=PROJECTS)
        self.token_body = None
        self.requests = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        url = str(request.url)
        if url == "https://auth.atlassian.com/oauth/token":
            self.token_body = json.loads(request.content)
            return self.token
        if url == "https://api.atlassian.com/oauth/token/accessible-resources":
            assert request.headers["Authorization"] == "Bearer atl-access"
            return self.resources
        if url == "https://api.atlassian.com/ex/jira/cloud-1/rest/api/3/project":
            return self.projects
        raise AssertionError(f"unexpected request: {url}")


@pytest.fixture
def store():
    return CredentialStore()


@pytest.fixture
def make_flow(config, store, mock_http):
    def factory(atlassian, cfg=None):
        http = mock_http(atlassian)
        return AuthorizationFlow(cfg or config, store, http, JiraClient(http))

    return factory


def begin(flow) -> str:
    url = flow.begin_authorization(CALLBACK)
    return parse_qs(urlparse(url).query)["state"][0]


# ---------------------------------------------------------------------------
# begin_authorization
# ---------------------------------------------------------------------------


class TestBeginAuthorization:
    def test_redirect_url(self, make_flow, store):
        flow = make_flow(FakeAtlassian())
        url = flow.begin_authorization(CALLBACK)

        assert url.startswith(AUTHORIZE_URL + "?")
        params = parse_qs(urlparse(url).query)
        assert params["audience"] == ["api.atlassian.com"]
        assert params["client_id"] == ["client-123"]
        assert params["scope"] == ["read:jira-work write:jira-work read:jira-user offline_access"]
        assert params["redirect_uri"] == [CALLBACK]
        assert params["response_type"] == ["code"]
        assert params["prompt"] == ["consent"]

        state = params["state"][0]
        assert len(state) == 32  # 128 bits hex
        assert isinstance(store.get(state), PendingAuthorization)

    def test_each_call_issues_new_state(self, make_flow):
        flow = make_flow(FakeAtlassian())
        assert begin(flow) != begin(flow)

    def test_missing_client_id(self, make_flow, store):
        flow = make_flow(FakeAtlassian(), cfg=Config({}))
        with pytest.raises(ConfigurationError):
            flow.begin_authorization(CALLBACK)
        assert len(store) == 0


# ---------------------------------------------------------------------------
# complete_authorization
# ---------------------------------------------------------------------------


class TestCompleteAuthorization:
    async def test_success_creates_session(self, make_flow, store):
        atlassian = FakeAtlassian()
        flow = make_flow(atlassian)
        state = begin(flow)

        summary = await flow.complete_authorization("auth-code", state, CALLBACK)

        assert summary.space_keys == ("ENG", "OPS")
        assert summary.project_count == 2
        assert summary.connection_url == f"https://bridge.example/v1/sse?token={summary.session_token}"
        assert len(summary.session_token) == 64

        session = store.get_session(summary.session_token)
        assert isinstance(session, Session)
        assert session.access_token == "atl-access"
        assert session.workspace_id == "cloud-1"
        assert session.base_url == "https://acme.atlassian.net"
        assert session.space_keys == ("ENG", "OPS")
        assert state not in store

        assert atlassian.token_body == {
            "grant_type": "authorization_code",
            "client_id": "client-123",
            "client_secret": "secret-456",
            "code": "auth-code",
            "redirect_uri": CALLBACK,
        }

    async def test_server_url_overrides_connection_base(self, make_flow):
        cfg = Config({"client_id": "c", "client_secret": "s", "server_url": "https://public.example/"})
        flow = make_flow(FakeAtlassian(), cfg=cfg)
        state = begin(flow)

        summary = await flow.complete_authorization("code", state, CALLBACK)
        assert summary.connection_url.startswith("https://public.example/v1/sse?token=")

    async def test_state_replay_fails(self, make_flow):
        flow = make_flow(FakeAtlassian())
        state = begin(flow)
        await flow.complete_authorization("code", state, CALLBACK)

        with pytest.raises(InvalidStateError):
            await flow.complete_authorization("code", state, CALLBACK)

    async def test_unknown_state_makes_no_requests(self, make_flow):
        atlassian = FakeAtlassian()
        flow = make_flow(atlassian)

        with pytest.raises(InvalidStateError):
            await flow.complete_authorization("code", "forged", CALLBACK)
        assert atlassian.requests == []

    async def test_session_token_is_not_a_valid_state(self, make_flow):
        flow = make_flow(FakeAtlassian())
        summary = await flow.complete_authorization("code", begin(flow), CALLBACK)

        with pytest.raises(InvalidStateError):
            await flow.complete_authorization("code", summary.session_token, CALLBACK)

    async def test_token_exchange_rejected(self, make_flow, store):
        atlassian = FakeAtlassian(token=httpx.Response(
            403, json={"error": "invalid_grant", "error_description": "Invalid authorization code"}
        ))
        flow = make_flow(atlassian)
        state = begin(flow)

        with pytest.raises(AuthExchangeError, match="Invalid authorization code"):
            await flow.complete_authorization("bad", state, CALLBACK)
        # state is consumed even though the attempt failed
        assert state not in store
        assert store.session_count() == 0

    async def test_token_exchange_transport_error(self, make_flow):
        def handler(request):
            raise httpx.ConnectError("connection reset", request=request)

        flow = make_flow(handler)
        state = begin(flow)

        with pytest.raises(AuthExchangeError, match="connection reset"):
            await flow.complete_authorization("code", state, CALLBACK)

    async def test_no_accessible_sites(self, make_flow, store):
        flow = make_flow(FakeAtlassian(resources=httpx.Response(200, json=[])))
        state = begin(flow)

        with pytest.raises(NoAccessibleWorkspaceError):
            await flow.complete_authorization("code", state, CALLBACK)
        assert store.session_count() == 0

    async def test_project_listing_failure(self, make_flow, store):
        flow = make_flow(FakeAtlassian(projects=httpx.Response(500, json={"errorMessages": ["boom"]})))
        state = begin(flow)

        with pytest.raises(AuthenticationFailedError) as exc:
            await flow.complete_authorization("code", state, CALLBACK)
        assert type(exc.value) is AuthenticationFailedError
        assert str(exc.value) == "boom"
        assert store.session_count() == 0

    async def test_token_response_not_an_object(self, make_flow, store):
        flow = make_flow(FakeAtlassian(token=httpx.Response(200, json=[])))
        state = begin(flow)

        with pytest.raises(AuthExchangeError, match="access_token"):
            await flow.complete_authorization("code", state, CALLBACK)
        assert store.session_count() == 0

    async def test_token_response_not_json(self, make_flow):
        flow = make_flow(FakeAtlassian(token=httpx.Response(200, text="<html>oops</html>")))
        state = begin(flow)

        with pytest.raises(AuthExchangeError, match="not valid JSON"):
            await flow.complete_authorization("code", state, CALLBACK)

    async def test_resources_not_a_list(self, make_flow, store):
        flow = make_flow(FakeAtlassian(resources=httpx.Response(200, json={"id": "cloud-1"})))
        state = begin(flow)

        with pytest.raises(AuthenticationFailedError, match="Unexpected accessible resources response"):
            await flow.complete_authorization("code", state, CALLBACK)
        assert store.session_count() == 0

    async def test_paged_project_response(self, make_flow, store):
        flow = make_flow(FakeAtlassian(projects=httpx.Response(200, json={"values": PROJECTS})))
        state = begin(flow)

        with pytest.raises(AuthenticationFailedError, match="Unexpected project list response"):
            await flow.complete_authorization("code", state, CALLBACK)
        assert store.session_count() == 0


class TestSelectWorkspace:
    def test_first_resource_wins(self):
        resources = [{"id": "a", "url": "https://a"}, {"id": "b", "url": "https://b"}]
        assert select_workspace(resources)["id"] == "a"

    def test_empty(self):
        with pytest.raises(NoAccessibleWorkspaceError):
            select_workspace([])
