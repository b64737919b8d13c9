"""Error types for the Jira MCP bridge.

Errors at the HTTP boundary (authorization flow, stream entry) map to status
codes. Errors raised while a stream is open are reported in-band as tool
result text and never close the channel.
"""
from typing import Optional


class BridgeError(Exception):
    """Base class for all bridge errors."""


class ConfigurationError(BridgeError):
    """OAuth client credentials are not configured."""


class InvalidStateError(BridgeError):
    """OAuth state is unknown, expired, or was already used."""


class AuthenticationFailedError(BridgeError):
    """The authorization attempt failed and must be restarted by the user."""


class AuthExchangeError(AuthenticationFailedError):
    """The identity provider rejected the authorization code exchange."""


class NoAccessibleWorkspaceError(AuthenticationFailedError):
    """The new credential cannot see any Jira site."""


class UnauthorizedSessionError(BridgeError):
    """The session token presented to the stream endpoint is not known."""


class UnknownToolError(BridgeError):
    """A tool call named a tool that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolArgumentError(BridgeError):
    """A tool call is missing a required argument or has a bad value."""


class DownstreamApiError(BridgeError):
    """A Jira or Atlassian API call failed.

    Attributes:
        status: HTTP status code, or None for transport failures and
            malformed responses
        provider_message: Error detail reported by the provider
    """

    def __init__(self, status: Optional[int], provider_message: str):
        super().__init__(provider_message)
        self.status = status
        self.provider_message = provider_message
