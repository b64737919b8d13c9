"""MCP tools for multi-space-jira-mcp.

Each tool is a Tool subclass with a static descriptor and an async invoke().
TOOLS is the closed, ordered set served on tools/list; dispatch_tool_call()
resolves a name and turns every failure into an in-band error result, so a
bad call never tears down the stream.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, ClassVar

from errors import BridgeError, ToolArgumentError, UnknownToolError
from jira_client import JiraClient
from oauth.stores import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextContent:
    text: str
    type: str = "text"

    def to_dict(self) -> dict:
        return {"type": self.type, "text": self.text}


@dataclass(frozen=True)
class ToolCallResult:
    content: tuple[TextContent, ...]

    @classmethod
    def text(cls, text: str) -> "ToolCallResult":
        return cls(content=(TextContent(text=text),))

    @classmethod
    def failure(cls, error: Exception) -> "ToolCallResult":
        return cls.text(f"Error: {error}")

    def to_dict(self) -> dict:
        return {"content": [block.to_dict() for block in self.content]}


def escape_jql_string(value: str) -> str:
    """Escape a value for use inside a double-quoted JQL string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_search_jql(query: str, space_keys) -> str:
    """Build a text search restricted to the given project keys."""
    jql = f'text ~ "{escape_jql_string(query)}"'
    if space_keys:
        keys = ", ".join(f'"{escape_jql_string(k)}"' for k in space_keys)
        jql += f" AND project in ({keys})"
    return jql + " ORDER BY created DESC"


def adf_paragraph(text: str) -> dict:
    """Wrap plain text in an Atlassian Document Format document."""
    return {
        "type": "doc",
        "version": 1,
        "content": [{
            "type": "paragraph",
            "content": [{"type": "text", "text": text}],
        }],
    }


def _require(arguments: dict, name: str) -> Any:
    value = arguments.get(name)
    if value is None or value == "":
        raise ToolArgumentError(f"Missing required argument: {name}")
    return value


class Tool:
    """Base class for a tool exposed over MCP."""

    name: ClassVar[str]
    description: ClassVar[str]
    input_schema: ClassVar[dict]

    def descriptor(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    async def invoke(self, session: Session, arguments: dict, jira: JiraClient) -> ToolCallResult:
        raise NotImplementedError


class SearchIssuesAcrossSpaces(Tool):
    name = "search_issues_across_spaces"
    description = "Search issues in all accessible Jira spaces"
    input_schema = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Search text"},
            "maxResults": {"type": "number", "default": 20},
        },
        "required": ["query"],
    }

    async def invoke(self, session, arguments, jira):
        query = str(_require(arguments, "query"))
        try:
            max_results = int(arguments.get("maxResults") or 20)
        except (TypeError, ValueError):
            raise ToolArgumentError("maxResults must be a number")
        if max_results < 1:
            raise ToolArgumentError("maxResults must be at least 1")

        data = await jira.call(session, "/search/jql", params={
            "jql": build_search_jql(query, session.space_keys),
            "maxResults": max_results,
            "fields": "summary,status,project",
        })

        issues = []
        for issue in (data or {}).get("issues", []):
            fields = issue.get("fields") or {}
            issues.append({
                "key": issue.get("key"),
                "summary": fields.get("summary"),
                "status": (fields.get("status") or {}).get("name"),
                "project": (fields.get("project") or {}).get("key"),
                "url": f"{session.base_url}/browse/{issue.get('key')}",
            })

        if not issues:
            return ToolCallResult.text("No issues found matching your search.")
        listing = json.dumps(issues, indent=2, ensure_ascii=False)
        return ToolCallResult.text(f"Found {len(issues)} issues:\n\n{listing}")


class CreateIssue(Tool):
    name = "create_issue"
    description = "Create a new issue"
    input_schema = {
        "type": "object",
        "properties": {
            "projectKey": {"type": "string"},
            "summary": {"type": "string"},
            "description": {"type": "string"},
            "issueType": {"type": "string", "default": "Task"},
        },
        "required": ["projectKey", "summary"],
    }

    async def invoke(self, session, arguments, jira):
        payload = {
            "fields": {
                "project": {"key": _require(arguments, "projectKey")},
                "summary": _require(arguments, "summary"),
                "description": adf_paragraph(arguments.get("description") or ""),
                "issuetype": {"name": arguments.get("issueType") or "Task"},
            }
        }
        data = await jira.call(session, "/issue", method="POST", json=payload)
        key = (data or {}).get("key")
        logger.info(f"[TOOL] create_issue created {key}")
        return ToolCallResult.text(f"Created issue: {key}\nURL: {session.base_url}/browse/{key}")


class ListSpaces(Tool):
    name = "list_spaces"
    description = "List all accessible spaces"
    input_schema = {"type": "object", "properties": {}}

    async def invoke(self, session, arguments, jira):
        return ToolCallResult.text(f"Accessible spaces: {', '.join(session.space_keys)}")


TOOLS: tuple[Tool, ...] = (
    SearchIssuesAcrossSpaces(),
    CreateIssue(),
    ListSpaces(),
)

TOOLS_BY_NAME: dict[str, Tool] = {tool.name: tool for tool in TOOLS}


def list_tool_descriptors() -> list[dict]:
    return [tool.descriptor() for tool in TOOLS]


async def dispatch_tool_call(
    name: str,
    arguments: dict,
    session: Session,
    jira: JiraClient,
) -> ToolCallResult:
    """Run a tool call and return its result.

    Errors are reported inside the result rather than raised.
    """
    logger.info(f"[TOOL] {name} invoked")
    try:
        tool = TOOLS_BY_NAME.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return await tool.invoke(session, arguments or {}, jira)
    except BridgeError as e:
        logger.info(f"[TOOL] {name} failed: {e}")
        return ToolCallResult.failure(e)
    except Exception as e:
        logger.exception(f"[TOOL] {name} raised unexpectedly")
        return ToolCallResult.failure(e)
