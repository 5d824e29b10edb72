"""
Pull-request tools: descriptors, handlers and the dispatcher tying them together.

Each handler receives a validated parameter record and issues exactly one call
to the Bitbucket gateway.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional

from loguru import logger
from mcp.types import TextContent, Tool

from bitbucket_mcp.errors import InternalToolError, MethodNotFoundError
from bitbucket_mcp.gateway import BitbucketGateway, GatewayError, GatewayResponse, pull_request_path
from bitbucket_mcp.params import (
    FIELD_ALIASES,
    AddCommentParams,
    CreatePullRequestParams,
    DeclinePullRequestParams,
    GetDiffParams,
    GetPullRequestParams,
    MergePullRequestParams,
    ToolName,
    resolve,
)
from bitbucket_mcp.responses import adapt


@dataclass(frozen=True)
class ToolDescriptor:
    """Static description of a tool, as returned by discovery."""

    name: str
    description: str
    input_schema: dict[str, Any] = field(hash=False)

    @property
    def required_fields(self) -> frozenset[str]:
        return frozenset(self.input_schema.get("required", []))

    def to_mcp_tool(self) -> Tool:
        return Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


def _aliases(logical: str, canonical: str) -> str:
    others = [name for name in FIELD_ALIASES[logical] if name != canonical]
    return f" Also accepted as: {', '.join(others)}." if others else ""


def _schema(default_workspace: Optional[str], with_id: bool, extra: Optional[dict[str, Any]] = None, required: tuple[str, ...] = ()) -> dict[str, Any]:
    default_note = f" (defaults to {default_workspace})" if default_workspace else ""
    properties: dict[str, Any] = {
        "workspace": {
            "type": "string",
            "description": f"Bitbucket workspace/owner{default_note}.{_aliases('workspace', 'workspace')}",
        },
        "repo": {
            "type": "string",
            "description": f"Repository slug.{_aliases('repository', 'repo')}",
        },
    }
    if with_id:
        properties["pull_request_id"] = {
            "type": ["integer", "string"],
            "description": f"Pull request ID.{_aliases('pull_request_id', 'pull_request_id')}",
        }
    properties.update(extra or {})
    return {
        "type": "object",
        "properties": properties,
        "required": list(required),
    }


def build_descriptors(default_workspace: Optional[str] = None) -> tuple[ToolDescriptor, ...]:
    """Describe every tool in `ToolName` order."""
    descriptors = {
        ToolName.GET_PULL_REQUEST: ToolDescriptor(
            name=ToolName.GET_PULL_REQUEST.value,
            description="Get pull request details from Bitbucket Cloud",
            input_schema=_schema(default_workspace, with_id=True),
        ),
        ToolName.GET_DIFF: ToolDescriptor(
            name=ToolName.GET_DIFF.value,
            description="Get pull request diff from Bitbucket Cloud",
            input_schema=_schema(default_workspace, with_id=True),
        ),
        ToolName.CREATE_PULL_REQUEST: ToolDescriptor(
            name=ToolName.CREATE_PULL_REQUEST.value,
            description="Create a new pull request in Bitbucket Cloud",
            input_schema=_schema(
                default_workspace,
                with_id=False,
                extra={
                    "title": {"type": "string", "description": "Pull request title"},
                    "description": {"type": "string", "description": "Pull request description"},
                    "source_branch": {"type": "string", "description": "Branch containing the changes"},
                    "destination_branch": {
                        "type": "string",
                        "description": f"Branch to merge into (defaults to the repository main branch).{_aliases('destination_branch', 'destination_branch')}",
                    },
                    "reviewers": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Reviewer account UUIDs",
                    },
                    "close_source_branch": {
                        "type": "boolean",
                        "description": "Close the source branch once merged",
                    },
                },
                required=("title", "source_branch"),
            ),
        ),
        ToolName.MERGE_PULL_REQUEST: ToolDescriptor(
            name=ToolName.MERGE_PULL_REQUEST.value,
            description="Merge a pull request in Bitbucket Cloud",
            input_schema=_schema(
                default_workspace,
                with_id=True,
                extra={
                    "message": {"type": "string", "description": "Merge commit message"},
                    "close_source_branch": {
                        "type": "boolean",
                        "description": "Close the source branch after merge",
                    },
                    "merge_strategy": {
                        "type": "string",
                        "enum": ["merge_commit", "squash", "fast_forward"],
                        "description": "Merge strategy",
                    },
                },
            ),
        ),
        ToolName.DECLINE_PULL_REQUEST: ToolDescriptor(
            name=ToolName.DECLINE_PULL_REQUEST.value,
            description="Decline a pull request in Bitbucket Cloud",
            input_schema=_schema(default_workspace, with_id=True),
        ),
        ToolName.ADD_COMMENT: ToolDescriptor(
            name=ToolName.ADD_COMMENT.value,
            description="Add a comment to a pull request in Bitbucket Cloud",
            input_schema=_schema(
                default_workspace,
                with_id=True,
                extra={
                    "content": {
                        "type": "string",
                        "description": f"Comment text (markdown).{_aliases('content', 'content')}",
                    },
                    "parent_id": {
                        "type": ["integer", "string"],
                        "description": "ID of the comment to reply to",
                    },
                },
            ),
        ),
    }
    return tuple(descriptors[name] for name in ToolName)


async def get_pull_request(gateway: BitbucketGateway, params: GetPullRequestParams) -> GatewayResponse:
    return await gateway.issue(
        "GET",
        pull_request_path(params.workspace, params.repository, params.pull_request_id),
    )


async def get_diff(gateway: BitbucketGateway, params: GetDiffParams) -> GatewayResponse:
    return await gateway.issue(
        "GET",
        pull_request_path(params.workspace, params.repository, params.pull_request_id, "diff"),
        headers={"Accept": "text/plain"},
        follow_redirects=True,
    )


async def create_pull_request(gateway: BitbucketGateway, params: CreatePullRequestParams) -> GatewayResponse:
    body: dict[str, Any] = {
        "title": params.title,
        "source": {"branch": {"name": params.source_branch}},
    }
    if params.description is not None:
        body["description"] = params.description
    if params.destination_branch:
        body["destination"] = {"branch": {"name": params.destination_branch}}
    if params.reviewers:
        body["reviewers"] = [{"uuid": uuid} for uuid in params.reviewers]
    if params.close_source_branch is not None:
        body["close_source_branch"] = params.close_source_branch

    return await gateway.issue(
        "POST",
        pull_request_path(params.workspace, params.repository),
        body=body,
    )


async def merge_pull_request(gateway: BitbucketGateway, params: MergePullRequestParams) -> GatewayResponse:
    body: dict[str, Any] = {}
    if params.message is not None:
        body["message"] = params.message
    if params.close_source_branch is not None:
        body["close_source_branch"] = params.close_source_branch
    if params.merge_strategy is not None:
        body["merge_strategy"] = params.merge_strategy

    return await gateway.issue(
        "POST",
        pull_request_path(params.workspace, params.repository, params.pull_request_id, "merge"),
        body=body,
    )


async def decline_pull_request(gateway: BitbucketGateway, params: DeclinePullRequestParams) -> GatewayResponse:
    return await gateway.issue(
        "POST",
        pull_request_path(params.workspace, params.repository, params.pull_request_id, "decline"),
    )


async def add_comment(gateway: BitbucketGateway, params: AddCommentParams) -> GatewayResponse:
    body: dict[str, Any] = {"content": {"raw": params.content}}
    if params.parent_id is not None:
        body["parent"] = {"id": params.parent_id}

    return await gateway.issue(
        "POST",
        pull_request_path(params.workspace, params.repository, params.pull_request_id, "comments"),
        body=body,
    )


Handler = Callable[[BitbucketGateway, Any], Awaitable[GatewayResponse]]

HANDLERS: dict[ToolName, Handler] = {
    ToolName.GET_PULL_REQUEST: get_pull_request,
    ToolName.GET_DIFF: get_diff,
    ToolName.CREATE_PULL_REQUEST: create_pull_request,
    ToolName.MERGE_PULL_REQUEST: merge_pull_request,
    ToolName.DECLINE_PULL_REQUEST: decline_pull_request,
    ToolName.ADD_COMMENT: add_comment,
}

_missing = set(ToolName) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"Tools without a handler: {sorted(t.value for t in _missing)}")


class ToolDispatcher:
    """Routes tool calls to their handler through the parameter resolver."""

    def __init__(self, gateway: BitbucketGateway, default_workspace: Optional[str] = None):
        self.gateway = gateway
        self.default_workspace = default_workspace
        self._descriptors = build_descriptors(default_workspace)

    def list_tools(self) -> tuple[ToolDescriptor, ...]:
        return self._descriptors

    async def invoke(self, name: str, raw_args: Optional[Mapping[str, Any]]) -> list[TextContent]:
        """
        Resolve arguments, run the named tool and adapt its result.

        Raises:
            MethodNotFoundError: No tool is registered under `name`.
            InvalidParamsError: Arguments are missing or invalid.
            InternalToolError: The Bitbucket call failed.
        """
        try:
            tool = ToolName(name)
        except ValueError:
            raise MethodNotFoundError(f"Unknown tool: {name}") from None

        tool_log = logger.bind(tool_name=tool.value)
        tool_log.info("Called tool", arguments=dict(raw_args or {}))

        params = resolve(tool, raw_args, self.default_workspace)

        try:
            response = await HANDLERS[tool](self.gateway, params)
        except GatewayError as e:
            tool_log.error(f"Tool execution error: {e.message}")
            raise InternalToolError(f"Bitbucket API error: {e.message}") from e

        return adapt(response.body)
