"""
Parameter resolution for pull-request tools.

Tool callers spell the same field several ways (`owner` vs `workspace`,
`pull_number` vs `prId` vs `pull_request_id`, ...). The resolver folds every
accepted spelling into one canonical name using `FIELD_ALIASES`, fills the
workspace from the configured default, and validates the result into a typed
record per tool.
"""

from enum import Enum
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bitbucket_mcp.errors import InvalidParamsError

# Logical field -> accepted argument names, highest priority first.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "workspace": ("owner", "workspace"),
    "repository": ("repo", "repository", "repo_slug"),
    "pull_request_id": ("pull_number", "prId", "pull_request_id", "pullRequestId", "pr_id", "id"),
    "destination_branch": ("destination_branch", "target_branch"),
    "content": ("content", "text", "comment"),
}

FIELD_LABELS = {
    "workspace": "workspace/owner",
    "repository": "repository slug (repo)",
    "pull_request_id": "pull request ID",
}


class ToolName(str, Enum):
    GET_PULL_REQUEST = "get_pull_request"
    GET_DIFF = "get_diff"
    CREATE_PULL_REQUEST = "create_pull_request"
    MERGE_PULL_REQUEST = "merge_pull_request"
    DECLINE_PULL_REQUEST = "decline_pull_request"
    ADD_COMMENT = "add_comment"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (int, float)):
        return value == 0
    return False


def pick_alias(raw_args: Mapping[str, Any], field: str) -> Any:
    """Return the first non-blank value among the aliases of `field`, or None."""
    for name in FIELD_ALIASES[field]:
        value = raw_args.get(name)
        if not _is_blank(value):
            return value
    return None


def coerce_pull_request_id(value: Any) -> int:
    """Accept positive integers and integral strings; reject everything else."""
    if isinstance(value, bool):
        raise InvalidParamsError("Pull request ID must be a positive integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdecimal():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise InvalidParamsError("Pull request ID must be a positive integer")
    return value


class PullRequestRef(BaseModel):
    """Workspace and repository every pull-request tool operates on."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    workspace: str = Field(min_length=1)
    repository: str = Field(min_length=1)


class PullRequestTarget(PullRequestRef):
    pull_request_id: int = Field(gt=0)


class GetPullRequestParams(PullRequestTarget):
    pass


class GetDiffParams(PullRequestTarget):
    pass


class DeclinePullRequestParams(PullRequestTarget):
    pass


class CreatePullRequestParams(PullRequestRef):
    title: str = Field(min_length=1)
    source_branch: str = Field(min_length=1)
    description: Optional[str] = None
    destination_branch: Optional[str] = None
    reviewers: list[str] = Field(default_factory=list)
    close_source_branch: Optional[bool] = None

    @field_validator("reviewers", mode="before")
    @classmethod
    def split_reviewers(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


class MergePullRequestParams(PullRequestTarget):
    message: Optional[str] = None
    close_source_branch: Optional[bool] = None
    merge_strategy: Optional[Literal["merge_commit", "squash", "fast_forward"]] = None


class AddCommentParams(PullRequestTarget):
    content: str = Field(min_length=1)
    parent_id: Optional[int] = Field(default=None, gt=0)


TOOL_PARAMS: dict[ToolName, type[PullRequestRef]] = {
    ToolName.GET_PULL_REQUEST: GetPullRequestParams,
    ToolName.GET_DIFF: GetDiffParams,
    ToolName.CREATE_PULL_REQUEST: CreatePullRequestParams,
    ToolName.MERGE_PULL_REQUEST: MergePullRequestParams,
    ToolName.DECLINE_PULL_REQUEST: DeclinePullRequestParams,
    ToolName.ADD_COMMENT: AddCommentParams,
}


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "arguments"
    label = FIELD_LABELS.get(field, field)
    if first["type"] == "missing":
        return f"{label} must be provided"
    return f"Invalid {label}: {first['msg']}"


def resolve(
    tool_name: Union[ToolName, str],
    raw_args: Optional[Mapping[str, Any]],
    default_workspace: Optional[str] = None,
) -> PullRequestRef:
    """
    Build the typed parameter record for `tool_name` from a raw argument bag.

    Raises:
        InvalidParamsError: A required field is missing or invalid.
        ValueError: `tool_name` is not a known tool.
    """
    model = TOOL_PARAMS[ToolName(tool_name)]
    raw_args = raw_args or {}
    values = dict(raw_args)

    workspace = pick_alias(raw_args, "workspace") or default_workspace
    if _is_blank(workspace):
        raise InvalidParamsError(
            "workspace/owner required: provide it as a parameter or set BITBUCKET_WORKSPACE"
        )
    if not isinstance(workspace, str):
        raise InvalidParamsError("Invalid workspace/owner: must be a string")

    repository = pick_alias(raw_args, "repository")
    if repository is None:
        raise InvalidParamsError("Repository slug (repo) must be provided")
    if not isinstance(repository, str):
        raise InvalidParamsError("Invalid repository slug (repo): must be a string")

    values["workspace"] = workspace.strip()
    values["repository"] = repository.strip()

    if issubclass(model, PullRequestTarget):
        pull_request_id = pick_alias(raw_args, "pull_request_id")
        if pull_request_id is None:
            raise InvalidParamsError("Pull request ID (pull_request_id) must be provided")
        values["pull_request_id"] = coerce_pull_request_id(pull_request_id)

    for field in ("destination_branch", "content"):
        if field in model.model_fields:
            values[field] = pick_alias(raw_args, field)
            if values[field] is None:
                del values[field]

    try:
        return model.model_validate(values)
    except ValidationError as e:
        raise InvalidParamsError(_validation_message(e)) from e
