"""Tool error types raised by the dispatcher.

Each error carries the JSON-RPC code the MCP server reports for it.
"""

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData


class ToolError(Exception):
    """Base class for failures surfaced to the tool caller."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_mcp_error(self) -> McpError:
        return McpError(ErrorData(code=self.code, message=self.message))


class InvalidParamsError(ToolError):
    """A required argument is missing or fails validation."""

    code = INVALID_PARAMS


class MethodNotFoundError(ToolError):
    """No handler is registered under the requested tool name."""

    code = METHOD_NOT_FOUND


class InternalToolError(ToolError):
    """The Bitbucket call failed (transport error or non-2xx status)."""

    code = INTERNAL_ERROR
