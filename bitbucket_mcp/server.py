"""
Bitbucket MCP Server - Pull Request Operations

This MCP server provides tools for working with Bitbucket Cloud pull requests:
fetching details and diffs, creating, merging and declining pull requests,
and commenting on them.
"""

from typing import Optional

import httpx
from loguru import logger
from mcp import types
from mcp.server import Server
from mcp.types import Tool

from bitbucket_mcp.config import Settings
from bitbucket_mcp.errors import ToolError
from bitbucket_mcp.gateway import BitbucketGateway
from bitbucket_mcp.tools import ToolDispatcher

SERVER_NAME = "bitbucket-cloud-mcp-server"


class BitbucketPullRequestServer:
    """MCP Server for Bitbucket pull request operations."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the Bitbucket pull request server."""
        self.settings = settings
        self.server = Server(SERVER_NAME)
        self.gateway = BitbucketGateway.from_settings(settings, transport=transport)
        self.dispatcher = ToolDispatcher(self.gateway, settings.bitbucket_workspace)

        # Register handlers
        self._register_handlers()

    def _register_handlers(self):
        """Register MCP handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """List available tools."""
            return [descriptor.to_mcp_tool() for descriptor in self.dispatcher.list_tools()]

        async def call_tool(req: types.CallToolRequest) -> types.ServerResult:
            """Handle tool calls; tool errors propagate as JSON-RPC errors with their code."""
            name = req.params.name
            try:
                content = await self.dispatcher.invoke(name, req.params.arguments)
            except ToolError as e:
                raise e.to_mcp_error() from e
            except Exception:
                logger.bind(tool_name=name).exception("Unexpected error while handling tool call")
                raise
            return types.ServerResult(types.CallToolResult(content=content, isError=False))

        # Registered directly so McpError reaches the session with its error code.
        self.server.request_handlers[types.CallToolRequest] = call_tool

    async def run(self):
        """Run the MCP server."""
        from mcp.server.stdio import stdio_server

        logger.info("Bitbucket Cloud MCP server running on stdio")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )

    async def cleanup(self):
        """Clean up resources."""
        await self.gateway.aclose()
