"""
Main entry points for Bitbucket Pull Request MCP Server.
"""

import asyncio
import sys

from bitbucket_mcp.config import Settings
from bitbucket_mcp.logging_config import setup_logging
from bitbucket_mcp.server import BitbucketPullRequestServer


def load_settings() -> Settings:
    """Load settings and configure logging, exiting with status 1 on bad configuration."""
    try:
        settings = Settings()
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        log_level=settings.log_level,
        structured=settings.log_structured,
        log_file=settings.log_file,
    )
    return settings


async def main():
    """Run the Bitbucket MCP server over stdio."""
    settings = load_settings()

    try:
        server = BitbucketPullRequestServer(settings)

        try:
            await server.run()
        finally:
            await server.cleanup()

    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        sys.exit(1)


def run():
    asyncio.run(main())


def run_api():
    """Serve the REST variant with uvicorn."""
    import uvicorn

    from bitbucket_mcp.api import create_app
    from bitbucket_mcp.gateway import BitbucketGateway

    settings = load_settings()
    app = create_app(BitbucketGateway.from_settings(settings))
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    run()
