"""
REST variant exposing the pull request fetch behind a plain HTTP route.

Every failure collapses into HTTP 500 with a fixed message; use the MCP
server when the error kind matters.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from loguru import logger

from bitbucket_mcp.gateway import BitbucketGateway, pull_request_path
from bitbucket_mcp.params import coerce_pull_request_id


def create_app(gateway: BitbucketGateway) -> FastAPI:
    """Build the FastAPI app around an existing gateway; the app closes it on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await gateway.aclose()

    app = FastAPI(title="Bitbucket Cloud Pull Requests", lifespan=lifespan)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/api/pullrequests/{workspace}/{repo_slug}/{pull_request_id}")
    async def get_pull_request(workspace: str, repo_slug: str, pull_request_id: str):
        try:
            pr_id = coerce_pull_request_id(pull_request_id)
            response = await gateway.issue("GET", pull_request_path(workspace, repo_slug, pr_id))
        except Exception as e:
            logger.bind(workspace=workspace, repo_slug=repo_slug, pull_request_id=pull_request_id).error(
                f"Failed to fetch pull request: {e}"
            )
            return JSONResponse(status_code=500, content={"error": "Failed to fetch pull request"})
        return JSONResponse(status_code=200, content=response.body)

    return app
