"""
HTTP gateway to the Bitbucket Cloud REST API.

Wraps a single httpx.AsyncClient carrying the base URL and bearer token.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx
from loguru import logger

from bitbucket_mcp.config import Settings

JSONBody = Union[dict[str, Any], list[Any]]


class GatewayError(Exception):
    """Base error for failed Bitbucket calls."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BitbucketAPIError(GatewayError):
    """Bitbucket answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message)


class BitbucketTransportError(GatewayError):
    """The request never produced a response (DNS, connection reset, timeout)."""


@dataclass(frozen=True)
class GatewayResponse:
    """Status and decoded body of a successful call."""

    status: int
    body: Union[JSONBody, str]


def pull_request_path(workspace: str, repository: str, pull_request_id: Optional[int] = None, *suffix: str) -> str:
    """Build `/repositories/{workspace}/{repo}/pullrequests[/{id}[/suffix...]]`."""
    path = f"/repositories/{workspace}/{repository}/pullrequests"
    if pull_request_id is not None:
        path += f"/{pull_request_id}"
    for part in suffix:
        path += f"/{part}"
    return path


def extract_error_message(response: httpx.Response) -> str:
    """Return Bitbucket's `{"error": {"message"}}` text, or a generic status message."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])

    return f"Request failed with status code {response.status_code}"


def _decode_body(response: httpx.Response) -> Union[JSONBody, str]:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type and response.content:
        return response.json()
    return response.text


class BitbucketGateway:
    """Reusable client for Bitbucket Cloud API calls."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        client_kwargs: dict[str, Any] = {
            "base_url": base_url,
            "headers": {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        }
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        if transport is not None:
            client_kwargs["transport"] = transport

        self.client = httpx.AsyncClient(**client_kwargs)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "BitbucketGateway":
        return cls(
            base_url=settings.bitbucket_api_url,
            token=settings.bitbucket_token,
            timeout=settings.bitbucket_timeout,
            transport=transport,
        )

    async def issue(
        self,
        method: str,
        path: str,
        body: Optional[JSONBody] = None,
        headers: Optional[dict[str, str]] = None,
        follow_redirects: bool = False,
    ) -> GatewayResponse:
        """
        Send one request and decode the response.

        JSON responses are decoded into Python objects; anything else (diffs,
        empty bodies) is returned as text, untouched. With `follow_redirects`
        the final response of the redirect chain is decoded.

        Raises:
            BitbucketAPIError: Bitbucket responded with a non-2xx status.
            BitbucketTransportError: No response was received.
        """
        log = logger.bind(method=method, path=path)
        log.debug("Calling Bitbucket API")

        try:
            response = await self.client.request(
                method, path, json=body, headers=headers, follow_redirects=follow_redirects
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = extract_error_message(e.response)
            log.warning(f"Bitbucket API returned {e.response.status_code}: {message}")
            raise BitbucketAPIError(message, e.response.status_code) from e
        except httpx.HTTPError as e:
            message = str(e) or e.__class__.__name__
            log.warning(f"Bitbucket API request failed: {message}")
            raise BitbucketTransportError(message) from e

        return GatewayResponse(status=response.status_code, body=_decode_body(response))

    async def aclose(self) -> None:
        await self.client.aclose()
