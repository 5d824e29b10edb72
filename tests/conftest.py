"""Shared fixtures: a gateway backed by httpx.MockTransport that records requests."""

import json
from typing import Any, Callable, Optional

import httpx
import pytest

from bitbucket_mcp.gateway import BitbucketGateway

BASE_URL = "https://api.bitbucket.org/2.0"


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("BITBUCKET_TOKEN", "BITBUCKET_WORKSPACE", "BITBUCKET_API_URL", "BITBUCKET_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_gateway():
    """Build (gateway, transport) answering every request with `handler`."""

    def factory(
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> tuple[BitbucketGateway, RecordingTransport]:
        transport = RecordingTransport(handler or (lambda request: httpx.Response(200, json={})))
        gateway = BitbucketGateway(base_url=BASE_URL, token="test-token", transport=transport)
        return gateway, transport

    return factory
