"""Dispatcher tests: discovery, routing, response shape and error kinds."""

import json

import httpx
import pytest

from bitbucket_mcp.errors import InternalToolError, InvalidParamsError, MethodNotFoundError
from bitbucket_mcp.params import ToolName
from bitbucket_mcp.tools import HANDLERS, ToolDispatcher, build_descriptors


def test_discovery_is_idempotent(make_gateway) -> None:
    gateway, _ = make_gateway()
    dispatcher = ToolDispatcher(gateway)

    first = dispatcher.list_tools()
    second = dispatcher.list_tools()

    assert first == second
    assert [d.input_schema for d in first] == [d.input_schema for d in second]


def test_every_handler_has_exactly_one_descriptor() -> None:
    names = [descriptor.name for descriptor in build_descriptors()]

    assert sorted(names) == sorted(tool.value for tool in ToolName)
    assert len(names) == len(set(names))
    assert set(HANDLERS) == set(ToolName)


def test_descriptor_required_fields_exclude_aliased_fields() -> None:
    by_name = {d.name: d for d in build_descriptors()}

    assert by_name["create_pull_request"].required_fields == {"title", "source_branch"}
    assert by_name["get_pull_request"].required_fields == frozenset()
    assert "prId" in by_name["get_diff"].input_schema["properties"]["pull_request_id"]["description"]


def test_descriptor_mentions_default_workspace() -> None:
    descriptor = build_descriptors("acme")[0]

    assert "defaults to acme" in descriptor.input_schema["properties"]["workspace"]["description"]


@pytest.mark.asyncio
async def test_get_pull_request_round_trip(make_gateway) -> None:
    remote = {"id": 42, "title": "Fix bug", "state": "OPEN"}
    gateway, transport = make_gateway(lambda request: httpx.Response(200, json=remote))
    dispatcher = ToolDispatcher(gateway)

    content = await dispatcher.invoke("get_pull_request", {"owner": "acme", "repo": "widgets", "pull_number": 42})

    assert transport.last.method == "GET"
    assert transport.last.url.path == "/2.0/repositories/acme/widgets/pullrequests/42"
    assert len(content) == 1
    assert content[0].type == "text"
    assert content[0].text == json.dumps(remote, indent=2)
    assert json.loads(content[0].text) == remote


@pytest.mark.asyncio
async def test_get_diff_preserves_text_exactly(make_gateway) -> None:
    diff = (
        "diff --git a/src/app.py b/src/app.py\n"
        "index 83db48f..bf269f4 100644\n"
        "--- a/src/app.py\n"
        "+++ b/src/app.py\n"
        "@@ -1,3 +1,3 @@\n"
        '-print("héllo")\n'
        '+print("hello \\"world\\"")\n'
        " \t<tab> & {braces}\n"
    )
    gateway, transport = make_gateway(
        lambda request: httpx.Response(
            200, content=diff.encode("utf-8"), headers={"Content-Type": "text/plain; charset=utf-8"}
        )
    )
    dispatcher = ToolDispatcher(gateway)

    content = await dispatcher.invoke("get_diff", {"workspace": "acme", "repository": "widgets", "prId": 7})

    assert transport.last.url.path == "/2.0/repositories/acme/widgets/pullrequests/7/diff"
    assert transport.last.headers["Accept"] == "text/plain"
    assert content[0].text == diff


@pytest.mark.asyncio
async def test_get_diff_follows_bitbucket_redirect(make_gateway) -> None:
    diff = "diff --git a/README.md b/README.md\n-old\n+new\n"
    redirect_to = "https://api.bitbucket.org/2.0/repositories/acme/widgets/diff/acme/widgets:def456?from_pullrequest_id=7"

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/pullrequests/7/diff"):
            return httpx.Response(302, headers={"Location": redirect_to})
        return httpx.Response(200, text=diff, headers={"Content-Type": "text/plain"})

    gateway, transport = make_gateway(handler)
    dispatcher = ToolDispatcher(gateway)

    content = await dispatcher.invoke("get_diff", {"owner": "acme", "repo": "widgets", "prId": 7})

    assert [r.url.path for r in transport.requests] == [
        "/2.0/repositories/acme/widgets/pullrequests/7/diff",
        "/2.0/repositories/acme/widgets/diff/acme/widgets:def456",
    ]
    assert transport.last.headers["Authorization"] == "Bearer test-token"
    assert content[0].text == diff


@pytest.mark.asyncio
async def test_missing_workspace_surfaces_invalid_params(make_gateway) -> None:
    gateway, transport = make_gateway()
    dispatcher = ToolDispatcher(gateway)

    with pytest.raises(InvalidParamsError, match="workspace"):
        await dispatcher.invoke("get_pull_request", {"repository": "widgets", "prId": 7})

    assert transport.requests == []


@pytest.mark.asyncio
async def test_default_workspace_is_used_when_omitted(make_gateway) -> None:
    gateway, transport = make_gateway(lambda request: httpx.Response(200, json={"id": 7}))
    dispatcher = ToolDispatcher(gateway, default_workspace="acme")

    await dispatcher.invoke("get_pull_request", {"repository": "widgets", "prId": 7})

    assert transport.last.url.path == "/2.0/repositories/acme/widgets/pullrequests/7"


@pytest.mark.asyncio
async def test_unknown_tool_is_method_not_found(make_gateway) -> None:
    gateway, transport = make_gateway()
    dispatcher = ToolDispatcher(gateway)

    with pytest.raises(MethodNotFoundError, match="Unknown tool: list_repositories"):
        await dispatcher.invoke("list_repositories", {})

    assert transport.requests == []


@pytest.mark.asyncio
async def test_remote_404_becomes_internal_error_with_remote_message(make_gateway) -> None:
    gateway, _ = make_gateway(
        lambda request: httpx.Response(404, json={"error": {"message": "Pull request not found"}})
    )
    dispatcher = ToolDispatcher(gateway)

    with pytest.raises(InternalToolError) as exc_info:
        await dispatcher.invoke("get_pull_request", {"owner": "acme", "repo": "widgets", "id": 999})

    assert "Pull request not found" in exc_info.value.message
    assert exc_info.value.message == "Bitbucket API error: Pull request not found"


@pytest.mark.asyncio
async def test_transport_failure_becomes_internal_error(make_gateway) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    gateway, _ = make_gateway(handler)
    dispatcher = ToolDispatcher(gateway)

    with pytest.raises(InternalToolError, match="Name or service not known"):
        await dispatcher.invoke("decline_pull_request", {"owner": "acme", "repo": "widgets", "id": 3})


@pytest.mark.asyncio
async def test_create_pull_request_body(make_gateway) -> None:
    gateway, transport = make_gateway(lambda request: httpx.Response(201, json={"id": 12}))
    dispatcher = ToolDispatcher(gateway)

    await dispatcher.invoke(
        "create_pull_request",
        {
            "owner": "acme",
            "repo": "widgets",
            "title": "Add feature",
            "description": "Details",
            "source_branch": "feature/x",
            "destination_branch": "main",
            "reviewers": ["{uuid-1}", "{uuid-2}"],
        },
    )

    assert transport.last.method == "POST"
    assert transport.last.url.path == "/2.0/repositories/acme/widgets/pullrequests"
    assert transport.last_json() == {
        "title": "Add feature",
        "source": {"branch": {"name": "feature/x"}},
        "description": "Details",
        "destination": {"branch": {"name": "main"}},
        "reviewers": [{"uuid": "{uuid-1}"}, {"uuid": "{uuid-2}"}],
    }


@pytest.mark.asyncio
async def test_merge_pull_request_body(make_gateway) -> None:
    gateway, transport = make_gateway(lambda request: httpx.Response(200, json={"state": "MERGED"}))
    dispatcher = ToolDispatcher(gateway)

    content = await dispatcher.invoke(
        "merge_pull_request",
        {
            "owner": "acme",
            "repo": "widgets",
            "pull_request_id": 5,
            "message": "Merged",
            "close_source_branch": True,
            "merge_strategy": "squash",
        },
    )

    assert transport.last.url.path == "/2.0/repositories/acme/widgets/pullrequests/5/merge"
    assert transport.last_json() == {
        "message": "Merged",
        "close_source_branch": True,
        "merge_strategy": "squash",
    }
    assert json.loads(content[0].text) == {"state": "MERGED"}


@pytest.mark.asyncio
async def test_decline_pull_request_has_no_body(make_gateway) -> None:
    gateway, transport = make_gateway(lambda request: httpx.Response(200, json={"state": "DECLINED"}))
    dispatcher = ToolDispatcher(gateway)

    await dispatcher.invoke("decline_pull_request", {"owner": "acme", "repo": "widgets", "pr_id": 8})

    assert transport.last.method == "POST"
    assert transport.last.url.path == "/2.0/repositories/acme/widgets/pullrequests/8/decline"
    assert transport.last.content == b""


@pytest.mark.asyncio
async def test_add_comment_reply_body(make_gateway) -> None:
    gateway, transport = make_gateway(lambda request: httpx.Response(201, json={"id": 100}))
    dispatcher = ToolDispatcher(gateway)

    await dispatcher.invoke(
        "add_comment",
        {"owner": "acme", "repo": "widgets", "pullRequestId": 4, "content": "Looks good", "parent_id": 77},
    )

    assert transport.last.url.path == "/2.0/repositories/acme/widgets/pullrequests/4/comments"
    assert transport.last_json() == {"content": {"raw": "Looks good"}, "parent": {"id": 77}}


@pytest.mark.asyncio
async def test_add_comment_without_parent_omits_parent(make_gateway) -> None:
    gateway, transport = make_gateway(lambda request: httpx.Response(201, json={"id": 101}))
    dispatcher = ToolDispatcher(gateway)

    await dispatcher.invoke("add_comment", {"owner": "acme", "repo": "widgets", "id": 4, "text": "Nit"})

    assert transport.last_json() == {"content": {"raw": "Nit"}}
