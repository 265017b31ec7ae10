"""Tests for the callable, in-memory and HTTP tree adapters."""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from blocksync.adapters import (
    CallableTreeAdapter,
    HTTPTreeAdapter,
    InMemoryTreeAdapter,
    create_callable_adapter,
)
from blocksync.adapters.callable import to_input_node
from blocksync.models import BlockPayload, TreeNode


class TestCallableAdapter:
    """Tests for the function-backed adapter."""

    def test_get_children_converts_nodes(self):
        """Test raw nodes become TreeNodes with text defaulted."""
        get_tree = MagicMock(return_value=[
            {"uid": "a", "text": "Task", "children": [{"uid": "b"}]},
        ])
        adapter = create_callable_adapter(get_tree, AsyncMock(), AsyncMock(), AsyncMock())

        nodes = adapter.get_children("page")

        get_tree.assert_called_once_with("page")
        assert nodes == [TreeNode(text="Task", uid="a", children=[TreeNode(text="", uid="b")])]

    @pytest.mark.asyncio
    async def test_create_block_passes_input_node(self):
        """Test create forwards parent, order and converted payload."""
        create = AsyncMock(return_value="new-uid")
        adapter = create_callable_adapter(MagicMock(), create, AsyncMock(), AsyncMock())
        payload = BlockPayload(text="Task", children=[BlockPayload(text="p:: 1")])

        uid = await adapter.create_block("page", payload)

        assert uid == "new-uid"
        create.assert_awaited_once_with(
            parent_uid="page",
            order="last",
            node={"text": "Task", "children": [{"text": "p:: 1", "children": None}]},
        )

    @pytest.mark.asyncio
    async def test_update_and_delete(self):
        """Test update and delete are forwarded."""
        update = AsyncMock()
        delete = AsyncMock()
        adapter = CallableTreeAdapter(MagicMock(), AsyncMock(), update, delete)

        await adapter.update_block("u1", "new text")
        await adapter.delete_block("u2")

        update.assert_awaited_once_with(uid="u1", text="new text")
        delete.assert_awaited_once_with("u2")

    @pytest.mark.asyncio
    async def test_sync_functions_are_accepted(self):
        """Test plain functions work as mutation callables."""
        calls = []
        adapter = CallableTreeAdapter(
            lambda uid: [],
            lambda **kwargs: calls.append(kwargs) or "sync-uid",
            lambda **kwargs: calls.append(kwargs),
            lambda uid: calls.append(uid),
        )

        assert await adapter.create_block("page", BlockPayload(text="x")) == "sync-uid"
        await adapter.delete_block("gone")

        assert calls[-1] == "gone"

    def test_to_input_node_without_children(self):
        """Test missing children stay None."""
        assert to_input_node(BlockPayload(text="x")) == {"text": "x", "children": None}


class TestInMemoryAdapter:
    """Tests for the in-memory tree."""

    @pytest.mark.asyncio
    async def test_create_and_read(self):
        """Test created blocks are returned by get_children."""
        adapter = InMemoryTreeAdapter()

        uid = await adapter.create_block(
            "page", BlockPayload(text="Task", children=[BlockPayload(text="p:: 1")])
        )
        nodes = adapter.get_children("page")

        assert nodes[0].uid == uid
        assert nodes[0].children[0].text == "p:: 1"
        assert adapter.get_children(uid)[0].text == "p:: 1"
        assert [op.kind for op in adapter.operations] == ["create"]

    @pytest.mark.asyncio
    async def test_create_respects_order(self):
        """Test an integer order inserts at that position."""
        adapter = InMemoryTreeAdapter()
        adapter.seed("page", [TreeNode(text="a", uid="a"), TreeNode(text="b", uid="b")])

        await adapter.create_block("page", BlockPayload(text="first"), 0)

        assert [n["text"] for n in adapter.snapshot("page")] == ["first", "a", "b"]

    @pytest.mark.asyncio
    async def test_update_nested_block(self):
        """Test updating a child changes only its text."""
        adapter = InMemoryTreeAdapter()
        adapter.seed("page", [
            TreeNode(text="a", uid="a", children=[TreeNode(text="p:: 1", uid="c")]),
        ])

        await adapter.update_block("c", "p:: 2")

        assert adapter.snapshot("page")[0]["children"][0]["text"] == "p:: 2"

    @pytest.mark.asyncio
    async def test_delete_removes_descendants(self):
        """Test deleting a block forgets its children too."""
        adapter = InMemoryTreeAdapter()
        adapter.seed("page", [
            TreeNode(text="a", uid="a", children=[TreeNode(text="c", uid="c")]),
        ])

        await adapter.delete_block("a")

        assert adapter.get_children("page") == []
        with pytest.raises(KeyError):
            await adapter.update_block("c", "orphan")

    def test_reads_are_copies(self):
        """Test mutating a returned node doesn't change the store."""
        adapter = InMemoryTreeAdapter()
        adapter.seed("page", [TreeNode(text="a", uid="a")])

        adapter.get_children("page")[0].text = "changed"

        assert adapter.get_children("page")[0].text == "a"

    def test_unknown_parent_is_empty(self):
        """Test an unseeded parent reads as empty."""
        assert InMemoryTreeAdapter().get_children("nowhere") == []

    @pytest.mark.asyncio
    async def test_unknown_uid_raises(self):
        """Test mutations on unknown blocks fail loudly."""
        with pytest.raises(KeyError):
            await InMemoryTreeAdapter().delete_block("missing")


def make_http_adapter(handler, **kwargs) -> HTTPTreeAdapter:
    return HTTPTreeAdapter(
        "http://blocks.test/api/",
        transport=httpx.MockTransport(handler),
        backoff_seconds=0,
        **kwargs,
    )


class TestHTTPAdapter:
    """Tests for the REST adapter."""

    def test_strips_trailing_slash(self):
        """Test base URL normalisation."""
        assert HTTPTreeAdapter("http://blocks.test/api/").base_url == "http://blocks.test/api"

    @pytest.mark.asyncio
    async def test_get_children(self):
        """Test children are fetched and converted."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"children": [
                {"uid": "a", "text": "Task", "children": [{"uid": "b", "text": "p:: 1"}]},
            ]})

        async with make_http_adapter(handler, token="secret") as adapter:
            nodes = await adapter.get_children("page")

        assert requests[0].method == "GET"
        assert requests[0].url.path == "/api/blocks/page/children"
        assert requests[0].headers["Authorization"] == "Bearer secret"
        assert nodes[0].children[0].uid == "b"

    @pytest.mark.asyncio
    async def test_create_block(self):
        """Test create posts the payload and returns the new uid."""
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"uid": "new-1"})

        async with make_http_adapter(handler) as adapter:
            uid = await adapter.create_block("page", BlockPayload(text="Task"))

        assert uid == "new-1"
        assert bodies == [{"order": "last", "block": {"text": "Task"}}]

    @pytest.mark.asyncio
    async def test_update_and_delete(self):
        """Test update patches text and delete issues DELETE."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path, request.content))
            return httpx.Response(204)

        async with make_http_adapter(handler) as adapter:
            await adapter.update_block("u1", "new")
            await adapter.delete_block("u2")

        assert seen[0][:2] == ("PATCH", "/api/blocks/u1")
        assert json.loads(seen[0][2]) == {"text": "new"}
        assert seen[1][:2] == ("DELETE", "/api/blocks/u2")

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        """Test 5xx responses are retried for idempotent requests."""
        responses = iter([httpx.Response(503), httpx.Response(204)])

        async with make_http_adapter(lambda request: next(responses)) as adapter:
            await adapter.delete_block("u1")

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        """Test the final server error is raised."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        async with make_http_adapter(handler, max_retries=2) as adapter:
            with pytest.raises(httpx.HTTPStatusError):
                await adapter.update_block("u1", "x")

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_create_is_not_retried(self):
        """Test a failed create is raised without a second attempt."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(502)

        async with make_http_adapter(handler) as adapter:
            with pytest.raises(httpx.HTTPStatusError):
                await adapter.create_block("page", BlockPayload(text="x"))

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self):
        """Test 4xx responses fail immediately."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        async with make_http_adapter(handler) as adapter:
            with pytest.raises(httpx.HTTPStatusError):
                await adapter.delete_block("missing")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_connection_errors(self):
        """Test connection failures are retried then re-raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_http_adapter(handler, max_retries=3) as adapter:
            with patch("blocksync.adapters.http.asyncio.sleep", new=AsyncMock()) as sleep:
                with pytest.raises(httpx.ConnectError):
                    await adapter.get_children("page")

        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_health_check(self):
        """Test health check reports status and swallows transport errors."""
        async with make_http_adapter(lambda request: httpx.Response(200)) as adapter:
            assert await adapter.health_check() is True

        def broken(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_http_adapter(broken) as adapter:
            assert await adapter.health_check() is False
