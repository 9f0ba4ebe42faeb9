"""Tests for the JSON-RPC client."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from nuw_client.core.errors import RpcError
from nuw_client.services.rpc import RpcClient, is_public_method, rpc_url_for
from tests.conftest import NODE_URL, rpc_error


class TestRpcUrl:
    def test_appends_jsonrpc_path(self) -> None:
        assert rpc_url_for("http://node:8545") == "http://node:8545/jsonrpc"
        assert rpc_url_for("http://node:8545/") == "http://node:8545/jsonrpc"

    def test_keeps_existing_path(self) -> None:
        assert rpc_url_for("http://node:8545/jsonrpc") == "http://node:8545/jsonrpc"


class TestPublicMethods:
    def test_read_only_methods_are_public(self) -> None:
        assert is_public_method("get_balance")
        assert is_public_method("get_transaction_challenge")
        assert is_public_method("get_nuw_challenge")

    def test_state_changing_methods_are_not(self) -> None:
        assert not is_public_method("send_transaction")


class TestRpcClientCall:
    """Test request framing and error classification."""

    @pytest.mark.asyncio
    async def test_returns_result_with_incrementing_ids(
        self, make_rpc: Callable[..., RpcClient]
    ) -> None:
        calls: list[dict[str, Any]] = []

        def handler(method: str, params: dict[str, Any]) -> Any:
            return {"echo": params}

        rpc = make_rpc(handler, calls)

        async with rpc:
            first = await rpc.call(NODE_URL, "get_balance", {"address": "0xabc"})
            second = await rpc.call(NODE_URL + "/", "get_balance")

        assert first == {"echo": {"address": "0xabc"}}
        assert second == {"echo": {}}
        assert [c["id"] for c in calls] == [1, 2]
        assert all(c["jsonrpc"] == "2.0" for c in calls)

    @pytest.mark.asyncio
    async def test_posts_to_jsonrpc_endpoint(self) -> None:
        seen: list[httpx.Request] = []

        def respond(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"jsonrpc": "2.0", "result": True, "id": 1})

        async with RpcClient(transport=httpx.MockTransport(respond)) as rpc:
            assert await rpc.call(NODE_URL, "health") is True

        assert seen[0].method == "POST"
        assert seen[0].url.path == "/jsonrpc"

    @pytest.mark.asyncio
    async def test_requires_challenge_hint(self, make_rpc: Callable[..., RpcClient]) -> None:
        rpc = make_rpc(
            lambda method, params: rpc_error(
                -32001,
                "Challenge required",
                requires_challenge=True,
                hint="call get_transaction_challenge",
            )
        )

        async with rpc:
            with pytest.raises(RpcError) as exc_info:
                await rpc.call(NODE_URL, "send_transaction", {})

        error = exc_info.value
        assert error.code == -32001
        assert error.requires_challenge is True
        assert error.hint == "call get_transaction_challenge"
        assert error.is_network_error is False

    @pytest.mark.asyncio
    async def test_plain_error_has_no_hint(self, make_rpc: Callable[..., RpcClient]) -> None:
        rpc = make_rpc(lambda method, params: rpc_error(-32602, "Invalid params"))

        async with rpc:
            with pytest.raises(RpcError) as exc_info:
                await rpc.call(NODE_URL, "send_transaction", {})

        assert str(exc_info.value) == "Invalid params"
        assert exc_info.value.requires_challenge is False

    @pytest.mark.asyncio
    async def test_server_error_status(self, make_rpc: Callable[..., RpcClient]) -> None:
        rpc = make_rpc(lambda method, params: httpx.Response(503, text="busy"))

        async with rpc:
            with pytest.raises(RpcError) as exc_info:
                await rpc.call(NODE_URL, "get_balance")

        assert exc_info.value.code == 503
        assert str(exc_info.value).startswith("Server error (503)")

    @pytest.mark.asyncio
    async def test_client_error_status(self, make_rpc: Callable[..., RpcClient]) -> None:
        rpc = make_rpc(lambda method, params: httpx.Response(404))

        async with rpc:
            with pytest.raises(RpcError) as exc_info:
                await rpc.call(NODE_URL, "get_balance")

        assert str(exc_info.value).startswith("Client error (404)")

    @pytest.mark.asyncio
    async def test_error_body_on_error_status(self, make_rpc: Callable[..., RpcClient]) -> None:
        body = {"jsonrpc": "2.0", "error": {"code": -32000, "message": "Rate limited"}, "id": 1}
        rpc = make_rpc(lambda method, params: httpx.Response(429, json=body))

        async with rpc:
            with pytest.raises(RpcError) as exc_info:
                await rpc.call(NODE_URL, "get_balance")

        assert str(exc_info.value) == "Rate limited"
        assert exc_info.value.code == -32000

    @pytest.mark.asyncio
    async def test_connection_failure_is_network_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with RpcClient(transport=httpx.MockTransport(refuse)) as rpc:
            with pytest.raises(RpcError) as exc_info:
                await rpc.call(NODE_URL, "get_balance")

        assert exc_info.value.is_network_error is True
        assert "Unable to connect" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self) -> None:
        def stall(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        async with RpcClient(transport=httpx.MockTransport(stall)) as rpc:
            with pytest.raises(RpcError) as exc_info:
                await rpc.call(NODE_URL, "get_balance")

        assert exc_info.value.is_network_error is True
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_result_field(self) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1})

        async with RpcClient(transport=httpx.MockTransport(respond)) as rpc:
            with pytest.raises(RpcError, match="missing result"):
                await rpc.call(NODE_URL, "get_balance")

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        async with RpcClient(transport=httpx.MockTransport(respond)) as rpc:
            with pytest.raises(RpcError, match="non-JSON"):
                await rpc.call(NODE_URL, "get_balance")


class TestNodeHealth:
    @pytest.mark.asyncio
    async def test_healthy_node(self, make_rpc: Callable[..., RpcClient]) -> None:
        rpc = make_rpc(lambda method, params: {"status": "ok"})

        async with rpc:
            health = await rpc.check_node_health(NODE_URL)

        assert health.healthy is True
        assert health.latency_ms >= 0
        assert health.error is None

    @pytest.mark.asyncio
    async def test_unreachable_node(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with RpcClient(transport=httpx.MockTransport(refuse)) as rpc:
            health = await rpc.check_node_health(NODE_URL)

        assert health.healthy is False
        assert "Unable to connect" in (health.error or "")
