"""JSON-RPC client for talking to a node.

This module provides the RpcClient class used to fetch challenges and submit
transactions. It includes:

- JSON-RPC 2.0 request framing with correlation ids
- Error classification (network failure vs. node rejection)
- Detection of the node's "challenge required" hint
- Node health checks with latency measurement
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from nuw_client.core.errors import RpcError
from nuw_client.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
JSONRPC_PATH = "/jsonrpc"

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_SERVER_ERROR = 500

# Read-only methods a node serves without a solved challenge.
PUBLIC_METHODS: frozenset[str] = frozenset(
    {
        # Balance and account info
        "get_balance", "eth_getBalance", "getBalance",
        "get_transaction", "eth_getTransactionByHash", "getTransaction",
        "get_transaction_history", "getTransactionHistory",
        "get_account_nonce",
        # Block and chain info
        "get_blocks", "eth_getBlockByNumber", "eth_getBlockByHash",
        "get_block_number", "eth_blockNumber",
        "get_gas_price", "eth_gasPrice",
        "get_chain_id", "eth_chainId",
        "get_network_id", "net_version",
        "get_network_congestion",
        # Staking and governance read-only queries
        "staking_get_validators", "staking_get_user_delegations", "staking_get_rewards",
        "governance_list_proposals", "governance_get_proposal",
        "governance_get_proposal_votes", "governance_get_voting_power",
        # Challenge endpoints themselves
        "get_transaction_challenge", "getTransactionChallenge", "get_nuw_challenge",
        # Health check
        "health",
    }
)


def is_public_method(method: str) -> bool:
    """Return True if ``method`` does not require a solved challenge."""
    return method in PUBLIC_METHODS


def rpc_url_for(node_url: str) -> str:
    """Return the JSON-RPC endpoint for a node base URL."""
    stripped = node_url.rstrip("/")
    return stripped if stripped.endswith(JSONRPC_PATH) else f"{stripped}{JSONRPC_PATH}"


@dataclass(frozen=True)
class NodeHealth:
    """Result of probing a node's ``health`` method."""

    healthy: bool
    latency_ms: int
    error: str | None = None


def _error_from_payload(payload: Mapping[str, Any]) -> RpcError:
    error = payload.get("error")
    if not isinstance(error, Mapping):
        return RpcError(str(error))
    data = error.get("data")
    if not isinstance(data, Mapping):
        data = {}
    code = error.get("code", -1)
    return RpcError(
        str(error.get("message", "Unknown RPC error")),
        code if isinstance(code, int) else -1,
        requires_challenge=data.get("requires_challenge") is True,
        hint=data.get("hint"),
    )


def _error_from_status(response: httpx.Response) -> RpcError:
    status = response.status_code
    reason = response.reason_phrase
    if HTTP_BAD_REQUEST <= status < HTTP_INTERNAL_SERVER_ERROR:
        return RpcError(f"Client error ({status}): {reason or 'Bad request'}", status)
    if status >= HTTP_INTERNAL_SERVER_ERROR:
        return RpcError(f"Server error ({status}): {reason or 'Internal server error'}", status)
    return RpcError(f"HTTP error ({status}): {reason or 'Unknown error'}", status)


class RpcClient:
    """HTTP client wrapper for node JSON-RPC interactions."""

    def __init__(
        self,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds or settings.rpc_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> RpcClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self._timeout_seconds),
                    transport=self._transport,
                    headers={"Accept": "application/json"},
                )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def call(
        self,
        node_url: str,
        method: str,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Invoke a JSON-RPC method and return its ``result``.

        Args:
            node_url: Node base URL; ``/jsonrpc`` is appended when missing.
            method: JSON-RPC method name.
            params: Parameter map sent as-is.
            timeout: Per-call timeout in seconds, overriding the client default.

        Raises:
            RpcError: On network failure, HTTP error, malformed response, or
                an application-level error returned by the node.
        """
        url = rpc_url_for(node_url)
        request_id = next(self._request_ids)
        request = {
            "jsonrpc": JSONRPC_VERSION,
            "method": method,
            "params": dict(params or {}),
            "id": request_id,
        }
        client = await self._ensure_client()
        request_timeout = (
            httpx.Timeout(timeout) if timeout is not None else httpx.USE_CLIENT_DEFAULT
        )

        logger.debug("RPC %s -> %s (id=%d)", method, url, request_id)
        try:
            response = await client.post(url, json=request, timeout=request_timeout)
        except httpx.TimeoutException as exc:
            raise RpcError(f"Request to {url} timed out", 0, is_network_error=True) from exc
        except httpx.TransportError as exc:
            raise RpcError(
                f"Network error: Unable to connect to {url}. "
                "Please check if the node is running.",
                0,
                is_network_error=True,
            ) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= HTTP_BAD_REQUEST:
            # Some nodes send JSON-RPC error bodies with non-2xx statuses.
            if isinstance(payload, Mapping) and payload.get("error"):
                raise _error_from_payload(payload)
            raise _error_from_status(response)

        if not isinstance(payload, Mapping):
            raise RpcError("Empty or non-JSON response from server")

        if payload.get("error"):
            error = _error_from_payload(payload)
            logger.info(
                "RPC %s rejected by node: %s (code=%d, requires_challenge=%s)",
                method,
                error,
                error.code,
                error.requires_challenge,
            )
            raise error

        if "result" not in payload:
            raise RpcError("Response missing result field")

        return payload["result"]

    async def check_node_health(self, node_url: str) -> NodeHealth:
        """Check whether a node answers its ``health`` method."""
        start_time = time.perf_counter()
        try:
            await self.call(node_url, "health", {}, timeout=settings.health_timeout_seconds)
        except RpcError as exc:
            return NodeHealth(
                healthy=False,
                latency_ms=round((time.perf_counter() - start_time) * 1000),
                error=str(exc),
            )
        return NodeHealth(
            healthy=True,
            latency_ms=round((time.perf_counter() - start_time) * 1000),
        )


def get_rpc_client() -> RpcClient:
    """Return a new RPC client instance."""
    return RpcClient()
