# tests/conftest.py
from __future__ import annotations

import json
import secrets
import time
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from nacl.signing import SigningKey

from nuw_client.core.scheduling import YieldPolicy
from nuw_client.schemas.challenge import PendingSignature, PowChallenge
from nuw_client.services.crypto import CryptoService
from nuw_client.services.rpc import RpcClient

NODE_URL = "http://node.test"

# Cheapest Argon2 parameters libargon2 accepts; keeps searches fast in tests.
FAST_MEMORY_COST = 8
FAST_TIME_COST = 1

RpcHandler = Callable[[str, dict[str, Any]], Any]


def make_pow_challenge(
    difficulty: int = 2,
    *,
    nonce: bytes | None = None,
    memory_cost: int = FAST_MEMORY_COST,
    time_cost: int = FAST_TIME_COST,
    expires_in: float = 300,
    challenge_id: str = "pow-challenge-1",
) -> PowChallenge:
    return PowChallenge(
        challenge_id=challenge_id,
        expires_at=int(time.time() + expires_in),
        nonce=nonce if nonce is not None else b"\x11" * 32,
        difficulty=difficulty,
        memory_cost=memory_cost,
        time_cost=time_cost,
    )


def sign_item(key: SigningKey, tx_id: str, message: bytes) -> PendingSignature:
    return PendingSignature(
        tx_id=tx_id,
        message=message,
        signature=key.sign(message).signature,
        public_key=bytes(key.verify_key),
        algorithm="ed25519",
    )


def rpc_transport(
    handler: RpcHandler, calls: list[dict[str, Any]] | None = None
) -> httpx.MockTransport:
    """Build a mock node answering JSON-RPC requests through ``handler``.

    ``handler`` receives the method name and params and returns the result.
    Returning an ``httpx.Response`` sends it verbatim instead.
    """

    def _respond(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if calls is not None:
            calls.append(body)
        outcome = handler(body["method"], body["params"])
        if isinstance(outcome, httpx.Response):
            return outcome
        return httpx.Response(200, json={"jsonrpc": "2.0", "result": outcome, "id": body["id"]})

    return httpx.MockTransport(_respond)


def rpc_error(code: int, message: str, **data: Any) -> httpx.Response:
    error: dict[str, Any] = {"code": code, "message": message}
    if data:
        error["data"] = data
    return httpx.Response(200, json={"jsonrpc": "2.0", "error": error, "id": 1})


@pytest.fixture()
def signing_key() -> SigningKey:
    return SigningKey.generate()


@pytest.fixture()
def yield_policy() -> YieldPolicy:
    return YieldPolicy(pow_interval=10, signature_interval=1, merkle_interval=1)


@pytest.fixture()
def crypto() -> CryptoService:
    return CryptoService(ed25519_available=True)


@pytest.fixture()
def random_nonce() -> bytes:
    return secrets.token_bytes(32)


@pytest.fixture()
def make_rpc() -> Callable[..., RpcClient]:
    def _make(handler: RpcHandler, calls: list[dict[str, Any]] | None = None) -> RpcClient:
        return RpcClient(timeout_seconds=5.0, transport=rpc_transport(handler, calls))

    return _make
