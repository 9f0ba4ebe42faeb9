"""Service helpers for fetching and solving transaction challenges.

Flow:
    1. ``get_challenge`` fetches an Argon2id challenge from the node.
    2. ``solve_challenge`` computes the proof-of-work solution.
    3. The solved challenge is attached to the transaction parameters.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from nuw_client.core.errors import ChallengeError, ChallengeErrorCode, RpcError
from nuw_client.core.settings import settings
from nuw_client.schemas.challenge import PowChallenge, SolvedChallenge, parse_pow_challenge
from nuw_client.services.pow import PowSolver, get_pow_solver
from nuw_client.services.rpc import RpcClient, get_rpc_client

logger = logging.getLogger(__name__)

TRANSACTION_CHALLENGE_METHOD = "get_transaction_challenge"

__all__ = ["ChallengeService", "apply_challenge_defaults", "get_challenge_service"]


def apply_challenge_defaults(descriptor: Mapping[str, Any]) -> dict[str, Any]:
    """Fill optional Argon2 parameters the node may omit."""
    filled = dict(descriptor)
    for key, default in (
        ("difficulty", settings.default_difficulty),
        ("memory_cost", settings.default_memory_cost),
        ("time_cost", settings.default_time_cost),
    ):
        if filled.get(key) is None:
            filled[key] = default
    return filled


class ChallengeService:
    """Fetches and solves legacy single-type Argon2id challenges."""

    def __init__(self, rpc: RpcClient | None = None, solver: PowSolver | None = None) -> None:
        self._rpc = rpc or get_rpc_client()
        self._solver = solver or get_pow_solver()

    async def get_challenge(self, node_url: str) -> PowChallenge:
        """Fetch a new challenge from the node.

        Raises:
            ChallengeError: FETCH_FAILED on transport or node errors,
                INVALID if the descriptor is malformed.
        """
        try:
            response = await self._rpc.call(node_url, TRANSACTION_CHALLENGE_METHOD, {})
        except RpcError as exc:
            raise ChallengeError(
                f"Failed to get challenge: {exc}", ChallengeErrorCode.FETCH_FAILED
            ) from exc

        if not isinstance(response, Mapping):
            raise ChallengeError(
                "Challenge response is not an object", ChallengeErrorCode.INVALID
            )
        return parse_pow_challenge(apply_challenge_defaults(response))

    async def solve_challenge(
        self,
        challenge: PowChallenge,
        max_attempts: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> SolvedChallenge:
        """Solve a challenge and package it in the submission shape."""
        result = await self._solver.solve(
            challenge, max_attempts=max_attempts, cancel_event=cancel_event
        )
        return SolvedChallenge(
            challenge_id=challenge.challenge_id,
            solution=result.counter,
            hash=result.digest,
        )

    async def get_solved_challenge(
        self,
        node_url: str,
        cancel_event: asyncio.Event | None = None,
    ) -> SolvedChallenge:
        """Fetch and solve a challenge in one call."""
        challenge = await self.get_challenge(node_url)
        return await self.solve_challenge(challenge, cancel_event=cancel_event)


def get_challenge_service() -> ChallengeService:
    """Return a new challenge service instance."""
    return ChallengeService()
