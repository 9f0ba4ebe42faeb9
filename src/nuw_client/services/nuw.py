"""Network Utility Work (NUW) challenge service.

Instead of wasteful proof-of-work, a client may perform computation that is
useful to the network (signature and Merkle proof verification) in exchange
for a fee discount. This module fetches NUW challenges, routes each one to
the matching solver or verifier, and reports which kinds of work this client
can currently take on.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Final

from nuw_client.core.errors import ChallengeError, ChallengeErrorCode, RpcError
from nuw_client.core.settings import settings
from nuw_client.schemas.challenge import (
    Argon2PowChallenge,
    Argon2Solution,
    MerkleVerifyChallenge,
    MerkleVerifySolution,
    NuwChallenge,
    NuwChallengeType,
    NuwSolution,
    SignatureBatchChallenge,
    SignatureBatchSolution,
    ZkResult,
    ZkVerifyChallenge,
    ZkVerifySolution,
    parse_nuw_challenge,
)
from nuw_client.services.crypto import CryptoCapabilities, ZkVerifier, get_crypto_service
from nuw_client.services.merkle import MerkleVerifier
from nuw_client.services.pow import PowSolver, get_pow_solver
from nuw_client.services.rpc import RpcClient, get_rpc_client
from nuw_client.services.signatures import SignatureBatchVerifier

logger = logging.getLogger(__name__)

NUW_CHALLENGE_METHOD: Final[str] = "get_nuw_challenge"

# Fee discount (percent) by usefulness of the work.
NUW_FEE_DISCOUNTS: Final[dict[NuwChallengeType, int]] = {
    NuwChallengeType.ARGON2_POW: 0,  # wasteful work
    NuwChallengeType.SIGNATURE_BATCH: 25,
    NuwChallengeType.MERKLE_VERIFY: 30,
    NuwChallengeType.PQ_ASSIST: 40,
    NuwChallengeType.ZK_VERIFY: 50,  # most valuable
}

_Handler = Callable[..., Awaitable[NuwSolution]]


def fee_discount_for(challenge_type: NuwChallengeType) -> int:
    """Return the fee discount percentage earned by ``challenge_type``."""
    return NUW_FEE_DISCOUNTS[challenge_type]


class NuwChallengeService:
    """Dispatches NUW challenges to the solver or verifier for their type."""

    def __init__(
        self,
        rpc: RpcClient | None = None,
        crypto: CryptoCapabilities | None = None,
        pow_solver: PowSolver | None = None,
        signature_verifier: SignatureBatchVerifier | None = None,
        merkle_verifier: MerkleVerifier | None = None,
        zk_verifier: ZkVerifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rpc = rpc or get_rpc_client()
        self._crypto = crypto or get_crypto_service()
        self._pow_solver = pow_solver or get_pow_solver()
        self._signature_verifier = signature_verifier or SignatureBatchVerifier(self._crypto)
        self._merkle_verifier = merkle_verifier or MerkleVerifier()
        self._zk_verifier = zk_verifier
        self._clock = clock
        self._handlers: dict[NuwChallengeType, _Handler] = {
            NuwChallengeType.ARGON2_POW: self._solve_argon2,
            NuwChallengeType.PQ_ASSIST: self._solve_argon2,
            NuwChallengeType.SIGNATURE_BATCH: self._solve_signature_batch,
            NuwChallengeType.ZK_VERIFY: self._solve_zk_verify,
            NuwChallengeType.MERKLE_VERIFY: self._solve_merkle_verify,
        }

    async def get_challenge(
        self,
        node_url: str,
        preferred_type: NuwChallengeType | None = None,
    ) -> NuwChallenge:
        """Fetch a NUW challenge, optionally asking for a specific type.

        The node decides which type it actually issues.

        Raises:
            ChallengeError: FETCH_FAILED on transport errors, INVALID or
                UNSUPPORTED_TYPE for an unusable descriptor.
        """
        params: dict[str, Any] = {}
        if preferred_type is not None:
            params["preferred_type"] = preferred_type.value

        try:
            response = await self._rpc.call(node_url, NUW_CHALLENGE_METHOD, params)
        except RpcError as exc:
            raise ChallengeError(
                f"Failed to get NUW challenge: {exc}", ChallengeErrorCode.FETCH_FAILED
            ) from exc

        if not isinstance(response, Mapping):
            raise ChallengeError(
                "NUW challenge response is not an object", ChallengeErrorCode.INVALID
            )
        return parse_nuw_challenge(response)

    async def solve_challenge(
        self,
        challenge: NuwChallenge,
        cancel_event: asyncio.Event | None = None,
    ) -> NuwSolution:
        """Solve a NUW challenge with the solver matching its type.

        Raises:
            ChallengeError: EXPIRED, INVALID, UNSUPPORTED_TYPE, or any
                error of the delegated solver.
            ChallengeCancelledError: If ``cancel_event`` is set mid-solve.
        """
        if challenge.is_expired(self._clock()):
            raise ChallengeError("Challenge has expired", ChallengeErrorCode.EXPIRED)

        try:
            handler = self._handlers[NuwChallengeType(challenge.challenge_type)]
        except (ValueError, KeyError):
            raise ChallengeError(
                f"Unsupported challenge type: {challenge.challenge_type}",
                ChallengeErrorCode.UNSUPPORTED_TYPE,
            ) from None

        logger.info(
            "Solving NUW challenge %s of type %s",
            challenge.challenge_id,
            challenge.challenge_type,
        )
        return await handler(challenge, cancel_event)

    async def get_solved_challenge(
        self,
        node_url: str,
        preferred_type: NuwChallengeType | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> NuwSolution:
        """Fetch and solve a NUW challenge in one call."""
        challenge = await self.get_challenge(node_url, preferred_type)
        return await self.solve_challenge(challenge, cancel_event)

    def available_types(self) -> list[NuwChallengeType]:
        """Return the challenge types this client can currently solve."""
        types = [NuwChallengeType.ARGON2_POW]
        if self._crypto.ready:
            types.append(NuwChallengeType.SIGNATURE_BATCH)
            types.append(NuwChallengeType.MERKLE_VERIFY)
        if self._zk_verifier is not None:
            types.append(NuwChallengeType.ZK_VERIFY)
        return types

    def best_available_type(self) -> NuwChallengeType:
        """Return the available type with the largest fee discount."""
        return max(self.available_types(), key=fee_discount_for)

    # ==================== Solvers ====================

    async def _solve_argon2(
        self, challenge: Argon2PowChallenge, cancel_event: asyncio.Event | None
    ) -> Argon2Solution:
        pow_challenge = challenge.to_pow_challenge()
        if pow_challenge is None:
            raise ChallengeError("Missing Argon2 parameters", ChallengeErrorCode.INVALID)

        result = await self._pow_solver.solve(pow_challenge, cancel_event=cancel_event)
        # PQ assistance falls back to PoW, so the work performed is Argon2.
        return Argon2Solution(challenge_id=challenge.challenge_id, argon2_solution=result)

    async def _solve_signature_batch(
        self, challenge: SignatureBatchChallenge, cancel_event: asyncio.Event | None
    ) -> SignatureBatchSolution:
        if not challenge.signature_batch:
            raise ChallengeError("No signatures to verify", ChallengeErrorCode.INVALID)

        results = await self._signature_verifier.verify_batch(
            challenge.signature_batch, cancel_event
        )
        return SignatureBatchSolution(
            challenge_id=challenge.challenge_id, signature_results=tuple(results)
        )

    async def _solve_zk_verify(
        self, challenge: ZkVerifyChallenge, cancel_event: asyncio.Event | None
    ) -> ZkVerifySolution:
        task = challenge.zk_proof
        if task is None:
            raise ChallengeError("No ZK proof to verify", ChallengeErrorCode.INVALID)

        if self._zk_verifier is not None:
            valid = self._zk_verifier.verify(task)
        else:
            # TODO: verify against task.verification_key once a halo2/groth16
            # verifier binding is available; until then the result is not trustworthy.
            valid = settings.zk_placeholder_valid
            logger.warning(
                "ZK verification not implemented, returning placeholder valid=%s for %s",
                valid,
                task.proof_id,
            )
        return ZkVerifySolution(
            challenge_id=challenge.challenge_id,
            zk_result=ZkResult(proof_id=task.proof_id, valid=valid),
        )

    async def _solve_merkle_verify(
        self, challenge: MerkleVerifyChallenge, cancel_event: asyncio.Event | None
    ) -> MerkleVerifySolution:
        if not challenge.merkle_proofs:
            raise ChallengeError("No Merkle proofs to verify", ChallengeErrorCode.INVALID)

        results = await self._merkle_verifier.verify_batch(challenge.merkle_proofs, cancel_event)
        return MerkleVerifySolution(
            challenge_id=challenge.challenge_id, merkle_results=tuple(results)
        )


def get_nuw_service() -> NuwChallengeService:
    """Return a new NUW challenge service instance."""
    return NuwChallengeService()
