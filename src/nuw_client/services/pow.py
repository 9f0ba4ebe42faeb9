"""Argon2id proof-of-work solver."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from nuw_client.core import pow as core_pow
from nuw_client.core.errors import ChallengeError, ChallengeErrorCode
from nuw_client.core.scheduling import YieldPolicy, checkpoint, load_yield_policy
from nuw_client.core.settings import settings
from nuw_client.schemas.challenge import Argon2Params, PowChallenge, PowResult
from nuw_client.utils.codec import bytes_to_hex, decode_counter, encode_counter, hex_to_bytes

logger = logging.getLogger(__name__)


class PowSolver:
    """Brute-force search for an Argon2id counter meeting a difficulty.

    The search is sequential: each attempt hashes the next 64-bit counter
    with the challenge nonce as salt. Memory hardness keeps specialised
    hardware from gaining much over a general-purpose CPU.
    """

    def __init__(
        self,
        max_attempts: int | None = None,
        yield_policy: YieldPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._max_attempts = (
            settings.pow_max_attempts if max_attempts is None else max_attempts
        )
        self._yield_policy = yield_policy or load_yield_policy()
        self._clock = clock

    @property
    def max_attempts(self) -> int:
        """Default attempt bound applied when ``solve`` receives none."""
        return self._max_attempts

    def _ensure_live(self, challenge: PowChallenge) -> None:
        if challenge.is_expired(self._clock()):
            raise ChallengeError("Challenge has expired", ChallengeErrorCode.EXPIRED)

    async def solve(
        self,
        challenge: PowChallenge,
        max_attempts: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PowResult:
        """Find a counter whose Argon2id digest has ``difficulty`` leading zero bits.

        Args:
            challenge: The challenge to solve; never modified.
            max_attempts: Upper bound on hash evaluations (defaults to the solver's).
            cancel_event: Optional event checked at every yield point.

        Returns:
            The winning counter and digest, both hex encoded.

        Raises:
            ChallengeError: EXPIRED, INVALID, WASM_FAILED or SOLVE_FAILED.
            ChallengeCancelledError: If ``cancel_event`` is set during the search.
        """
        self._ensure_live(challenge)

        if len(challenge.nonce) != core_pow.SALT_SIZE_BYTES:
            raise ChallengeError("Invalid nonce length", ChallengeErrorCode.INVALID)

        attempts = self._max_attempts if max_attempts is None else max_attempts
        interval = self._yield_policy.pow_interval
        logger.info(
            "Solving challenge %s: difficulty=%d memory_cost=%d time_cost=%d",
            challenge.challenge_id,
            challenge.difficulty,
            challenge.memory_cost,
            challenge.time_cost,
        )

        for counter in range(attempts):
            if counter % interval == 0:
                await checkpoint(cancel_event)
                self._ensure_live(challenge)

            try:
                digest = core_pow.argon2id_digest(
                    counter, challenge.nonce, challenge.memory_cost, challenge.time_cost
                )
            except core_pow.ARGON2_PRIMITIVE_ERRORS as exc:
                logger.error("Argon2 computation failed for %s: %s", challenge.challenge_id, exc)
                raise ChallengeError(
                    f"Argon2 computation failed: {exc}", ChallengeErrorCode.WASM_FAILED
                ) from exc

            if core_pow.has_required_zero_bits(digest, challenge.difficulty):
                logger.info(
                    "Solved challenge %s after %d attempt(s)", challenge.challenge_id, counter + 1
                )
                return PowResult(
                    counter=bytes_to_hex(encode_counter(counter)),
                    digest=bytes_to_hex(digest),
                )

        logger.info("Challenge %s unsolved after %d attempts", challenge.challenge_id, attempts)
        raise ChallengeError(
            f"Failed to solve challenge after {attempts} attempts",
            ChallengeErrorCode.SOLVE_FAILED,
        )


def verify_pow_result(params: Argon2Params, result: PowResult) -> bool:
    """Recompute the digest for ``result`` and check it against ``params``."""
    try:
        counter = decode_counter(result.counter)
        expected_digest = hex_to_bytes(result.digest)
    except ValueError:
        return False
    return core_pow.validate_solution(
        params.nonce,
        counter,
        params.difficulty,
        params.memory_cost,
        params.time_cost,
        expected_digest=expected_digest,
    )


def get_pow_solver() -> PowSolver:
    """Return a new proof-of-work solver instance."""
    return PowSolver()
