"""Merkle inclusion proof verification."""

from __future__ import annotations

import asyncio
import hmac
import logging
from collections.abc import Sequence

from nuw_client.core.scheduling import (
    YieldPolicy,
    checkpoint,
    ensure_not_cancelled,
    load_yield_policy,
)
from nuw_client.core.settings import settings
from nuw_client.schemas.challenge import MerkleProofTask, MerkleResult
from nuw_client.utils.hash import HashAlgorithm, get_hash_function

logger = logging.getLogger(__name__)


def verify_merkle_proof(task: MerkleProofTask, hash_algorithm: HashAlgorithm = "sha256") -> bool:
    """Fold a proof path from leaf to root and compare against the expected root.

    Bit ``i`` of ``task.index`` (least significant first) says whether the
    running node is the right operand at level ``i``. An index with bits set
    beyond the proof depth cannot address a leaf and never verifies.

    Returns:
        True iff the folded digest equals ``task.root``. A proof that does not
        verify is a normal ``False`` result, never an exception.
    """
    hash_pair = get_hash_function(hash_algorithm)

    if task.index >> len(task.proof):
        return False

    current = task.leaf
    for level, sibling in enumerate(task.proof):
        is_right = (task.index >> level) & 1
        if is_right:
            current = hash_pair(sibling + current)
        else:
            current = hash_pair(current + sibling)

    return len(current) == len(task.root) and hmac.compare_digest(current, task.root)


class MerkleVerifier:
    """Verifies Merkle proof batches with cooperative yielding."""

    def __init__(
        self,
        hash_algorithm: HashAlgorithm | None = None,
        yield_policy: YieldPolicy | None = None,
    ) -> None:
        self._hash_algorithm: HashAlgorithm = hash_algorithm or settings.merkle_hash_algorithm
        # Raises ValueError for an unsupported algorithm.
        get_hash_function(self._hash_algorithm)
        self._yield_policy = yield_policy or load_yield_policy()

    @property
    def hash_algorithm(self) -> HashAlgorithm:
        return self._hash_algorithm

    def verify(self, task: MerkleProofTask) -> bool:
        """Verify a single proof with this verifier's hash function."""
        return verify_merkle_proof(task, self._hash_algorithm)

    async def verify_batch(
        self,
        tasks: Sequence[MerkleProofTask],
        cancel_event: asyncio.Event | None = None,
    ) -> list[MerkleResult]:
        """Verify every task in order, reporting one result per task."""
        ensure_not_cancelled(cancel_event)

        results: list[MerkleResult] = []
        interval = self._yield_policy.merkle_interval

        for position, task in enumerate(tasks, start=1):
            valid = self.verify(task)
            logger.debug("Merkle proof for index %d valid=%s", task.index, valid)
            results.append(MerkleResult(index=task.index, valid=valid))
            if position % interval == 0:
                await checkpoint(cancel_event)

        return results
