"""High-level submission workflow for challenge-gated transactions."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from nuw_client.core.errors import RpcError
from nuw_client.core.settings import settings
from nuw_client.schemas.challenge import (
    NuwChallengeType,
    NuwSolution,
    SolvedChallenge,
    dump_nuw_solution,
)
from nuw_client.services.challenge import ChallengeService
from nuw_client.services.nuw import NuwChallengeService
from nuw_client.services.rpc import RpcClient

logger = logging.getLogger(__name__)

SEND_TRANSACTION_METHOD = "send_transaction"
LEGACY_SOLUTION_FIELD = "challenge"
NUW_SOLUTION_FIELD = "nuw_solution"


def attach_solution(
    params: Mapping[str, Any], solution: SolvedChallenge | NuwSolution
) -> dict[str, Any]:
    """Return a copy of ``params`` carrying ``solution`` in its wire form.

    Legacy solutions travel under ``challenge``; NUW solutions under
    ``nuw_solution``.
    """
    attached = dict(params)
    if isinstance(solution, SolvedChallenge):
        attached[LEGACY_SOLUTION_FIELD] = solution.model_dump(mode="json")
    else:
        attached[NUW_SOLUTION_FIELD] = dump_nuw_solution(solution)
    return attached


class TransactionSubmitter:
    """Sends transactions with a freshly solved challenge attached.

    When the node answers that a challenge is required (for instance because
    the attached one expired in flight), the fetch-solve-resubmit cycle is
    repeated up to ``max_challenge_retries`` times.
    """

    def __init__(
        self,
        rpc: RpcClient,
        challenge_service: ChallengeService | None = None,
        nuw_service: NuwChallengeService | None = None,
        max_challenge_retries: int | None = None,
    ) -> None:
        self._rpc = rpc
        self._challenge_service = challenge_service or ChallengeService(rpc=rpc)
        self._nuw_service = nuw_service
        self._max_challenge_retries = (
            settings.submit_max_challenge_retries
            if max_challenge_retries is None
            else max_challenge_retries
        )

    async def _solve(
        self,
        node_url: str,
        preferred_type: NuwChallengeType | None,
        cancel_event: asyncio.Event | None,
    ) -> SolvedChallenge | NuwSolution:
        if self._nuw_service is not None:
            return await self._nuw_service.get_solved_challenge(
                node_url, preferred_type, cancel_event
            )
        return await self._challenge_service.get_solved_challenge(node_url, cancel_event)

    async def send_transaction(
        self,
        node_url: str,
        params: Mapping[str, Any],
        preferred_type: NuwChallengeType | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Any:
        """Solve a challenge, attach it and submit the transaction.

        Args:
            node_url: Node base URL.
            params: Signed transaction parameters, without a challenge.
            preferred_type: NUW type hint; ignored on the legacy path.
            cancel_event: Optional cancellation signal for the solve step.

        Returns:
            The node's ``send_transaction`` result.

        Raises:
            ChallengeError: If a challenge cannot be fetched or solved.
            RpcError: If the node rejects the transaction.
        """
        attempt = 0
        while True:
            logger.info("Getting challenge from node %s", node_url)
            solution = await self._solve(node_url, preferred_type, cancel_event)
            logger.info("Challenge %s solved, submitting transaction", solution.challenge_id)
            try:
                return await self._rpc.call(
                    node_url, SEND_TRANSACTION_METHOD, attach_solution(params, solution)
                )
            except RpcError as exc:
                if not exc.requires_challenge or attempt >= self._max_challenge_retries:
                    raise
                attempt += 1
                logger.warning(
                    "Node requires a new challenge (retry %d/%d): %s",
                    attempt,
                    self._max_challenge_retries,
                    exc,
                )
