"""Batch verification of pending transaction signatures.

This is useful work for the network: every signature a client checks is one
a validator does not have to check before admitting the transaction.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from nuw_client.core.errors import ChallengeError, ChallengeErrorCode, CryptoUnavailableError
from nuw_client.core.scheduling import (
    YieldPolicy,
    checkpoint,
    ensure_not_cancelled,
    load_yield_policy,
)
from nuw_client.schemas.challenge import PendingSignature, SignatureResult
from nuw_client.services.crypto import CryptoCapabilities, get_crypto_service

logger = logging.getLogger(__name__)


class SignatureBatchVerifier:
    """Verifies each signature independently; one bad item never aborts the batch."""

    def __init__(
        self,
        crypto: CryptoCapabilities | None = None,
        yield_policy: YieldPolicy | None = None,
    ) -> None:
        self._crypto = crypto or get_crypto_service()
        self._yield_policy = yield_policy or load_yield_policy()

    def verify_item(self, item: PendingSignature) -> bool:
        """Return the validity of one pending signature.

        Unsupported algorithms and unavailable primitives yield False.
        """
        if item.algorithm == "ed25519":
            try:
                return self._crypto.verify_ed25519(item.public_key, item.message, item.signature)
            except CryptoUnavailableError as exc:
                logger.warning("Ed25519 unavailable, marking %s invalid: %s", item.tx_id, exc)
                return False

        # dilithium2 needs a post-quantum backend this client does not ship.
        logger.warning(
            "%s verification is not supported, marking %s invalid", item.algorithm, item.tx_id
        )
        return False

    async def verify_batch(
        self,
        items: Sequence[PendingSignature],
        cancel_event: asyncio.Event | None = None,
    ) -> list[SignatureResult]:
        """Verify a batch of pending signatures.

        Args:
            items: Signatures to check, in the order the node listed them.
            cancel_event: Optional event checked at every yield point.

        Returns:
            One ``{tx_id, valid}`` result per item, in input order.

        Raises:
            ChallengeError: INVALID if ``items`` is empty.
            ChallengeCancelledError: If ``cancel_event`` is set before or during the batch.
        """
        if not items:
            raise ChallengeError("No signatures to verify", ChallengeErrorCode.INVALID)

        ensure_not_cancelled(cancel_event)

        results: list[SignatureResult] = []
        interval = self._yield_policy.signature_interval

        for position, item in enumerate(items, start=1):
            try:
                valid = self.verify_item(item)
            except Exception as exc:
                logger.warning("Verification of %s failed, marking invalid: %s", item.tx_id, exc)
                valid = False
            logger.debug("Signature for %s valid=%s", item.tx_id, valid)
            results.append(SignatureResult(tx_id=item.tx_id, valid=valid))
            if position % interval == 0:
                await checkpoint(cancel_event)

        return results
