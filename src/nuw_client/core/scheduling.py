"""Cooperative scheduling checkpoints for long-running solve loops.

Solving runs on a single asyncio event loop. The PoW search and the batch
verifiers call :func:`checkpoint` at fixed iteration boundaries so the host
loop keeps servicing other work, and so a caller-supplied cancellation event
can stop the loop with a distinct outcome.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from nuw_client.core.errors import ChallengeCancelledError
from nuw_client.core.settings import settings


@dataclass(frozen=True)
class YieldPolicy:
    """Number of iterations between yields for each solving loop."""

    pow_interval: int = 10
    signature_interval: int = 1
    merkle_interval: int = 1

    def __post_init__(self) -> None:
        for name in ("pow_interval", "signature_interval", "merkle_interval"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")


def load_yield_policy() -> YieldPolicy:
    """Build a yield policy from global settings."""

    return YieldPolicy(
        pow_interval=settings.pow_yield_interval,
        signature_interval=settings.signature_yield_interval,
        merkle_interval=settings.merkle_yield_interval,
    )


def ensure_not_cancelled(cancel_event: asyncio.Event | None) -> None:
    """Raise :class:`ChallengeCancelledError` if cancellation was requested."""
    if cancel_event is not None and cancel_event.is_set():
        raise ChallengeCancelledError()


async def checkpoint(cancel_event: asyncio.Event | None = None) -> None:
    """Yield to the event loop, then honour any pending cancellation."""
    await asyncio.sleep(0)
    ensure_not_cancelled(cancel_event)
