"""Error types raised while fetching and solving challenges."""

from __future__ import annotations

from enum import Enum


class ChallengeErrorCode(str, Enum):
    """Failure kinds shared by the legacy PoW path and the NUW dispatcher.

    Every code is terminal for the current solve attempt; retry policy
    belongs to the caller.
    """

    FETCH_FAILED = "FETCH_FAILED"          # Transport could not obtain a challenge
    EXPIRED = "EXPIRED"                    # Validity window has passed
    INVALID = "INVALID"                    # Malformed challenge or missing payload
    SOLVE_FAILED = "SOLVE_FAILED"          # Attempts exhausted without a solution
    WASM_FAILED = "WASM_FAILED"            # Underlying hash primitive errored
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"  # No solver for this challenge type
    CANCELLED = "CANCELLED"                # Caller signalled cancellation


class ChallengeError(RuntimeError):
    """Raised when a challenge cannot be fetched or solved.

    Verification outcomes (a signature or Merkle proof that does not verify)
    are never reported through this exception; they are ordinary results.
    """

    def __init__(
        self,
        message: str,
        code: ChallengeErrorCode = ChallengeErrorCode.SOLVE_FAILED,
    ) -> None:
        super().__init__(message)
        self.code = code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, code={self.code.value})"


class ChallengeCancelledError(ChallengeError):
    """Raised at a scheduling checkpoint once cancellation was requested."""

    def __init__(self, message: str = "Challenge solving was cancelled") -> None:
        super().__init__(message, ChallengeErrorCode.CANCELLED)


class CryptoUnavailableError(RuntimeError):
    """Raised when a cryptographic primitive is missing in this environment."""


class RpcError(RuntimeError):
    """Failure of a JSON-RPC call.

    Distinguishes network-level failures from application-level rejections and
    carries the node's hint that a solved challenge is required before retrying.
    """

    def __init__(
        self,
        message: str,
        code: int = -1,
        *,
        is_network_error: bool = False,
        requires_challenge: bool = False,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.is_network_error = is_network_error
        self.requires_challenge = requires_challenge
        self.hint = hint
