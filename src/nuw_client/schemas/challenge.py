"""Schemas for challenge descriptors, work items and solutions.

Byte fields travel as hex strings on the wire and are decoded to ``bytes``
at parse time. Every model is frozen: a challenge received from the node is
never mutated, and each solve attempt works from the original data.
"""
from __future__ import annotations

import time
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    TypeAdapter,
    ValidationError,
)

from nuw_client.core.errors import ChallengeError, ChallengeErrorCode
from nuw_client.core.pow import MAX_TARGET_BITS
from nuw_client.utils.codec import bytes_to_hex, hex_to_bytes


def _decode_hex_field(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return hex_to_bytes(value)
    return value


HexBytes = Annotated[
    bytes,
    BeforeValidator(_decode_hex_field),
    PlainSerializer(bytes_to_hex, return_type=str, when_used="json"),
]

SignatureAlgorithm = Literal["ed25519", "dilithium2"]


class NuwChallengeType(str, Enum):
    """Kinds of work a node may request.

    ARGON2_POW is wasteful but always available; the others offload real
    validator work and earn fee discounts.
    """

    ARGON2_POW = "argon2_pow"
    SIGNATURE_BATCH = "signature_batch"
    ZK_VERIFY = "zk_verify"
    PQ_ASSIST = "pq_assist"
    MERKLE_VERIFY = "merkle_verify"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Challenge(_FrozenModel):
    """Fields common to every challenge descriptor."""

    challenge_id: str = Field(..., min_length=1, description="Opaque id, unique per issuance.")
    expires_at: float = Field(..., description="Absolute expiry as unix seconds.")

    def is_expired(self, now: float | None = None) -> bool:
        """Return True once ``now`` has reached ``expires_at``."""
        current = time.time() if now is None else now
        return current >= self.expires_at


class Argon2Params(_FrozenModel):
    """Argon2id puzzle parameters."""

    nonce: HexBytes = Field(..., description="Server salt; must decode to 32 bytes.")
    difficulty: int = Field(..., ge=0, le=MAX_TARGET_BITS)
    memory_cost: int = Field(..., description="Argon2 memory in KiB.")
    time_cost: int = Field(..., description="Argon2 iterations.")


class PowChallenge(Challenge, Argon2Params):
    """Argon2id proof-of-work challenge (legacy transaction challenge)."""

    instructions: str = "Solve Argon2id PoW challenge"


class PendingSignature(_FrozenModel):
    """A pending transaction signature to verify."""

    tx_id: str
    message: HexBytes
    signature: HexBytes
    public_key: HexBytes
    algorithm: SignatureAlgorithm


class ZkProofTask(_FrozenModel):
    """A zero-knowledge proof awaiting verification."""

    proof_id: str
    proof_type: str = Field(..., description="Proof system, e.g. 'halo2' or 'groth16'.")
    proof: HexBytes
    public_inputs: tuple[HexBytes, ...] = ()
    verification_key: HexBytes


class MerkleProofTask(_FrozenModel):
    """A Merkle inclusion proof for a single leaf."""

    root: HexBytes
    leaf: HexBytes
    proof: tuple[HexBytes, ...] = Field(..., description="Sibling digests, bottom-to-top.")
    index: int = Field(..., ge=0, description="Leaf position; bit i picks the side at level i.")


class _NuwChallengeBase(Challenge):
    fee_discount_percent: int = Field(
        default=0, ge=0, description="Server-defined discount; informational only."
    )


class Argon2PowChallenge(_NuwChallengeBase):
    """NUW challenge asking for plain Argon2id proof-of-work."""

    challenge_type: Literal["argon2_pow"] = "argon2_pow"
    argon2_params: Argon2Params | None = None

    def to_pow_challenge(self) -> PowChallenge | None:
        """Return the embedded parameters as a standalone PoW challenge."""
        if self.argon2_params is None:
            return None
        return PowChallenge(
            challenge_id=self.challenge_id,
            expires_at=self.expires_at,
            **self.argon2_params.model_dump(),
        )


class PqAssistChallenge(Argon2PowChallenge):
    """NUW challenge for post-quantum assistance, solved as Argon2id PoW."""

    challenge_type: Literal["pq_assist"] = "pq_assist"  # type: ignore[assignment]


class SignatureBatchChallenge(_NuwChallengeBase):
    """NUW challenge asking for a batch of signature verifications."""

    challenge_type: Literal["signature_batch"] = "signature_batch"
    signature_batch: tuple[PendingSignature, ...] | None = None


class ZkVerifyChallenge(_NuwChallengeBase):
    """NUW challenge asking for a zero-knowledge proof verification."""

    challenge_type: Literal["zk_verify"] = "zk_verify"
    zk_proof: ZkProofTask | None = None


class MerkleVerifyChallenge(_NuwChallengeBase):
    """NUW challenge asking for Merkle proof verifications."""

    challenge_type: Literal["merkle_verify"] = "merkle_verify"
    merkle_proofs: tuple[MerkleProofTask, ...] | None = None


NuwChallenge = Annotated[
    Union[
        Argon2PowChallenge,
        PqAssistChallenge,
        SignatureBatchChallenge,
        ZkVerifyChallenge,
        MerkleVerifyChallenge,
    ],
    Field(discriminator="challenge_type"),
]


class PowResult(_FrozenModel):
    """A counter whose Argon2id digest meets the difficulty."""

    counter: str = Field(..., description="Hex of the 64-bit big-endian counter.")
    digest: str = Field(..., description="Hex of the 32-byte Argon2id output.")


class SolvedChallenge(_FrozenModel):
    """Legacy solved-challenge payload attached to transactions."""

    challenge_id: str
    solution: str
    hash: str


class SignatureResult(_FrozenModel):
    tx_id: str
    valid: bool


class ZkResult(_FrozenModel):
    proof_id: str
    valid: bool


class MerkleResult(_FrozenModel):
    index: int
    valid: bool


class Argon2Solution(_FrozenModel):
    challenge_id: str
    challenge_type: Literal["argon2_pow"] = "argon2_pow"
    argon2_solution: PowResult


class SignatureBatchSolution(_FrozenModel):
    challenge_id: str
    challenge_type: Literal["signature_batch"] = "signature_batch"
    signature_results: tuple[SignatureResult, ...]


class ZkVerifySolution(_FrozenModel):
    challenge_id: str
    challenge_type: Literal["zk_verify"] = "zk_verify"
    zk_result: ZkResult


class MerkleVerifySolution(_FrozenModel):
    challenge_id: str
    challenge_type: Literal["merkle_verify"] = "merkle_verify"
    merkle_results: tuple[MerkleResult, ...]


NuwSolution = Annotated[
    Union[Argon2Solution, SignatureBatchSolution, ZkVerifySolution, MerkleVerifySolution],
    Field(discriminator="challenge_type"),
]

_NUW_CHALLENGE_ADAPTER: TypeAdapter[NuwChallenge] = TypeAdapter(NuwChallenge)
_NUW_SOLUTION_ADAPTER: TypeAdapter[NuwSolution] = TypeAdapter(NuwSolution)


def parse_pow_challenge(data: Mapping[str, Any]) -> PowChallenge:
    """Validate a legacy challenge descriptor.

    Raises:
        ChallengeError: With code INVALID if the descriptor is malformed.
    """
    try:
        return PowChallenge.model_validate(dict(data))
    except ValidationError as err:
        raise ChallengeError(
            f"Malformed challenge descriptor: {err.error_count()} error(s)",
            ChallengeErrorCode.INVALID,
        ) from err


def parse_nuw_challenge(data: Mapping[str, Any]) -> NuwChallenge:
    """Validate a NUW challenge descriptor into its tagged variant.

    Raises:
        ChallengeError: UNSUPPORTED_TYPE for an unknown ``challenge_type``,
            INVALID for any other structural problem.
    """
    challenge_type = data.get("challenge_type")
    if challenge_type is None:
        raise ChallengeError(
            "Challenge descriptor has no challenge_type", ChallengeErrorCode.INVALID
        )
    try:
        NuwChallengeType(challenge_type)
    except ValueError:
        raise ChallengeError(
            f"Unsupported challenge type: {challenge_type}",
            ChallengeErrorCode.UNSUPPORTED_TYPE,
        ) from None

    try:
        return _NUW_CHALLENGE_ADAPTER.validate_python(dict(data))
    except ValidationError as err:
        raise ChallengeError(
            f"Malformed NUW challenge descriptor: {err.error_count()} error(s)",
            ChallengeErrorCode.INVALID,
        ) from err


def dump_nuw_solution(solution: NuwSolution) -> dict[str, Any]:
    """Return the JSON-ready wire form of a NUW solution."""
    return _NUW_SOLUTION_ADAPTER.dump_python(solution, mode="json")
