"""Proof-of-Work helpers.

This module holds the pure pieces of the Argon2id puzzle: the memory-hard
hash of a counter under a server salt and the leading-zero-bit acceptance
test. The search loop itself lives in :mod:`nuw_client.services.pow`.
"""
from __future__ import annotations

from argon2.exceptions import HashingError
from argon2.low_level import ARGON2_VERSION, Type, hash_secret_raw

from nuw_client.utils.codec import encode_counter

ARGON2_DIGEST_BYTES = 32
ARGON2_PARALLELISM = 1
SALT_SIZE_BYTES = 32
MAX_TARGET_BITS = 256
BITS_PER_BYTE = 8

# Errors the argon2 binding raises for parameters it cannot execute.
ARGON2_PRIMITIVE_ERRORS: tuple[type[Exception], ...] = (HashingError, OverflowError)


def argon2id_digest(counter: int, salt: bytes, memory_cost: int, time_cost: int) -> bytes:
    """Hash a PoW counter with Argon2id.

    Args:
        counter: Candidate counter, encoded as a 64-bit big-endian password.
        salt: Server-issued nonce used as the Argon2 salt.
        memory_cost: Memory in KiB.
        time_cost: Number of iterations.

    Returns:
        The 32-byte raw Argon2id output.

    Raises:
        argon2.exceptions.HashingError: If the parameters are rejected by the primitive.
    """
    return hash_secret_raw(
        secret=encode_counter(counter),
        salt=salt,
        time_cost=time_cost,
        memory_cost=memory_cost,
        parallelism=ARGON2_PARALLELISM,
        hash_len=ARGON2_DIGEST_BYTES,
        type=Type.ID,
        version=ARGON2_VERSION,
    )


def has_required_zero_bits(digest: bytes, required_bits: int) -> bool:
    """Return True if ``digest`` starts with at least ``required_bits`` zero bits.

    A remainder byte past the end of the digest cannot be inspected and is
    treated as satisfied.
    """
    if required_bits < 0:
        raise ValueError("required_bits must be non-negative")

    full_bytes, remainder_bits = divmod(required_bits, BITS_PER_BYTE)
    if full_bytes > len(digest):
        return False
    if any(digest[:full_bytes]):
        return False

    if remainder_bits > 0 and full_bytes < len(digest):
        mask = (0xFF << (BITS_PER_BYTE - remainder_bits)) & 0xFF
        if digest[full_bytes] & mask:
            return False

    return True


def count_leading_zero_bits(digest: bytes) -> int:
    """Count the number of leading zero bits in a digest."""
    zeros = 0
    for byte in digest:
        if byte == 0:
            zeros += BITS_PER_BYTE
            continue
        # Count bits in first non-zero byte
        for bit in range(7, -1, -1):
            if (byte >> bit) & 1 == 0:
                zeros += 1
            else:
                break
        break
    return zeros


def validate_solution(
    salt: bytes,
    counter: int,
    difficulty: int,
    memory_cost: int,
    time_cost: int,
    expected_digest: bytes | None = None,
) -> bool:
    """Recompute a single Argon2id hash and check it against ``difficulty``.

    Args:
        salt: Challenge nonce (32 bytes).
        counter: Counter proposed by the solver.
        difficulty: Required leading zero bits.
        memory_cost: Argon2 memory in KiB.
        time_cost: Argon2 iterations.
        expected_digest: When given, the recomputed digest must also equal it.

    Returns:
        True if the counter solves the puzzle; False otherwise, including for
        out-of-range inputs.
    """
    if len(salt) != SALT_SIZE_BYTES:
        return False
    if not (0 <= difficulty <= MAX_TARGET_BITS):
        return False
    try:
        digest = argon2id_digest(counter, salt, memory_cost, time_cost)
    except ARGON2_PRIMITIVE_ERRORS:
        return False
    if expected_digest is not None and digest != expected_digest:
        return False
    return has_required_zero_bits(digest, difficulty)
