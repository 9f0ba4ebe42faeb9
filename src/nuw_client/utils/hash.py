# src/nuw_client/utils/hash.py
"""Hashing helpers for Merkle folding with selectable algorithms."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from typing import Literal

import blake3

HashAlgorithm = Literal["sha256", "blake3"]

HashFunction = Callable[[bytes], bytes]


def sha256_digest(data: bytes) -> bytes:
    """Return the SHA-256 digest of the supplied data."""
    return hashlib.sha256(data).digest()


def blake3_digest(data: bytes) -> bytes:
    """Return the 32-byte BLAKE3 digest of the supplied data."""
    return blake3.blake3(data).digest()


_HASH_FUNCTIONS: dict[str, HashFunction] = {
    "sha256": sha256_digest,
    "blake3": blake3_digest,
}


def get_hash_function(hash_algorithm: HashAlgorithm) -> HashFunction:
    """Return the digest callable for ``hash_algorithm``.

    Raises:
        ValueError: If the algorithm is not supported.
    """
    try:
        return _HASH_FUNCTIONS[hash_algorithm]
    except KeyError:
        raise ValueError(f"Unsupported hash algorithm: {hash_algorithm}") from None
