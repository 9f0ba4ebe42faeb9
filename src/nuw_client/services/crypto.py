# src/nuw_client/services/crypto.py
"""Cryptographic capabilities injected into the verifiers.

Verifiers never reach for ambient primitives directly. They receive an
object satisfying :class:`CryptoCapabilities`; when a primitive is missing
the verifier degrades to ``valid=False`` and the dispatcher advertises fewer
challenge types.
"""

from __future__ import annotations

import logging
from typing import Protocol

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from nuw_client.core.errors import CryptoUnavailableError
from nuw_client.schemas.challenge import ZkProofTask

logger = logging.getLogger(__name__)


class CryptoCapabilities(Protocol):
    """Signature primitives available to the signature and Merkle verifiers."""

    @property
    def ready(self) -> bool:
        """True when signature verification can run in this environment."""
        ...

    def verify_ed25519(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        """Verify an Ed25519 signature; raise CryptoUnavailableError if unsupported."""
        ...


class ZkVerifier(Protocol):
    """Verifies a zero-knowledge proof against its verification key."""

    def verify(self, task: ZkProofTask) -> bool: ...


def _probe_ed25519() -> bool:
    try:
        Ed25519PrivateKey.generate()
    except UnsupportedAlgorithm:
        logger.warning("Ed25519 is not supported by the installed OpenSSL backend")
        return False
    return True


class CryptoService:
    """Default capabilities backed by the ``cryptography`` package."""

    def __init__(self, ed25519_available: bool | None = None) -> None:
        self._ed25519_available = ed25519_available

    @property
    def ready(self) -> bool:
        if self._ed25519_available is None:
            self._ed25519_available = _probe_ed25519()
        return self._ed25519_available

    def verify_ed25519(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        """Verify an Ed25519 signature over raw bytes.

        Args:
            public_key: Raw 32-byte public key.
            message: Exact bytes that were signed.
            signature: Raw 64-byte signature.

        Returns:
            True if the signature is valid; False for a bad signature or malformed key.

        Raises:
            CryptoUnavailableError: If Ed25519 is not available in this environment.
        """
        if not self.ready:
            raise CryptoUnavailableError("Ed25519 verification is unavailable")
        try:
            pubkey = Ed25519PublicKey.from_public_bytes(public_key)
            pubkey.verify(signature, message)
            return True
        except (InvalidSignature, ValueError):
            return False


def get_crypto_service() -> CryptoService:
    """Return a new crypto capability instance."""
    return CryptoService()
