# src/nuw_client/services/__init__.py
"""Solvers, verifiers and node-facing services for the NUW client."""

from .challenge import ChallengeService
from .crypto import CryptoService
from .merkle import MerkleVerifier
from .nuw import NuwChallengeService
from .pow import PowSolver
from .rpc import RpcClient
from .signatures import SignatureBatchVerifier
from .transaction import TransactionSubmitter

__all__ = [
    "ChallengeService",
    "CryptoService",
    "MerkleVerifier",
    "NuwChallengeService",
    "PowSolver",
    "RpcClient",
    "SignatureBatchVerifier",
    "TransactionSubmitter",
]
