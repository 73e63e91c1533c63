# octra/__init__.py
"""
Octra transaction engine: Ed25519 key handling, canonical transfer signing,
submission to an RPC node and reconciliation of the node's view of an account.
"""

__version__ = "0.1.0"

from octra.core.errors import (  # noqa: E402
    InsufficientBalance,
    InvalidAddress,
    InvalidAmount,
    InvalidKey,
    OctraError,
    ValidationError,
)
from octra.core.types import AccountState, SubmissionResult, TransactionIntent  # noqa: E402
from octra.crypto.keys import KeyMaterial, derive_address, derive_public_key, validate_private_key  # noqa: E402
from octra.chain.session import WalletSession  # noqa: E402
from octra.rpc.client import NodeClient  # noqa: E402
from octra.verify.verifier import TransactionVerifier  # noqa: E402

__all__ = [
    "__version__",
    "AccountState",
    "InsufficientBalance",
    "InvalidAddress",
    "InvalidAmount",
    "InvalidKey",
    "KeyMaterial",
    "NodeClient",
    "OctraError",
    "SubmissionResult",
    "TransactionIntent",
    "TransactionVerifier",
    "ValidationError",
    "WalletSession",
    "derive_address",
    "derive_public_key",
    "validate_private_key",
]
