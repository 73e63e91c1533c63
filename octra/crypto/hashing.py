# octra/crypto/hashing.py
import hashlib

from octra.core.canon import canonical_json
from octra.core.encoding import ADDRESS_PREFIX, b58_encode_fixed
from octra.core.types import UnsignedTransaction


def address_from_public_key(public_key: bytes) -> str:
    """oct + Base58(SHA256(pubkey))"""
    if len(public_key) != 32:
        raise ValueError(f"Ed25519 public key must be 32 bytes, got {len(public_key)}")
    return ADDRESS_PREFIX + b58_encode_fixed(hashlib.sha256(public_key).digest())


def transaction_digest(tx: UnsignedTransaction) -> str:
    """Local hex digest of the signed bytes. Useful for journaling before the node answers."""
    return hashlib.sha256(canonical_json(tx)).hexdigest()
