# octra/crypto/keys.py
"""
Ed25519 key material for one wallet session.

Secrets are supplied as base64 and decode to either a 32-byte seed or a
64-byte libsodium secret key (seed followed by public key). Both forms sign
with the seed; the public key is always re-derived from it.
"""
import hmac
import logging

import nacl.signing

from octra.core.canon import canonical_json
from octra.core.encoding import b64_decode, b64_encode
from octra.core.errors import InvalidKey
from octra.core.types import SignedTransaction, UnsignedTransaction
from octra.crypto.hashing import address_from_public_key

logger = logging.getLogger(__name__)

SEED_LEN = 32
SECRET_KEY_LEN = 64


def _decode_secret(secret_b64: str) -> bytes:
    if not isinstance(secret_b64, str) or not secret_b64.strip():
        raise InvalidKey("empty key")
    try:
        raw = b64_decode(secret_b64)
    except ValueError:
        raise InvalidKey("undecodable")
    if len(raw) not in (SEED_LEN, SECRET_KEY_LEN):
        raise InvalidKey("bad length")
    return raw


def validate_private_key(secret_b64: str) -> bool:
    """Returns True for a decodable 32/64-byte secret, raises InvalidKey otherwise."""
    _decode_secret(secret_b64)
    return True


class KeyMaterial:
    """
    Decoded signing key plus derived public key and address.

    The seed lives in a mutable buffer so discard() can overwrite it.
    Signing is a pure function of message + seed, so one instance may be
    shared by concurrent tasks.
    """

    def __init__(self, seed: bytes):
        if len(seed) != SEED_LEN:
            raise InvalidKey("bad length")
        self._seed = bytearray(seed)
        self._public_key = bytes(nacl.signing.SigningKey(bytes(seed)).verify_key)
        self._address = address_from_public_key(self._public_key)
        self._discarded = False

    @classmethod
    def from_secret_b64(cls, secret_b64: str) -> "KeyMaterial":
        raw = _decode_secret(secret_b64)
        keys = cls(raw[:SEED_LEN])
        if len(raw) == SECRET_KEY_LEN and not hmac.compare_digest(raw[SEED_LEN:], keys.public_key_bytes):
            logger.warning(
                "Embedded public key in 64-byte secret does not match the seed; "
                "using the key derived from the seed for %s", keys.address
            )
        return keys

    @classmethod
    def generate(cls) -> "KeyMaterial":
        return cls(bytes(nacl.signing.SigningKey.generate()))

    # ── accessors

    def _check_alive(self) -> None:
        if self._discarded:
            raise InvalidKey("key material discarded")

    @property
    def address(self) -> str:
        self._check_alive()
        return self._address

    @property
    def public_key_bytes(self) -> bytes:
        self._check_alive()
        return self._public_key

    def public_key_b64(self) -> str:
        return b64_encode(self.public_key_bytes)

    def secret_b64(self) -> str:
        """Export the 32-byte seed as base64 (for backing up a generated key)."""
        self._check_alive()
        return b64_encode(bytes(self._seed))

    # ── signing

    def sign_bytes(self, message: bytes) -> bytes:
        self._check_alive()
        return nacl.signing.SigningKey(bytes(self._seed)).sign(message).signature

    def sign_transaction(self, tx: UnsignedTransaction) -> SignedTransaction:
        """Detached-sign the canonical bytes and attach signature + public key."""
        signature = self.sign_bytes(canonical_json(tx))
        return SignedTransaction(
            tx=tx,
            signature=b64_encode(signature),
            public_key=self.public_key_b64(),
        )

    # ── lifecycle

    def discard(self) -> None:
        """Overwrite the seed. Every later use raises InvalidKey."""
        for i in range(len(self._seed)):
            self._seed[i] = 0
        self._discarded = True

    @property
    def discarded(self) -> bool:
        return self._discarded

    def __repr__(self) -> str:
        state = "discarded" if self._discarded else self._address
        return f"KeyMaterial({state})"


def derive_public_key(secret_b64: str) -> str:
    """Base64 public key for a base64 secret."""
    return KeyMaterial.from_secret_b64(secret_b64).public_key_b64()


def derive_address(secret_b64: str) -> str:
    """Octra address for a base64 secret."""
    return KeyMaterial.from_secret_b64(secret_b64).address


def sign_transaction(secret_b64: str, tx: UnsignedTransaction) -> SignedTransaction:
    keys = KeyMaterial.from_secret_b64(secret_b64)
    try:
        return keys.sign_transaction(tx)
    finally:
        keys.discard()
