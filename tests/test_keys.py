# tests/test_keys.py
import base64
import hashlib
import logging
import re

import base58
import pytest

from octra.core.errors import InvalidKey
from octra.crypto.keys import (
    KeyMaterial,
    derive_address,
    derive_public_key,
    sign_transaction,
    validate_private_key,
)
from octra.core.types import UnsignedTransaction

ADDRESS_PATTERN = re.compile(r"^oct[1-9A-HJ-NP-Za-km-z]{44}$")

# Ed25519 public key of the all-zero seed
ZERO_SEED_PUBKEY = bytes.fromhex("3b6a27bcceb6a42d62a3a8d02a6f0d73653215771de243a63ac048a18b59da29")

# RFC 8032, section 7.1, TEST 1
RFC_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC_PUBKEY = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")
RFC_SIG_EMPTY = bytes.fromhex(
    "e5564300c360ac729086e2cc806e828a84877f1eb8e5d974d873e065224901555fb8821590a33bacc61e39701cf9b46bd25bf5f0595bbe24655141438e7a100b"
)


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


@pytest.mark.parametrize("length", [32, 64])
def test_validate_accepts_32_and_64_bytes(length):
    assert validate_private_key(b64(b"\x05" * length)) is True


@pytest.mark.parametrize("length", [0, 1, 16, 31, 33, 48, 63, 65, 128])
def test_validate_rejects_other_lengths(length):
    with pytest.raises(InvalidKey) as exc:
        validate_private_key(b64(b"\x05" * length))
    assert exc.value.reason in ("bad length", "empty key")


def test_validate_rejects_garbage():
    with pytest.raises(InvalidKey, match="undecodable"):
        validate_private_key("not*base64!!")


def test_zero_seed_public_key_and_address():
    secret = b64(bytes(32))
    assert base64.b64decode(derive_public_key(secret)) == ZERO_SEED_PUBKEY

    expected = "oct" + base58.b58encode(hashlib.sha256(ZERO_SEED_PUBKEY).digest()).decode().rjust(44, "1")
    assert derive_address(secret) == expected
    assert expected == "oct2KagShR4Usj2uARXJeDw7XJEKvQ3XDr84dC47hUB3Uyd"
    assert ADDRESS_PATTERN.match(expected)


def test_64_zero_bytes_fixture_is_stable():
    secret64 = b64(bytes(64))
    first = derive_address(secret64)
    assert first == derive_address(secret64)
    assert first == derive_address(b64(bytes(32)))
    assert ADDRESS_PATTERN.match(first)


def test_64_byte_secret_with_matching_public_key_is_silent(caplog):
    keys = KeyMaterial(RFC_SEED)
    with caplog.at_level(logging.WARNING, logger="octra.crypto.keys"):
        loaded = KeyMaterial.from_secret_b64(b64(RFC_SEED + RFC_PUBKEY))
    assert loaded.address == keys.address
    assert not caplog.records


def test_64_byte_secret_with_foreign_public_key_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="octra.crypto.keys"):
        loaded = KeyMaterial.from_secret_b64(b64(RFC_SEED + bytes(32)))
    assert loaded.public_key_bytes == RFC_PUBKEY
    assert any("does not match" in r.message for r in caplog.records)


def test_rfc8032_vector():
    keys = KeyMaterial(RFC_SEED)
    assert keys.public_key_bytes == RFC_PUBKEY
    assert keys.sign_bytes(b"") == RFC_SIG_EMPTY


@pytest.mark.parametrize("byte", range(0, 256, 17))
def test_address_format_for_many_seeds(byte):
    secret = b64(bytes([byte]) * 32)
    addr = derive_address(secret)
    assert ADDRESS_PATTERN.match(addr)
    assert addr == derive_address(secret)


def test_generated_keys_produce_valid_addresses():
    for _ in range(25):
        keys = KeyMaterial.generate()
        assert ADDRESS_PATTERN.match(keys.address)
        assert KeyMaterial.from_secret_b64(keys.secret_b64()).address == keys.address


def test_discard_zeroes_and_blocks_use():
    keys = KeyMaterial(RFC_SEED)
    keys.discard()
    assert keys.discarded
    assert bytes(keys._seed) == bytes(32)
    with pytest.raises(InvalidKey, match="discarded"):
        keys.sign_bytes(b"x")
    with pytest.raises(InvalidKey):
        _ = keys.address
    assert "discarded" in repr(keys)


def test_module_sign_transaction_rejects_bad_secret():
    tx = UnsignedTransaction("oct" + "1" * 44, "oct" + "2" * 44, "1", 1, "1", 1.0)
    with pytest.raises(InvalidKey):
        sign_transaction(b64(b"\x01" * 10), tx)
