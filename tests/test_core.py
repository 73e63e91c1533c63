# tests/test_core.py
import json
from decimal import Decimal

import pytest

from octra.core.canon import canonical_json, canonical_json_str, envelope_json
from octra.core.encoding import b58_encode_fixed, b64_decode, b64_encode, is_valid_address
from octra.core.types import SignedTransaction, SubmissionResult, TransactionRecord, UnsignedTransaction
from octra.core.errors import SubmissionError

SENDER = "oct" + "A" * 44
RECEIVER = "oct" + "B" * 44


@pytest.fixture
def sample_tx():
    return UnsignedTransaction(
        from_=SENDER,
        to_=RECEIVER,
        amount="10000000",
        nonce=6,
        ou="1",
        timestamp=1700000000.5,
    )


def test_transaction_immutable(sample_tx):
    with pytest.raises(AttributeError):
        sample_tx.nonce = 99


def test_canonical_bytes_exact(sample_tx):
    expected = (
        '{"from":"' + SENDER + '","to_":"' + RECEIVER + '",'
        '"amount":"10000000","nonce":6,"ou":"1","timestamp":1700000000.5}'
    ).encode()
    assert canonical_json(sample_tx) == expected


def test_canonical_key_order_is_wire_order(sample_tx):
    keys = list(json.loads(canonical_json_str(sample_tx)).keys())
    assert keys == ["from", "to_", "amount", "nonce", "ou", "timestamp"]


def test_canonical_json_deterministic(sample_tx):
    twin = UnsignedTransaction(**sample_tx.__dict__)
    assert canonical_json(sample_tx) == canonical_json(twin)
    assert b" " not in canonical_json(sample_tx)


def test_message_never_signed(sample_tx):
    with_msg = UnsignedTransaction(**{**sample_tx.__dict__, "message": "hello"})
    assert canonical_json(with_msg) == canonical_json(sample_tx)


def test_envelope_order_and_message(sample_tx):
    with_msg = UnsignedTransaction(**{**sample_tx.__dict__, "message": "gm"})
    signed = SignedTransaction(tx=with_msg, signature="c2ln", public_key="cHVi")
    keys = list(json.loads(envelope_json(signed)).keys())
    assert keys == ["from", "to_", "amount", "nonce", "ou", "timestamp", "message", "signature", "public_key"]

    plain = SignedTransaction(tx=sample_tx, signature="c2ln", public_key="cHVi")
    assert "message" not in plain.to_dict()
    assert canonical_json(plain) == canonical_json(sample_tx)


def test_signed_from_dict_roundtrip(sample_tx):
    signed = SignedTransaction(tx=sample_tx, signature="c2ln", public_key="cHVi")
    assert SignedTransaction.from_dict(json.loads(envelope_json(signed))) == signed


def test_base64_strict():
    assert b64_decode(b64_encode(b"\x00\xff")) == b"\x00\xff"
    with pytest.raises(ValueError):
        b64_decode("@@@")


def test_base58_is_padded_to_width():
    assert b58_encode_fixed(b"\x01") == "1" * 43 + "2"
    assert len(b58_encode_fixed(b"\xff" * 32)) == 44


def test_address_regex():
    assert is_valid_address(SENDER)
    assert not is_valid_address("oct" + "A" * 43)
    assert not is_valid_address("oct" + "0" * 44)
    assert not is_valid_address("oct" + "l" * 44)
    assert not is_valid_address("OCT" + "A" * 44)
    assert not is_valid_address(None)


def test_submission_result_raise_for_error():
    ok = SubmissionResult(success=True, tx_hash="abc")
    assert ok.raise_for_error() is ok
    with pytest.raises(SubmissionError) as exc:
        SubmissionResult(success=False, error="nonce too low", response_time=0.2).raise_for_error()
    assert exc.value.response_time == 0.2


def test_record_time_helpers():
    rec = TransactionRecord(
        hash="h", amount=Decimal("1"), counterparty=SENDER, direction="in", nonce=1,
        time=TransactionRecord.time_from_timestamp(1700000000.25),
    )
    assert rec.time_ms == 1700000000250
    assert rec.pending is True
