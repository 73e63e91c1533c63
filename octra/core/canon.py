# octra/core/canon.py
import json
from typing import Union

from octra.core.types import SignedTransaction, UnsignedTransaction


def canonical_json(tx: Union[UnsignedTransaction, SignedTransaction]) -> bytes:
    """
    Produce the exact bytes the node verifies signatures against.

    Compact JSON, keys in wire order (from, to_, amount, nonce, ou, timestamp),
    no whitespace. Signed transactions are reduced to their unsigned payload,
    so the optional message never enters the signed bytes.
    """
    if isinstance(tx, SignedTransaction):
        tx = tx.tx
    return json.dumps(tx.to_dict(), separators=(",", ":")).encode("utf-8")


def canonical_json_str(tx: Union[UnsignedTransaction, SignedTransaction]) -> str:
    """Same as above, but returns string (mostly for debugging)."""
    return canonical_json(tx).decode("utf-8")


def envelope_json(signed: SignedTransaction) -> str:
    """Compact JSON body for POST /send-tx."""
    return json.dumps(signed.to_dict(), separators=(",", ":"))
