# octra/core/encoding.py
import base64
import binascii
import re

import base58

ADDRESS_RE = re.compile(r"^oct[1-9A-HJ-NP-Za-km-z]{44}$")
ADDRESS_PREFIX = "oct"
ADDRESS_BODY_LEN = 44


def b64_encode(data: bytes) -> str:
    """Standard base64 with padding, as the node expects."""
    return base64.b64encode(data).decode("ascii")


def b64_decode(s: str) -> bytes:
    """Strict standard base64 decode. Raises ValueError on malformed input."""
    try:
        return base64.b64decode(s.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"not valid base64: {e}") from e


def b58_encode_fixed(data: bytes, width: int = ADDRESS_BODY_LEN) -> str:
    """Base58 (bitcoin alphabet), left-padded with the zero digit '1' to `width`."""
    return base58.b58encode(data).decode("ascii").rjust(width, "1")


def is_valid_address(address: str) -> bool:
    return isinstance(address, str) and ADDRESS_RE.match(address) is not None
