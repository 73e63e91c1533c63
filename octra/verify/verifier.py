# octra/verify/verifier.py
import re
from dataclasses import dataclass, field
from typing import List, Optional

import nacl.exceptions
import nacl.signing

from octra.core.canon import canonical_json
from octra.core.encoding import b64_decode, is_valid_address
from octra.core.types import SignedTransaction
from octra.crypto.hashing import address_from_public_key

AMOUNT_RE = re.compile(r"[0-9]+")


@dataclass
class VerificationFailure:
    field: str
    message: str
    category: str = "general"  # "format", "address", "signature"


@dataclass
class VerificationResult:
    is_valid: bool
    message: str = ""
    failures: List[VerificationFailure] = field(default_factory=list)

    @property
    def first_failure(self) -> Optional[VerificationFailure]:
        return self.failures[0] if self.failures else None

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return "Transaction is valid ✓"
        lines = [f"Verification FAILED ({len(self.failures)} issues):"]
        for f in self.failures:
            lines.append(f"  • [{f.field}] {f.category}: {f.message}")
        return "\n".join(lines)


def verify_signed_transaction(signed: SignedTransaction) -> bool:
    """True iff `signature` verifies over canonical_json(tx) under `public_key`."""
    try:
        verify_key = nacl.signing.VerifyKey(b64_decode(signed.public_key))
        verify_key.verify(canonical_json(signed), b64_decode(signed.signature))
    except (nacl.exceptions.BadSignatureError, ValueError, TypeError):
        return False
    return True


class TransactionVerifier:
    """
    Offline checks a node would apply to an envelope before accepting it.
    Optionally pins the sender address.
    """

    def __init__(self, expected_address: Optional[str] = None):
        self.expected_address = expected_address

    def verify(self, signed: SignedTransaction) -> VerificationResult:
        result = VerificationResult(True)
        tx = signed.tx

        # 1. Shape
        for name, value in (("from", tx.from_), ("to_", tx.to_)):
            if not is_valid_address(value):
                result.failures.append(VerificationFailure(name, f"Malformed address {value!r}", "format"))
        if not AMOUNT_RE.fullmatch(tx.amount) or int(tx.amount) <= 0:
            result.failures.append(VerificationFailure("amount", f"Amount must be positive micro-units, got {tx.amount!r}", "format"))
        if tx.ou not in ("1", "3"):
            result.failures.append(VerificationFailure("ou", f"Unknown fee tier {tx.ou!r}", "format"))
        if tx.nonce < 1:
            result.failures.append(VerificationFailure("nonce", f"Nonce must be >= 1, got {tx.nonce}", "format"))

        # 2. Public key binds to sender
        try:
            pub = b64_decode(signed.public_key)
            derived = address_from_public_key(pub)
        except ValueError as e:
            result.failures.append(VerificationFailure("public_key", f"Unusable public key: {e}", "format"))
            derived = None

        if derived is not None and derived != tx.from_:
            result.failures.append(VerificationFailure("public_key", "Public key does not hash to sender address", "address"))
        if self.expected_address and tx.from_ != self.expected_address:
            result.failures.append(VerificationFailure("from", f"Sender is not {self.expected_address}", "address"))

        # 3. Signature
        if not verify_signed_transaction(signed):
            result.failures.append(VerificationFailure("signature", "Invalid signature", "signature"))

        result.is_valid = not result.failures
        result.message = "Valid transaction" if result.is_valid else f"Failed with {len(result.failures)} issues"
        return result
