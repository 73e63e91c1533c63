# octra/core/types.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Literal, Optional

from octra.core.errors import SubmissionError

MU = 1_000_000  # micro-units per coin


@dataclass(frozen=True)
class AccountState:
    """Balance/nonce snapshot as reported by the node. Always possibly stale."""
    balance: Decimal = Decimal(0)
    nonce: int = 0


@dataclass(frozen=True)
class TransactionIntent:
    to: str
    amount: Any                     # Decimal, int, float or numeric string
    message: Optional[str] = None   # travels with the envelope, never signed


@dataclass(frozen=True)
class UnsignedTransaction:
    """Canonical transfer record. Field order below is the wire order."""
    from_: str
    to_: str
    amount: str                     # micro-units, integer string
    nonce: int
    ou: str                         # fee tier: "1" or "3"
    timestamp: float
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Signing payload in wire order (message excluded)."""
        return {
            "from": self.from_,
            "to_": self.to_,
            "amount": self.amount,
            "nonce": self.nonce,
            "ou": self.ou,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SignedTransaction:
    tx: UnsignedTransaction
    signature: str                  # base64, 64 bytes
    public_key: str                 # base64, 32 bytes

    def to_dict(self) -> Dict[str, Any]:
        """Envelope posted to /send-tx."""
        d = self.tx.to_dict()
        if self.tx.message:
            d["message"] = self.tx.message
        d["signature"] = self.signature
        d["public_key"] = self.public_key
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SignedTransaction":
        tx = UnsignedTransaction(
            from_=d["from"],
            to_=d["to_"],
            amount=str(d["amount"]),
            nonce=int(d["nonce"]),
            ou=str(d["ou"]),
            timestamp=d["timestamp"],
            message=d.get("message"),
        )
        return cls(tx=tx, signature=d["signature"], public_key=d["public_key"])


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    response_time: float = 0.0
    pool_info: Optional[Any] = None

    def raise_for_error(self) -> "SubmissionResult":
        if not self.success:
            raise SubmissionError(self.error or "Transaction failed", self.response_time)
        return self


@dataclass(frozen=True)
class TransactionReference:
    hash: str
    epoch: Optional[int] = None


@dataclass(frozen=True)
class ParsedTransaction:
    from_: str
    to: str
    amount: str
    nonce: int
    timestamp: float
    amount_raw: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ParsedTransaction":
        raw = d.get("amount_raw")
        return cls(
            from_=d.get("from", ""),
            to=d.get("to", ""),
            amount=str(d.get("amount", "0")),
            nonce=int(d.get("nonce", 0)),
            timestamp=float(d.get("timestamp", 0)),
            amount_raw=None if raw is None else str(raw),
        )


@dataclass(frozen=True)
class TransactionRecord:
    """One reconciled history entry, seen from the owned address."""
    hash: str
    amount: Decimal
    counterparty: str
    direction: Literal["in", "out"]
    nonce: int
    time: datetime
    epoch: Optional[int] = None
    message: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self.epoch is None

    @property
    def time_ms(self) -> int:
        return int(self.time.timestamp() * 1000)

    @staticmethod
    def time_from_timestamp(ts: float) -> datetime:
        return datetime.fromtimestamp(ts, tz=timezone.utc)


@dataclass
class JournalEntry:
    """Persisted record of one submission attempt."""
    address: str
    nonce: int
    envelope: Dict[str, Any]
    result: SubmissionResult
    recorded_at: str = field(default="")
