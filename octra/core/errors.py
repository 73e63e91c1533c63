# octra/core/errors.py
from decimal import Decimal
from typing import Optional


class OctraError(Exception):
    """Base class for every error raised by the engine."""


class InvalidKey(OctraError):
    """Malformed, undecodable or wrong-length secret key."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid private key: {reason}")


class ValidationError(OctraError):
    """Local validation failure, raised before any network call."""


class InvalidAddress(ValidationError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid address format: {address!r}")


class InvalidAmount(ValidationError):
    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Invalid amount: {amount!r}")


class InsufficientBalance(ValidationError):
    def __init__(self, have: Decimal, want: Decimal):
        self.have = have
        self.want = want
        super().__init__(f"Insufficient balance ({have:.6f} < {want})")


class SubmissionError(OctraError):
    """Node rejection or transport failure of a submitted transaction."""

    def __init__(self, message: str, response_time: Optional[float] = None):
        self.message = message
        self.response_time = response_time
        super().__init__(message)


class RpcError(OctraError):
    """Node answered with a status the caller cannot recover from."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"HTTP {status}: {message}")


class RpcTransportError(OctraError):
    """The request never produced an HTTP response (connection, timeout)."""
