# octra/tx/builder.py
"""
Turns a transfer intent plus an account snapshot into the canonical unsigned
transaction. Pure: no network, no key access.
"""
import random
import time
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Callable, Optional

from octra.core.encoding import is_valid_address
from octra.core.errors import InsufficientBalance, InvalidAddress, InvalidAmount
from octra.core.types import MU, AccountState, TransactionIntent, UnsignedTransaction

FEE_TIER_THRESHOLD = Decimal(1000)
FEE_LOW = Decimal("0.001")
FEE_HIGH = Decimal("0.003")
MAX_JITTER = 0.01


def to_decimal(amount) -> Decimal:
    """Coerce int/float/str/Decimal to a finite Decimal. Raises InvalidAmount on junk."""
    if isinstance(amount, bool):
        raise InvalidAmount(amount)
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(amount)
    if not value.is_finite():
        raise InvalidAmount(amount)
    return value


def to_micro(amount) -> int:
    """Whole-coin amount -> integer micro-units, floored."""
    return int((to_decimal(amount) * MU).to_integral_value(rounding=ROUND_FLOOR))


def from_micro(micro: int) -> Decimal:
    return Decimal(int(micro)) / MU


def fee_tier(amount) -> str:
    return "1" if to_decimal(amount) < FEE_TIER_THRESHOLD else "3"


def fee_for(amount) -> Decimal:
    """Display fee. The node, not the client, charges the real one."""
    return FEE_LOW if to_decimal(amount) < FEE_TIER_THRESHOLD else FEE_HIGH


def validate_intent(intent: TransactionIntent, state: AccountState) -> Decimal:
    """First failing check wins: address, then amount, then balance."""
    if not is_valid_address(intent.to):
        raise InvalidAddress(intent.to)

    amount = to_decimal(intent.amount)
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(intent.amount)

    if amount > state.balance:
        raise InsufficientBalance(have=state.balance, want=amount)
    return amount


def build_transaction(
    intent: TransactionIntent,
    state: AccountState,
    from_address: str,
    *,
    clock: Callable[[], float] = time.time,
    jitter: Optional[Callable[[], float]] = None,
) -> UnsignedTransaction:
    """
    Build the unsigned transfer.

    nonce is always state.nonce + 1; a stale snapshot produces a transaction
    the node rejects, which surfaces as a submission error.
    The timestamp gets sub-10ms jitter so two transfers built in the same
    tick never serialize to identical bytes.
    """
    amount = validate_intent(intent, state)
    offset = (jitter or (lambda: random.random() * MAX_JITTER))()

    return UnsignedTransaction(
        from_=from_address,
        to_=intent.to,
        amount=str(to_micro(amount)),
        nonce=int(state.nonce) + 1,
        ou=fee_tier(amount),
        timestamp=clock() + offset,
        message=intent.message or None,
    )
