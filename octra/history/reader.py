# octra/history/reader.py
"""
Read side: balance/nonce snapshot and reconciled transaction history.

The node is untrusted and may answer inconsistently, so everything here
degrades instead of failing: a missing account is an empty account, a missing
history is an empty history, and a transaction whose details cannot be
fetched is dropped from the batch.
"""
import asyncio
import json
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from octra.core.errors import RpcError
from octra.core.types import MU, AccountState, ParsedTransaction, TransactionRecord, TransactionReference
from octra.rpc.client import NodeClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

HISTORY_CAP = 50
DEFAULT_LIMIT = 20


async def gather_partial(awaitables: Iterable[Awaitable[T]]) -> Tuple[List[T], int]:
    """
    Run awaitables concurrently and wait for all of them to settle.

    Returns (successes, dropped) where successes keep input order and
    dropped counts the ones that raised or resolved to None.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    successes: List[T] = []
    dropped = 0
    for res in results:
        if isinstance(res, BaseException) or res is None:
            if isinstance(res, BaseException):
                logger.debug("Dropped from batch: %r", res)
            dropped += 1
            continue
        successes.append(res)
    return successes, dropped


def convert_amount(raw: Any) -> Decimal:
    """A decimal point means whole coins; otherwise an integer count of micro-units."""
    s = str(raw if raw not in (None, "") else "0").strip()
    try:
        if "." in s:
            return Decimal(s)
        return Decimal(int(s)) / MU
    except (InvalidOperation, ValueError):
        logger.warning("Unparseable amount %r, treating as 0", raw)
        return Decimal(0)


def _extract_message(detail: Dict[str, Any]) -> Optional[str]:
    data = detail.get("data")
    if not data:
        return None
    try:
        decoded = json.loads(data) if isinstance(data, str) else data
    except ValueError:
        return None
    if isinstance(decoded, dict) and decoded.get("message"):
        return str(decoded["message"])
    return None


def parse_detail(detail: Any) -> Optional[Tuple[ParsedTransaction, datetime]]:
    """The detail's parsed_tx and its UTC time, or None when the node sent junk."""
    parsed_raw = detail.get("parsed_tx") if isinstance(detail, dict) else None
    if not isinstance(parsed_raw, dict) or not parsed_raw:
        return None
    try:
        parsed = ParsedTransaction.from_dict(parsed_raw)
        return parsed, TransactionRecord.time_from_timestamp(parsed.timestamp)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        logger.debug("Malformed parsed_tx %r: %s", parsed_raw, e)
        return None


def reconcile_history(
    address: str,
    references: Sequence[TransactionReference],
    details: Sequence[Tuple[str, Dict[str, Any]]],
    cap: int = HISTORY_CAP,
) -> List[TransactionRecord]:
    """
    Merge fetched details into an ordered history for `address`.

    Unique by hash (first occurrence wins), newest first, at most `cap` items.
    Direction is "in" when the parsed transaction's `to` is our address.
    """
    epochs = {}
    for ref in references:
        epochs.setdefault(ref.hash, ref.epoch)

    seen = set()
    records: List[TransactionRecord] = []
    for tx_hash, detail in details:
        if tx_hash in seen:
            continue
        checked = parse_detail(detail)
        if checked is None:
            continue
        seen.add(tx_hash)

        parsed, when = checked
        incoming = parsed.to == address
        records.append(TransactionRecord(
            hash=tx_hash,
            amount=convert_amount(parsed.amount_raw or parsed.amount),
            counterparty=parsed.from_ if incoming else parsed.to,
            direction="in" if incoming else "out",
            nonce=parsed.nonce,
            time=when,
            epoch=epochs.get(tx_hash),
            message=_extract_message(detail),
        ))

    records.sort(key=lambda r: r.time, reverse=True)
    return records[:cap]


class LedgerReader:
    """Fetches account state and history for an address from one node."""

    def __init__(self, client: NodeClient, max_concurrency: int = 8):
        self.client = client
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.last_dropped = 0

    async def fetch_account_state(self, address: str, include_staged: bool = False) -> AccountState:
        """
        404 means the node has never seen the address: balance 0, nonce 0.
        Transport errors propagate (RpcTransportError).
        """
        resp = await self.client.get(f"/balance/{address}")
        if resp.status == 404:
            state = AccountState()
        elif resp.ok and isinstance(resp.body, dict):
            state = self._parse_json_state(resp.status, resp.body)
        elif resp.ok and resp.text.strip():
            state = self._parse_text_state(resp.text)
        else:
            raise RpcError(resp.status, resp.text.strip() or "balance unavailable")

        if include_staged:
            staged = await self.fetch_staged_nonce(address)
            if staged is not None and staged > state.nonce:
                logger.debug("Staged nonce %d ahead of confirmed nonce %d", staged, state.nonce)
                state = AccountState(balance=state.balance, nonce=staged)
        return state

    @staticmethod
    def _parse_json_state(status: int, body: Dict[str, Any]) -> AccountState:
        try:
            balance = Decimal(str(body.get("balance", 0)))
            nonce = int(body.get("nonce", 0))
        except (InvalidOperation, TypeError, ValueError):
            raise RpcError(status, "unrecognized balance response")
        if not balance.is_finite() or balance < 0 or nonce < 0:
            raise RpcError(status, "unrecognized balance response")
        return AccountState(balance=balance, nonce=nonce)

    @staticmethod
    def _parse_text_state(text: str) -> AccountState:
        # legacy nodes answer "<balance> <nonce>"
        parts = text.strip().split()
        if len(parts) < 2:
            raise RpcError(200, f"unrecognized balance response: {text[:64]!r}")
        try:
            balance, nonce = Decimal(parts[0]), int(parts[1])
        except (InvalidOperation, ValueError):
            raise RpcError(200, f"unrecognized balance response: {text[:64]!r}")
        if not balance.is_finite() or balance < 0 or nonce < 0:
            raise RpcError(200, f"unrecognized balance response: {text[:64]!r}")
        return AccountState(balance=balance, nonce=nonce)

    async def fetch_staged_nonce(self, address: str) -> Optional[int]:
        """Highest nonce among our transactions still in the node's staging area."""
        try:
            resp = await self.client.get("/staging")
        except Exception as e:
            logger.warning("Could not read staging area: %s", e)
            return None
        if not resp.ok or not isinstance(resp.body, dict):
            return None
        ours = []
        for tx in resp.body.get("staged_transactions") or []:
            if not isinstance(tx, dict) or tx.get("from") != address:
                continue
            try:
                ours.append(int(tx.get("nonce", 0)))
            except (TypeError, ValueError):
                logger.debug("Skipping staged entry with bad nonce: %r", tx)
        return max(ours) if ours else None

    async def fetch_references(self, address: str, limit: int = DEFAULT_LIMIT) -> List[TransactionReference]:
        try:
            resp = await self.client.get(f"/address/{address}?limit={int(limit)}")
        except Exception as e:
            logger.warning("History references unavailable for %s: %s", address, e)
            return []

        if resp.status == 404:
            return []
        if not resp.ok or not isinstance(resp.body, dict):
            if not (resp.ok and "no transactions" in resp.text.lower()):
                logger.warning("Unexpected /address response (HTTP %s)", resp.status)
            return []

        refs: List[TransactionReference] = []
        for item in resp.body.get("recent_transactions") or []:
            if not isinstance(item, dict) or not item.get("hash"):
                continue
            epoch = item.get("epoch")
            try:
                epoch = None if epoch is None else int(epoch)
            except (TypeError, ValueError):
                logger.debug("Skipping reference with bad epoch: %r", item)
                continue
            refs.append(TransactionReference(hash=str(item["hash"]), epoch=epoch))
        return refs

    async def _fetch_detail(self, tx_hash: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        async with self._semaphore:
            resp = await self.client.get(f"/tx/{tx_hash}")
        if resp.ok and parse_detail(resp.body) is not None:
            return tx_hash, resp.body
        return None

    async def fetch_details(self, hashes: Sequence[str]) -> Tuple[List[Tuple[str, Dict[str, Any]]], int]:
        return await gather_partial(self._fetch_detail(h) for h in hashes)

    async def fetch_history(self, address: str, limit: int = DEFAULT_LIMIT) -> List[TransactionRecord]:
        refs = await self.fetch_references(address, limit)
        if not refs:
            self.last_dropped = 0
            return []

        unique_hashes = list(dict.fromkeys(ref.hash for ref in refs))
        details, dropped = await self.fetch_details(unique_hashes)
        self.last_dropped = dropped
        if dropped:
            logger.info("History for %s: %d of %d transaction details unavailable", address, dropped, len(unique_hashes))
        return reconcile_history(address, refs, details)
