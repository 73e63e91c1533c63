# octra/chain/session.py
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from octra.core.errors import ValidationError
from octra.core.types import (
    AccountState,
    JournalEntry,
    SignedTransaction,
    SubmissionResult,
    TransactionIntent,
    TransactionRecord,
)
from octra.crypto.keys import KeyMaterial
from octra.history.reader import DEFAULT_LIMIT, LedgerReader
from octra.rpc.client import NodeClient
from octra.rpc.submission import submit_transaction
from octra.storage import JournalBackend, create_journal
from octra.tx.builder import build_transaction

logger = logging.getLogger(__name__)


@dataclass
class WalletSession:
    """
    Explicit handle for one logged-in wallet.

    Owns the decoded key material and the node connection; every engine
    operation goes through it. logout()/close() discards the key.
    Two transfers built from the same account snapshot would carry the same
    nonce, so send() calls on one session are serialized unless
    lock_submissions=False. Separate sessions for the same address are not
    coordinated.
    """
    keys: KeyMaterial
    client: NodeClient
    journal: Optional[Union[JournalBackend, str]] = None
    lock_submissions: bool = True
    history_limit: int = DEFAULT_LIMIT
    state: Optional[AccountState] = field(default=None, init=False)
    records: List[TransactionRecord] = field(default_factory=list, init=False)

    def __post_init__(self):
        if isinstance(self.journal, str):
            stripped = self.journal.strip()
            scheme, sep, _ = stripped.partition(":")
            # "scheme:..." is a URI (single letters are drive names); anything else is a path
            if sep and len(scheme) > 1 and scheme.isalpha():
                self.journal = create_journal(stripped)
            elif stripped:
                self.journal = create_journal(f"sqlite://{stripped}")
            else:
                self.journal = None
        self.reader = LedgerReader(self.client)
        self._send_lock = asyncio.Lock()

    @classmethod
    def login(cls, secret_b64: str, client: NodeClient, **kwargs) -> "WalletSession":
        """Validate the secret and open a session. Raises InvalidKey."""
        return cls(keys=KeyMaterial.from_secret_b64(secret_b64), client=client, **kwargs)

    @property
    def address(self) -> str:
        return self.keys.address

    # ── read side

    async def refresh(self, include_staged: bool = False) -> AccountState:
        self.state = await self.reader.fetch_account_state(self.address, include_staged=include_staged)
        return self.state

    async def history(self) -> List[TransactionRecord]:
        self.records = await self.reader.fetch_history(self.address, self.history_limit)
        return self.records

    # ── write side

    def prepare(self, intent: TransactionIntent, state: AccountState) -> SignedTransaction:
        """Build and sign against an explicit snapshot. Raises ValidationError."""
        unsigned = build_transaction(intent, state, self.address)
        return self.keys.sign_transaction(unsigned)

    async def send(self, intent: TransactionIntent, include_staged: bool = False) -> SubmissionResult:
        """
        Refresh state, build, sign, submit. Never raises for validation or
        node errors: they come back as a failed SubmissionResult. Transport
        errors on the balance fetch propagate.
        """
        if self.lock_submissions:
            async with self._send_lock:
                return await self._send(intent, include_staged)
        return await self._send(intent, include_staged)

    async def _send(self, intent: TransactionIntent, include_staged: bool) -> SubmissionResult:
        state = await self.refresh(include_staged=include_staged)
        try:
            signed = self.prepare(intent, state)
        except ValidationError as e:
            return SubmissionResult(success=False, error=str(e))

        result = await submit_transaction(signed, self.client)
        self._record(signed, result)
        return result

    def _record(self, signed: SignedTransaction, result: SubmissionResult) -> None:
        if not self.journal:
            return
        try:
            self.journal.append(JournalEntry(
                address=self.address,
                nonce=signed.tx.nonce,
                envelope=signed.to_dict(),
                result=result,
            ))
        except Exception as e:
            logger.warning("Failed to journal transaction nonce=%s: %s", signed.tx.nonce, e)

    # ── lifecycle

    async def close(self) -> None:
        """Discard key material and release the node connection and journal."""
        if not self.keys.discarded:
            self.keys.discard()
        await self.client.close()
        if self.journal:
            self.journal.close()
            self.journal = None
        logger.info("Wallet session closed")

    logout = close

    async def __aenter__(self) -> "WalletSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
