# tests/test_storage.py
import sqlite3
from decimal import Decimal
from pathlib import Path

import pytest

from octra.core.types import (
    AccountState,
    JournalEntry,
    SignedTransaction,
    SubmissionResult,
    TransactionIntent,
)
from octra.crypto.hashing import transaction_digest
from octra.crypto.keys import KeyMaterial
from octra.storage import JournalBackend, SQLiteJournal, create_journal
from octra.tx.builder import build_transaction
from octra.verify.verifier import TransactionVerifier


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "journal.db"


@pytest.fixture
def journal(temp_db_path: Path) -> SQLiteJournal:
    j = SQLiteJournal(db_path=temp_db_path)
    yield j
    j.close()


def make_entry(keys: KeyMaterial, recipient: str, nonce: int = 0, tx_hash="h0", success=True) -> JournalEntry:
    unsigned = build_transaction(
        TransactionIntent(to=recipient, amount="1.5"),
        AccountState(balance=Decimal(100), nonce=nonce),
        keys.address,
    )
    signed = keys.sign_transaction(unsigned)
    result = SubmissionResult(success=success, tx_hash=tx_hash if success else None,
                              error=None if success else "rejected", response_time=0.25)
    return JournalEntry(address=keys.address, nonce=unsigned.nonce, envelope=signed.to_dict(), result=result)


def test_create_journal_routing(temp_db_path: Path):
    journal = create_journal(f"sqlite://{temp_db_path}")
    assert isinstance(journal, SQLiteJournal)
    assert isinstance(journal, JournalBackend)
    assert journal.db_path == temp_db_path.resolve()
    journal.close()


@pytest.mark.parametrize("uri", ["jsonl:/tmp/x.jsonl", "postgres://localhost/db", "/tmp/bare.db"])
def test_create_journal_unsupported(uri):
    with pytest.raises(ValueError, match="Unsupported journal URI"):
        create_journal(uri)


def test_default_and_env_path(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OCTRA_JOURNAL_PATH", raising=False)
    with SQLiteJournal() as default_journal:
        assert default_journal.db_path.name == "octra-journal.db"

    env_path = tmp_path / "nested" / "env.db"
    monkeypatch.setenv("OCTRA_JOURNAL_PATH", str(env_path))
    with SQLiteJournal() as env_journal:
        assert env_journal.db_path == env_path.resolve()
    assert env_path.exists()


def test_schema_creation(journal: SQLiteJournal):
    cursor = journal.conn.cursor()
    cursor.execute("PRAGMA table_info(submissions)")
    columns = {row[1] for row in cursor.fetchall()}
    assert columns == {
        "id", "address", "nonce", "recorded_at", "success", "tx_hash", "envelope_json", "result_json",
    }
    mode = journal.conn.execute("PRAGMA journal_mode").fetchone()[0]
    assert mode.lower() == "wal"


def test_append_and_load(journal: SQLiteJournal, keys: KeyMaterial, recipient: str):
    first = make_entry(keys, recipient, nonce=0, tx_hash="h1")
    second = make_entry(keys, recipient, nonce=1, success=False)
    journal.append(first)
    journal.append(second)

    loaded = journal.load_entries(keys.address)
    assert [e.nonce for e in loaded] == [2, 1]
    assert loaded[0].result.success is False
    assert loaded[0].result.error == "rejected"
    assert loaded[1].result.tx_hash == "h1"
    assert loaded[1].result.response_time == 0.25
    assert loaded[1].envelope == first.envelope
    assert loaded[1].recorded_at

    assert [e.nonce for e in journal.load_entries(keys.address, limit=1)] == [2]
    assert journal.count(keys.address) == 2


def test_load_unknown_address(journal: SQLiteJournal):
    assert journal.load_entries("oct" + "Z" * 44) == []
    assert journal.count("oct" + "Z" * 44) == 0


def test_append_unsigned_raises(journal: SQLiteJournal, keys: KeyMaterial, recipient: str):
    entry = make_entry(keys, recipient)
    entry.envelope.pop("signature")
    with pytest.raises(ValueError, match="unsigned"):
        journal.append(entry)


def test_find_by_hash(journal: SQLiteJournal, keys: KeyMaterial, recipient: str):
    journal.append(make_entry(keys, recipient, tx_hash="wanted"))
    journal.append(make_entry(keys, recipient, nonce=3, tx_hash="other"))

    found = journal.find_by_hash("wanted")
    assert found is not None
    assert found.nonce == 1
    assert journal.find_by_hash("nope") is None


def test_reloaded_envelope_keeps_digest(journal: SQLiteJournal, keys: KeyMaterial, recipient: str):
    entry = make_entry(keys, recipient)
    journal.append(entry)
    (loaded,) = journal.load_entries(keys.address)
    original = SignedTransaction.from_dict(entry.envelope)
    reloaded = SignedTransaction.from_dict(loaded.envelope)
    assert transaction_digest(reloaded.tx) == transaction_digest(original.tx)


def test_tamper_detection(temp_db_path: Path, keys: KeyMaterial, recipient: str):
    with SQLiteJournal(temp_db_path) as journal:
        journal.append(make_entry(keys, recipient))

    conn = sqlite3.connect(temp_db_path)
    conn.execute("""
        UPDATE submissions
        SET envelope_json = REPLACE(envelope_json, '"amount":"1500000"', '"amount":"9500000"')
    """)
    conn.commit()
    conn.close()

    with SQLiteJournal(temp_db_path) as journal:
        (entry,) = journal.load_entries(keys.address)

    tampered = SignedTransaction.from_dict(entry.envelope)
    assert tampered.tx.amount == "9500000"
    result = TransactionVerifier(expected_address=keys.address).verify(tampered)
    assert not result
    assert result.first_failure.category == "signature"


def test_close_releases_resources(temp_db_path: Path, keys: KeyMaterial, recipient: str):
    journal = SQLiteJournal(temp_db_path)
    assert journal._conn is not None
    entry = make_entry(keys, recipient)
    journal.append(entry)
    journal.close()

    with pytest.raises(RuntimeError, match="closed"):
        journal.append(entry)


def test_context_manager(temp_db_path: Path):
    with SQLiteJournal(temp_db_path) as journal:
        assert journal._conn is not None
    with pytest.raises(RuntimeError, match="closed"):
        journal.load_entries("oct")
