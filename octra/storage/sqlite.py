# octra/storage/sqlite.py
import json
import os
import sqlite3
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from octra.core.types import JournalEntry, SubmissionResult
from . import JournalBackend


class SQLiteJournal(JournalBackend):
    """SQLite journal of submitted transactions."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            env_path = os.environ.get("OCTRA_JOURNAL_PATH")
            db_path = env_path if env_path else Path.cwd() / "octra-journal.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS submissions (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                address         TEXT    NOT NULL,
                nonce           INTEGER NOT NULL,
                recorded_at     TEXT    NOT NULL,
                success         INTEGER NOT NULL,
                tx_hash         TEXT,
                envelope_json   TEXT    NOT NULL,
                result_json     TEXT    NOT NULL
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_address ON submissions(address, id)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_tx_hash ON submissions(tx_hash)")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Journal connection is closed")
        return self._conn

    def append(self, entry: JournalEntry) -> None:
        if "signature" not in entry.envelope:
            raise ValueError("Cannot journal unsigned transaction")

        recorded_at = entry.recorded_at or datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        result = entry.result
        self.conn.execute("""
            INSERT INTO submissions
            (address, nonce, recorded_at, success, tx_hash, envelope_json, result_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            entry.address, entry.nonce, recorded_at, int(result.success), result.tx_hash,
            json.dumps(entry.envelope, separators=(",", ":")),
            json.dumps(asdict(result), separators=(",", ":"), default=str),
        ))

    def load_entries(self, address: str, limit: Optional[int] = None) -> List[JournalEntry]:
        """Entries for `address`, newest first."""
        sql = """
            SELECT address, nonce, recorded_at, envelope_json, result_json
            FROM submissions WHERE address = ? ORDER BY id DESC
        """
        params: tuple = (address,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (address, int(limit))

        entries = []
        for addr, nonce, ts, ejson, rjson in self.conn.execute(sql, params):
            entries.append(JournalEntry(
                address=addr,
                nonce=nonce,
                envelope=json.loads(ejson),
                result=SubmissionResult(**json.loads(rjson)),
                recorded_at=ts,
            ))
        return entries

    def find_by_hash(self, tx_hash: str) -> Optional[JournalEntry]:
        row = self.conn.execute("""
            SELECT address, nonce, recorded_at, envelope_json, result_json
            FROM submissions WHERE tx_hash = ? ORDER BY id DESC LIMIT 1
        """, (tx_hash,)).fetchone()
        if row is None:
            return None
        addr, nonce, ts, ejson, rjson = row
        return JournalEntry(addr, nonce, json.loads(ejson), SubmissionResult(**json.loads(rjson)), ts)

    def count(self, address: str) -> int:
        cursor = self.conn.execute("SELECT COUNT(*) FROM submissions WHERE address = ?", (address,))
        return cursor.fetchone()[0]

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
