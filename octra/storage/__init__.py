# octra/storage/__init__.py
"""
Journal backends: a local record of every submission attempt.
Only signed envelopes and node replies are stored, never key material.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from pathlib import Path
from octra.core.types import JournalEntry


class JournalBackend(ABC):
    """Abstract base for all persistent journal implementations."""

    @abstractmethod
    def append(self, entry: JournalEntry) -> None:
        pass

    @abstractmethod
    def load_entries(self, address: str, limit: Optional[int] = None) -> List[JournalEntry]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


def create_journal(uri: str) -> JournalBackend:
    if uri.startswith("sqlite://"):
        from .sqlite import SQLiteJournal
        raw_path = uri[len("sqlite://"):]
        return SQLiteJournal(Path(raw_path).expanduser().resolve())
    raise ValueError(f"Unsupported journal URI: {uri}")


from .sqlite import SQLiteJournal

__all__ = ["JournalBackend", "create_journal", "SQLiteJournal"]
