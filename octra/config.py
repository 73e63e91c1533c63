# octra/config.py
"""
Runtime configuration, resolved in this order:
1. explicit arguments (CLI flags)
2. environment: OCTRA_RPC_URL, OCTRA_PRIVATE_KEY, OCTRA_WALLET_PATH,
   OCTRA_TIMEOUT, OCTRA_JOURNAL_PATH
3. wallet file: ~/.octra/wallet.json, then ./wallet.json ({"priv", "addr", "rpc"})
4. defaults
The wallet file is only ever read.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from octra.rpc.client import DEFAULT_RPC_URL, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


def default_wallet_locations() -> List[Path]:
    return [Path.home() / ".octra" / "wallet.json", Path("wallet.json")]


def default_journal_path() -> Path:
    return Path.home() / ".octra" / "journal.db"


def load_wallet_file(paths: Optional[List[Path]] = None) -> Dict[str, Any]:
    """First readable wallet file with a "priv" entry, or {}."""
    for p in paths or default_wallet_locations():
        if not p.exists():
            continue
        try:
            with p.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable wallet file %s: %s", p, e)
            continue
        if isinstance(data, dict) and data.get("priv"):
            logger.debug("Loaded wallet file %s", p)
            return data
    return {}


@dataclass(frozen=True)
class WalletConfig:
    rpc_url: str = DEFAULT_RPC_URL
    private_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    journal_path: Optional[Path] = None
    wallet_address: Optional[str] = None    # "addr" from the wallet file, informational

    @classmethod
    def resolve(
        cls,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        wallet_path: Optional[Path] = None,
        timeout: Optional[float] = None,
        journal_path: Optional[Path] = None,
    ) -> "WalletConfig":
        env_wallet = os.environ.get("OCTRA_WALLET_PATH")
        if wallet_path:
            wallet = load_wallet_file([wallet_path])
        elif env_wallet:
            wallet = load_wallet_file([Path(env_wallet)])
        else:
            wallet = load_wallet_file()

        env_timeout = os.environ.get("OCTRA_TIMEOUT")
        env_journal = os.environ.get("OCTRA_JOURNAL_PATH")

        return cls(
            rpc_url=(rpc_url or os.environ.get("OCTRA_RPC_URL") or wallet.get("rpc") or DEFAULT_RPC_URL).rstrip("/"),
            private_key=private_key or os.environ.get("OCTRA_PRIVATE_KEY") or wallet.get("priv"),
            timeout=float(timeout if timeout is not None else (env_timeout or DEFAULT_TIMEOUT)),
            journal_path=journal_path or (Path(env_journal) if env_journal else default_journal_path()),
            wallet_address=wallet.get("addr"),
        )
