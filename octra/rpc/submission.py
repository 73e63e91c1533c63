# octra/rpc/submission.py
"""
POST /send-tx and normalization of the node's reply.

The node answers in one of three shapes:
  * {"status": "accepted", "tx_hash": ..., "pool_info": ...}
  * plain text "OK <hash>" (legacy nodes)
  * anything else, including non-2xx statuses, which is a rejection

classify_response() maps a raw reply onto exactly one of the variants below;
submit_transaction() never raises.
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from octra.core.canon import envelope_json
from octra.core.errors import OctraError
from octra.core.types import SignedTransaction, SubmissionResult
from octra.rpc.client import NodeClient, RpcResponse

logger = logging.getLogger(__name__)

SEND_TX_PATH = "/send-tx"


@dataclass(frozen=True)
class Accepted:
    tx_hash: str
    pool_info: Optional[Any] = None
    kind: Literal["accepted"] = "accepted"


@dataclass(frozen=True)
class LegacyOk:
    tx_hash: str
    kind: Literal["legacy_ok"] = "legacy_ok"


@dataclass(frozen=True)
class Rejected:
    error: str
    status: int
    kind: Literal["rejected"] = "rejected"


SubmissionReply = Union[Accepted, LegacyOk, Rejected]


def _error_message(resp: RpcResponse) -> str:
    body = resp.body
    if isinstance(body, dict):
        for key in ("error", "message"):
            if body.get(key):
                return str(body[key])
    if body is not None:
        return json.dumps(body)
    if resp.text.strip():
        return resp.text.strip()
    return f"HTTP {resp.status}"


def classify_response(resp: RpcResponse) -> SubmissionReply:
    if resp.ok:
        body = resp.body
        if isinstance(body, dict) and body.get("status") == "accepted":
            return Accepted(tx_hash=str(body.get("tx_hash", "")), pool_info=body.get("pool_info"))

        text = body if isinstance(body, str) else resp.text
        parts = text.split()
        if len(parts) >= 2 and text.strip().lower().startswith("ok"):
            return LegacyOk(tx_hash=parts[-1])

    return Rejected(error=_error_message(resp), status=resp.status)


def to_result(reply: SubmissionReply, response_time: float) -> SubmissionResult:
    if isinstance(reply, Accepted):
        return SubmissionResult(
            success=True, tx_hash=reply.tx_hash, response_time=response_time, pool_info=reply.pool_info
        )
    if isinstance(reply, LegacyOk):
        return SubmissionResult(success=True, tx_hash=reply.tx_hash, response_time=response_time)
    return SubmissionResult(success=False, error=reply.error, response_time=response_time)


async def submit_transaction(signed: SignedTransaction, client: NodeClient) -> SubmissionResult:
    """Send one signed envelope. Every failure mode ends up in result.error."""
    started = time.monotonic()
    try:
        resp = await client.post(SEND_TX_PATH, envelope_json(signed))
    except OctraError as e:
        elapsed = time.monotonic() - started
        logger.warning("send-tx transport failure after %.3fs: %s", elapsed, e)
        return SubmissionResult(success=False, error=str(e), response_time=elapsed)
    except Exception as e:  # anything else the transport throws still becomes a result
        elapsed = time.monotonic() - started
        logger.exception("send-tx failed unexpectedly")
        return SubmissionResult(success=False, error=str(e) or e.__class__.__name__, response_time=elapsed)

    elapsed = time.monotonic() - started
    reply = classify_response(resp)
    if isinstance(reply, Rejected):
        logger.info("Transaction nonce=%s rejected (HTTP %s): %s", signed.tx.nonce, reply.status, reply.error)
    else:
        logger.info("Transaction nonce=%s accepted as %s in %.3fs", signed.tx.nonce, reply.tx_hash, elapsed)
    return to_result(reply, elapsed)
