# octra/rpc/client.py
"""
Async HTTP transport to an Octra node.

Every call returns an RpcResponse (status, raw text, parsed JSON or None)
instead of raising on HTTP status, so callers decide what a 404 or a
plain-text body means. Only failures that never produced a response raise
RpcTransportError. No retries here.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from octra import __version__
from octra.core.errors import RpcTransportError

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://octra.network"
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class RpcResponse:
    status: int
    text: str
    body: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _parse_body(text: str) -> Optional[Any]:
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


class NodeClient:
    """Thin wrapper around httpx.AsyncClient bound to one RPC base URL."""

    def __init__(
        self,
        base_url: str = DEFAULT_RPC_URL,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        merged: Dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": f"octra-py/{__version__}",
        }
        if headers:
            merged.update(headers)
        self._client: Optional[httpx.AsyncClient] = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=merged,
            transport=transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Node client is closed")
        return self._client

    async def request(self, method: str, path: str, payload: Any = None) -> RpcResponse:
        kwargs: Dict[str, Any] = {}
        if payload is not None:
            kwargs["content"] = payload if isinstance(payload, (str, bytes)) else json.dumps(payload, separators=(",", ":"))
            kwargs["headers"] = {"Content-Type": "application/json"}
        try:
            resp = await self.client.request(method.upper(), path, **kwargs)
        except httpx.TimeoutException as e:
            raise RpcTransportError(f"timeout: {method.upper()} {path}") from e
        except httpx.HTTPError as e:
            raise RpcTransportError(str(e) or e.__class__.__name__) from e

        text = resp.text
        logger.debug("%s %s -> %s", method.upper(), path, resp.status_code)
        return RpcResponse(status=resp.status_code, text=text, body=_parse_body(text))

    async def get(self, path: str) -> RpcResponse:
        return await self.request("GET", path)

    async def post(self, path: str, payload: Any) -> RpcResponse:
        return await self.request("POST", path, payload)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "NodeClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
