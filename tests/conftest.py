# tests/conftest.py
import base64
import json
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest

from octra.crypto.keys import KeyMaterial
from octra.rpc.client import NodeClient

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def seed_b64(byte: int, length: int = 32) -> str:
    return base64.b64encode(bytes([byte]) * length).decode()


class StubNode:
    """In-memory Octra node. Routes are keyed by (METHOD, path without query)."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, response: Route) -> "StubNode":
        self.routes[(method.upper(), path)] = response
        return self

    def on_json(self, method: str, path: str, body: Any, status: int = 200) -> "StubNode":
        return self.on(method, path, httpx.Response(status, json=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        if callable(route):
            return route(request)
        return route

    def client(self) -> NodeClient:
        return NodeClient("http://node.test", transport=httpx.MockTransport(self.handler))

    def calls(self, method: str, path_prefix: str = "") -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.startswith(path_prefix)]

    def sent_bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls("POST", "/send-tx")]


@pytest.fixture
def node() -> StubNode:
    return StubNode()


@pytest.fixture
def secret() -> str:
    return seed_b64(1)


@pytest.fixture
def keys(secret) -> KeyMaterial:
    return KeyMaterial.from_secret_b64(secret)


@pytest.fixture
def recipient() -> str:
    return KeyMaterial(bytes([7]) * 32).address
