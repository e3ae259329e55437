from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs

import httpx
import pytest

from pkg_fireauth.domain.constants import Endpoint
from pkg_fireauth.domain.value_objects import ApiKey

NOW = 1_700_000_000.0


class FakeClock:
    """Clock whose time only moves when `sleep` is awaited."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


Handler = Callable[[Endpoint, Dict[str, Any]], Dict[str, Any]]


class FakeTransport:
    """In-memory Transport; `handler` answers or raises per call."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.calls: List[Tuple[Endpoint, Dict[str, Any], Optional[Mapping[str, str]]]] = []

    async def send(self, endpoint, api_key, body, headers=None):
        self.calls.append((endpoint, dict(body), headers))
        return self.handler(endpoint, dict(body))

    def count(self, endpoint: Endpoint) -> int:
        return sum(1 for e, _, _ in self.calls if e is endpoint)

    def bodies(self, endpoint: Endpoint) -> List[Dict[str, Any]]:
        return [b for e, b, _ in self.calls if e is endpoint]


def form_of(request: httpx.Request) -> Dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def json_of(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def api_key() -> ApiKey:
    return ApiKey("test-api-key")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
