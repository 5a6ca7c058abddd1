import os
import sys
from pathlib import Path

import httpx
import pytest

# Add the project root to sys.path so 'spotsim' can be imported
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from spotsim.config import Settings  # noqa: E402
from spotsim.sandbox import Sandbox  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Upstream:
    """Stand-in for the price API. Queue responses; records every request."""

    def __init__(self, price=3500) -> None:
        self.price = price
        self.responses = []
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.responses:
            resp = self.responses.pop(0)
            if isinstance(resp, Exception):
                raise resp
            return resp
        return httpx.Response(200, json={"ethereum": {"usd": self.price}})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def sandbox(upstream, clock):
    return Sandbox(Settings(), client=upstream.client(), clock=clock)
