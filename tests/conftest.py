"""Shared fixtures for gateway client tests.

Provides a controllable monotonic clock, a recording sleep that advances
that clock, and a helper to build clients over ``httpx.MockTransport``.
"""

from typing import Callable, List

import httpx
import pytest

from evolution_gateway.config import RateLimitConfig, RetryConfig
from evolution_gateway.core.client import GatewayClient
from evolution_gateway.core.connections import ConnectionRegistry


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep that records durations and advances a FakeClock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(fake_clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(fake_clock)


@pytest.fixture
def registry() -> ConnectionRegistry:
    reg = ConnectionRegistry()
    reg.register("default", "https://x.test", "key-default", instance="main")
    reg.register("tenant1", "https://y.test", "key-tenant1", instance="main")
    return reg


@pytest.fixture
def make_client(registry: ConnectionRegistry, fake_sleep: RecordingSleep) -> Callable[..., GatewayClient]:
    """Factory building a client whose transport is ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> GatewayClient:
        kwargs.setdefault("retry", RetryConfig())
        kwargs.setdefault("rate_limiting", RateLimitConfig(enabled=False))
        kwargs.setdefault("sleep_func", fake_sleep)
        return GatewayClient(registry, transport=httpx.MockTransport(handler), **kwargs)

    return _make
