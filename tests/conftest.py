"""Shared test fixtures for openrouter-gateway."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from openrouter_gateway.client import GatewayClient
from openrouter_gateway.config import GatewayConfig, load_config
from openrouter_gateway.rate_limit import RateLimiter
from openrouter_gateway.testing import FakeOpenRouter
from openrouter_gateway.transport import RetryingTransport


class SleepRecorder:
    """Drop-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake() -> FakeOpenRouter:
    """Return a fresh scripted OpenRouter upstream."""
    return FakeOpenRouter()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_config() -> Callable[..., GatewayConfig]:
    """Build a config with a fake key; keyword overrides win."""

    def _make(**overrides: Any) -> GatewayConfig:
        overrides.setdefault("api_key", "sk-or-test-key")
        return load_config(**overrides)

    return _make


@pytest.fixture
def test_config(make_config: Callable[..., GatewayConfig]) -> GatewayConfig:
    return make_config()


@pytest.fixture
def make_transport(
    fake: FakeOpenRouter, sleeps: SleepRecorder
) -> Callable[[GatewayConfig], RetryingTransport]:
    """RetryingTransport wired to ``fake`` with no real sleeping and zero jitter."""

    def _make(config: GatewayConfig) -> RetryingTransport:
        return RetryingTransport(
            config,
            http_client=fake.http_client(),
            sleep=sleeps,
            rng=lambda: 0.0,
        )

    return _make


@pytest.fixture
def make_client(
    make_config: Callable[..., GatewayConfig],
    make_transport: Callable[[GatewayConfig], RetryingTransport],
) -> Callable[..., GatewayClient]:
    """GatewayClient over ``fake``; keyword arguments are config overrides.

    ``rate_limiter`` is passed through to the client instead.
    """

    def _make(*, rate_limiter: RateLimiter | None = None, **overrides: Any) -> GatewayClient:
        config = make_config(**overrides)
        return GatewayClient(
            config, transport=make_transport(config), rate_limiter=rate_limiter
        )

    return _make
