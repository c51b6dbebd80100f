"""Unit-test isolation: no ambient environment, no global observability side effects."""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

import openrouter_gateway.observability.logging as log_mod
from openrouter_gateway.observability.tracing import disable_tracing


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith("OPENROUTER_"):
            monkeypatch.delenv(name)
    # Keep pytest's log capture handler installed on the root logger
    monkeypatch.setattr(log_mod, "_CONFIGURED", True)
    disable_tracing()
    yield
    disable_tracing()
