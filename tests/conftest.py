from __future__ import annotations

import asyncio
from typing import Any

import pytest

from errors import DeliveryError, ReadError


class FakeReader:
    def __init__(self, snapshot: Any = None, error: Exception | None = None, delay: float = 0.0) -> None:
        self.snapshot = snapshot
        self.error = error
        self.delay = delay
        self.calls = 0

    async def get_snapshot(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.snapshot


class FakeNotifier:
    """Records every send; tokens listed in `fail_tokens` raise DeliveryError."""

    def __init__(self, fail_tokens: set[str] | None = None, crash_tokens: set[str] | None = None) -> None:
        self.fail_tokens = fail_tokens or set()
        self.crash_tokens = crash_tokens or set()
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, token: str, title: str, body: str) -> str:
        if token in self.fail_tokens:
            raise DeliveryError("registration-token-not-registered", token=token)
        if token in self.crash_tokens:
            raise RuntimeError("connection reset")
        self.sent.append((token, title, body))
        return f"projects/test/messages/{len(self.sent)}"


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def failing_reader() -> FakeReader:
    return FakeReader(error=ReadError("permission denied"))
