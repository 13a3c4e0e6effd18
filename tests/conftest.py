"""Shared fixtures for the rate limiter tests."""

import pytest

from ratelimit.store import InMemoryScriptExecutor


class FakeClock:
    """Manually advanced epoch millisecond clock."""

    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """In-memory store that expires keys on the same fake clock."""
    return InMemoryScriptExecutor(clock=clock)
