"""Common test fixtures for pulsewatch tests."""

import asyncio
import os

import pytest

from pulsewatch.errors import PeripheralDisconnected


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLiveSource:
    """
    Stand-in for the BLE source.

    Each start() consumes the next outcome: None connects, an exception
    instance is raised.
    """

    def __init__(self, outcomes=(), start_delay: float = 0.0):
        self.outcomes = list(outcomes)
        self.start_delay = start_delay
        self.on_sample = None
        self.on_disconnect = None
        self.connected = False
        self.start_calls = 0
        self.stop_calls = 0

    async def start(self) -> None:
        self.start_calls += 1
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if outcome is not None:
            raise outcome
        self.connected = True

    async def stop(self) -> None:
        self.stop_calls += 1
        self.connected = False

    def drop(self) -> None:
        """Simulate the peripheral going away."""
        self.connected = False
        self.on_disconnect(PeripheralDisconnected("test peripheral dropped"))


async def wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.001)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_live_source():
    return FakeLiveSource


@pytest.fixture
def waiter():
    return wait_until


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Private copy of os.environ and an empty working directory."""
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for name in list(os.environ):
        if name.startswith("PULSEWATCH_"):
            del os.environ[name]
    monkeypatch.chdir(tmp_path)
    return tmp_path
