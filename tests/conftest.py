import random
from typing import Any, Callable, List, Optional, Tuple

import pytest
from typer.testing import CliRunner

from bamboocli.domain.interfaces.transport import Transport
from bamboocli.infrastructure.config import settings as config_settings


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested waits and advances the fake clock instead of sleeping."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)


class ScriptedTransport(Transport):
    """Transport returning queued results; exceptions in the queue are raised."""

    def __init__(self, *results: Any):
        self.results = list(results)
        self.calls: List[Tuple[str, str, Optional[dict], Optional[float]]] = []
        self.closed = False
        self.before_return: Optional[Callable[[], Any]] = None

    def queue(self, *results: Any) -> None:
        self.results.extend(results)

    async def send(self, method, path, params=None, timeout_seconds=None):
        self.calls.append((method, path, params, timeout_seconds))
        if self.before_return is not None:
            await self.before_return()
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(clock: FakeClock) -> FakeSleep:
    return FakeSleep(clock)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep real credentials and earlier test overrides out of every test."""
    for name in ("BAMBOO_API_KEY", "BAMBOO_SUBDOMAIN"):
        monkeypatch.delenv(name, raising=False)
    config_settings.clear_test_config()
    yield
    config_settings.clear_test_config()
