from collections.abc import Sequence
from typing import Any

import pytest

from imbue.condition_poll.data_types import ProbeResult
from imbue.condition_poll.interfaces import ElementLocatorInterface
from imbue.condition_poll.primitives import LocateStrategy
from imbue.condition_poll.primitives import Selector


class FakeClock:
    """Monotonic clock whose time only moves when sleep() is awaited or advance() is called."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedProbe:
    """Probe that answers from a fixed script, repeating the last answer once the script runs out.

    Each entry is either a bool (condition holds or not) or an exception instance to raise.
    probe_duration_ms moves the fake clock forward on every call to simulate a slow probe.
    """

    def __init__(
        self,
        answers: Sequence[bool | Exception],
        clock: FakeClock | None = None,
        probe_duration_ms: float = 0.0,
    ) -> None:
        self._answers = list(answers)
        self._clock = clock
        self._probe_duration_ms = probe_duration_ms
        self.calls: list[tuple[str, float | None]] = []

    async def __call__(self, selector: Selector) -> ProbeResult:
        self.calls.append((str(selector), self._clock() if self._clock is not None else None))
        if self._clock is not None:
            self._clock.advance_ms(self._probe_duration_ms)
        answer = self._answers[min(len(self.calls), len(self._answers)) - 1]
        if isinstance(answer, Exception):
            raise answer
        return ProbeResult(did_succeed=answer, raw={"value": answer})


class FakeElementLocator(ElementLocatorInterface):
    """Locator where the element appears after a given number of lookups (or never)."""

    def __init__(self, appears_on_lookup: int | None = None, error: Exception | None = None) -> None:
        self._appears_on_lookup = appears_on_lookup
        self._error = error
        self.lookups: list[tuple[str, LocateStrategy]] = []

    async def find_elements(self, selector: Selector, strategy: LocateStrategy) -> Sequence[Any]:
        self.lookups.append((str(selector), strategy))
        if self._error is not None:
            raise self._error
        if self._appears_on_lookup is not None and len(self.lookups) >= self._appears_on_lookup:
            return [{"ELEMENT": "0"}]
        return []


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolate_poll_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings tests independent of the developer's environment."""
    monkeypatch.delenv("CONDITION_POLL_POLL_INTERVAL_MS", raising=False)
    monkeypatch.delenv("CONDITION_POLL_TIMEOUT_MS", raising=False)
