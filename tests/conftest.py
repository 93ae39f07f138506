from pathlib import Path
from typing import Callable, List, Tuple

import pytest


class Deadline(Exception):
    """Raised by FakeClock.sleep once the configured limit has passed."""


class FakeClock:
    """
    Deterministic stand-in for time.monotonic/time.sleep.

    sleep() advances the clock and then runs every callback scheduled at or
    before the new time, which is how tests play the part of the writer.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []
        self.limit = None
        self._events: List[Tuple[float, int, Callable[[], None]]] = []
        self._seq = 0

    def __call__(self) -> float:
        return self.now

    def at(self, when: float, callback: Callable[[], None]) -> None:
        self._events.append((when, self._seq, callback))
        self._seq += 1
        self._events.sort()

    def advance(self, seconds: float) -> None:
        self.now += seconds
        self._fire()

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        self._fire()
        if self.limit is not None and self.now > self.limit:
            raise Deadline(self.now)

    def _fire(self) -> None:
        while self._events and self._events[0][0] <= self.now:
            _, _, callback = self._events.pop(0)
            callback()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(tmp_path: Path) -> Path:
    path = tmp_path / "ledger.bin"
    path.write_bytes(b"")
    return path


def append(path: Path, data: bytes) -> None:
    with path.open("ab") as handle:
        handle.write(data)
