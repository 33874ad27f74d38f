from __future__ import annotations

import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kana_battle.kana import KanaCatalog  # noqa: E402
from kana_battle.ledger import AccuracyLedger  # noqa: E402
from kana_battle.storage import ProgressStore  # noqa: E402

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class _Handle:
    def __init__(self, due: float, callback) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """Timer host driven by hand: nothing fires until `advance` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: list[_Handle] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback) -> _Handle:
        handle = _Handle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            ready = [h for h in self._handles if not h.cancelled and h.due <= target]
            if not ready:
                break
            handle = min(ready, key=lambda h: h.due)
            self._handles.remove(handle)
            self.now = handle.due
            handle.callback()
        self.now = target


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture(scope="session")
def catalog() -> KanaCatalog:
    return KanaCatalog()


@pytest.fixture
def store():
    progress = ProgressStore(":memory:")
    yield progress
    progress.close()


@pytest.fixture
def ledger(store) -> AccuracyLedger:
    return AccuracyLedger(store=store)


@pytest.fixture
def now() -> datetime:
    return NOW
