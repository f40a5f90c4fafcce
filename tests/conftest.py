"""Pytest configuration and test helpers."""

from __future__ import annotations

import copy
import sys
from pathlib import Path
from typing import Callable

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.models import Catalog  # noqa: E402


class FakeTimer:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manually advanced clock implementing the notifier scheduler protocol."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not (timer.cancelled or timer.fired)]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        due = sorted(
            (timer for timer in self.pending if timer.when <= target),
            key=lambda timer: timer.when,
        )
        for timer in due:
            if timer.cancelled:
                continue
            self.now = timer.when
            timer.fired = True
            timer.callback()
        self.now = target


SAMPLE_ITEMS: list[dict[str, object]] = [
    {
        "id": 1,
        "title": "Foo",
        "category": "Drama",
        "locked": False,
        "url": "a.mp4",
    },
    {
        "id": 2,
        "title": "Bar",
        "category": "Comedy",
        "locked": True,
        "password": "x",
        "url": "b.mp4",
    },
    {
        "id": 3,
        "title": "Football Nights",
        "category": "Drama",
        "description": "Friday lights.",
        "url": "c.mp4",
    },
    {
        "id": "series-1",
        "title": "Ghost Stories",
        "category": "Anime",
        "locked": True,
        "password": "abc",
        "episodes": [
            {"id": 1, "title": "Episode 1", "url": "ep1.mp4", "duration": "24:00"},
            {"id": 2, "title": "Episode 2", "url": "ep2.mp4", "duration": "23:40"},
        ],
    },
    {
        "id": "series-2",
        "title": "Open Shorts",
        "category": "Anime",
        "episodes": [
            {"id": "a", "title": "Short A", "url": "short-a.mp4"},
            {"id": "b", "title": "Short B", "url": "short-b.mp4"},
        ],
    },
]


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def catalog() -> Catalog:
    return Catalog.from_payload(SAMPLE_ITEMS)


@pytest.fixture
def sample_items() -> list[dict[str, object]]:
    return copy.deepcopy(SAMPLE_ITEMS)
