"""Pytest configuration for narrative tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from narrative.events import HapticFeedback
from narrative.session import StorySession
from narrative.settings_store import SettingsStore
from narrative.story_graph import StoryGraph


class FakeTimer:
    """Timer stand-in that only fires when a test asks it to."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the callback the way ``threading.Timer`` would after the interval."""
        if not self.cancelled:
            self.callback()


class TimerFactory:
    """Record every timer created so tests can fire them deterministically."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeReviewChannel:
    """Capture review requests without a platform review flow."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.requests = 0
        self.error: Exception | None = None

    def is_available(self) -> bool:
        return self.available

    def request_review(self) -> None:
        if self.error:
            raise self.error
        self.requests += 1


STORY: dict[str, Any] = {
    "start": {
        "text": "A fork in the road.",
        "animation": "fork.riv",
        "choices": [
            {"label": "Enter the forest", "next": "forest"},
            {"label": "Climb the hill", "next": "hill"},
        ],
    },
    "forest": {
        "text": "Tall trees surround you.",
        "animation": "forest.riv",
        "choices": [
            {"label": "Go back", "next": "start"},
            {"label": "Wander off the map", "next": "nowhere"},
        ],
    },
    "hill": {
        "text": "The wind is strong up here.",
        "animation": "hill.riv",
        "choices": [{"label": "Go back", "next": "start"}],
    },
}


@pytest.fixture()
def graph() -> StoryGraph:
    return StoryGraph.from_mapping(STORY)


@pytest.fixture()
def settings(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.yaml")


@pytest.fixture()
def timers() -> TimerFactory:
    return TimerFactory()


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def review_channel() -> FakeReviewChannel:
    return FakeReviewChannel()


@pytest.fixture()
def haptic_events() -> list[HapticFeedback]:
    return []


@pytest.fixture()
def session(
    graph: StoryGraph,
    settings: SettingsStore,
    timers: TimerFactory,
    clock: ManualClock,
    review_channel: FakeReviewChannel,
    haptic_events: list[HapticFeedback],
) -> StorySession:
    return StorySession(
        graph,
        settings,
        haptics=haptic_events.append,
        review_channel=review_channel,
        hold_clock=clock,
        timer_factory=timers,
        wall_clock=lambda: 1_000_000_000_000,
    )
