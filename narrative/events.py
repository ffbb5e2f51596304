"""Events emitted by a story session and the bus that delivers them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable

LOGGER = logging.getLogger(__name__)

HAPTIC_BEGIN = "begin"
HAPTIC_STOP = "stop"


@dataclass(frozen=True)
class NodeChanged:
    """The navigator moved to ``node_id``."""

    node_id: str
    transition_count: int


@dataclass(frozen=True)
class ChoicesRevealed:
    """A node's text finished revealing and its choices became interactive."""

    node_id: str
    choice_count: int


@dataclass(frozen=True)
class HoldPhaseChanged:
    """A displayed choice's hold session changed phase."""

    node_id: str
    choice_index: int
    phase: str


@dataclass(frozen=True)
class HapticFeedback:
    """Request to begin or stop haptic feedback at a given intensity."""

    action: str
    intensity: int = 0


@dataclass(frozen=True)
class ReviewPromptRequested:
    """The presentation layer should show the rating prompt."""

    user_name: str
    title: str
    body: str


Listener = Callable[[Any], None]


class EventBus:
    """Deliver events to subscribed listeners in subscription order."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: Any) -> None:
        """Deliver ``event`` to every listener; listener errors are logged."""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:
                LOGGER.warning("Listener %r failed for %s: %s", listener, type(event).__name__, exc)


__all__ = [
    "HAPTIC_BEGIN",
    "HAPTIC_STOP",
    "ChoicesRevealed",
    "EventBus",
    "HapticFeedback",
    "HoldPhaseChanged",
    "NodeChanged",
    "ReviewPromptRequested",
]
