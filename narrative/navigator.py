"""Navigation state for a story session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Callable, Optional

from narrative.reveal_gate import TextRevealGate
from narrative.story_graph import StoryGraph, StoryNode
from shared.settings_keys import START_NODE_ID

LOGGER = logging.getLogger(__name__)

TransitionListener = Callable[[str, int], None]


class NavigationError(RuntimeError):
    """Raised when a commit is attempted while another is still running."""


@dataclass
class NavigatorState:
    """Track the current node and how many transitions have been committed."""

    current_node_id: str = START_NODE_ID
    transition_count: int = 0
    history: list[str] = field(default_factory=list)

    def snapshot(self) -> dict[str, object]:
        """Return a serialisable view of the navigation state."""
        return {
            "current_node_id": self.current_node_id,
            "transition_count": self.transition_count,
            "history": list(self.history),
        }


class StoryNavigator:
    """
    Single mutation point for moving through a story graph.

    Commits are serialised: a second thread waits for the running commit to
    finish (including its transition listeners), and a commit issued from
    inside a listener raises ``NavigationError``.
    """

    def __init__(self, graph: StoryGraph, gate: TextRevealGate) -> None:
        self._graph = graph
        self._gate = gate
        self._state = NavigatorState()
        self._lock = RLock()
        self._in_commit = False
        self._listeners: list[TransitionListener] = []
        self._gate.on_node_changed(self._state.current_node_id)

    def add_transition_listener(self, listener: TransitionListener) -> Callable[[], None]:
        """Call ``listener(node_id, transition_count)`` after each commit."""
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    @property
    def current_node_id(self) -> str:
        """Stored node id, which may be absent from the graph."""
        with self._lock:
            return self._state.current_node_id

    @property
    def transition_count(self) -> int:
        """Number of commits since the session started."""
        with self._lock:
            return self._state.transition_count

    def current_node(self) -> StoryNode:
        """Resolve the stored node id, falling back to the start node."""
        return self._graph.resolve(self.current_node_id)

    def history(self) -> list[str]:
        """Committed target ids in order."""
        with self._lock:
            return list(self._state.history)

    def snapshot(self) -> dict[str, object]:
        """Return a serialisable copy of the navigation state."""
        with self._lock:
            return self._state.snapshot()

    def commit(self, target_node_id: str, expected_node_id: Optional[str] = None) -> bool:
        """
        Move to ``target_node_id`` and notify transition listeners.

        When ``expected_node_id`` is given the commit only applies if the story
        is still on that node; a choice from a node that has already been left
        is discarded and False is returned.
        """
        with self._lock:
            if self._in_commit:
                raise NavigationError(
                    f"Commit to {target_node_id} issued while another commit is running."
                )
            if expected_node_id is not None and expected_node_id != self._state.current_node_id:
                LOGGER.info(
                    "Discarding commit to %s from %s; story is now on %s.",
                    target_node_id,
                    expected_node_id,
                    self._state.current_node_id,
                )
                return False
            if target_node_id not in self._graph:
                LOGGER.warning(
                    "Committed unknown node %s; it will resolve to %s.",
                    target_node_id,
                    START_NODE_ID,
                )
            self._in_commit = True
            try:
                self._state.current_node_id = target_node_id
                self._state.transition_count += 1
                self._state.history.append(target_node_id)
                count = self._state.transition_count
                self._gate.on_node_changed(target_node_id)
                LOGGER.info("Node changed to %s (transition %d).", target_node_id, count)
                for listener in list(self._listeners):
                    try:
                        listener(target_node_id, count)
                    except Exception as exc:
                        LOGGER.warning("Transition listener %r failed: %s", listener, exc)
            finally:
                self._in_commit = False
        return True

    def restart(self) -> None:
        """Return to the start node with a fresh transition count."""
        with self._lock:
            if self._in_commit:
                raise NavigationError("Cannot restart while a commit is running.")
            self._state = NavigatorState()
            self._gate.on_node_changed(self._state.current_node_id)
        LOGGER.info("Story restarted at %s.", START_NODE_ID)


__all__ = ["NavigationError", "NavigatorState", "StoryNavigator", "TransitionListener"]
