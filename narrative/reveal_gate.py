"""Gate that keeps choices hidden until a node's text has finished revealing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock

from shared.settings_keys import START_NODE_ID

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevealState:
    """Reveal progress for the node currently on screen."""

    node_id: str
    revealed: bool = False


class TextRevealGate:
    """
    Track whether the current node's text reveal has completed.

    The renderer animates text on its own clock, so completion signals can
    arrive after the story has already moved on. Only a completion for the
    tracked node flips the gate.
    """

    def __init__(self, node_id: str = START_NODE_ID) -> None:
        self._lock = Lock()
        self._state = RevealState(node_id=node_id)

    def on_node_changed(self, node_id: str) -> None:
        """Start tracking ``node_id`` with its choices hidden."""
        with self._lock:
            self._state = RevealState(node_id=node_id)
        LOGGER.debug("Reveal reset for node %s.", node_id)

    def on_reveal_finished(self, node_id: str) -> bool:
        """
        Mark the reveal for ``node_id`` as complete.

        Returns True when this call made the choices visible, False for stale or
        repeated notifications.
        """
        with self._lock:
            if node_id != self._state.node_id:
                LOGGER.debug(
                    "Ignoring reveal completion for %s; current node is %s.",
                    node_id,
                    self._state.node_id,
                )
                return False
            if self._state.revealed:
                return False
            self._state = RevealState(node_id=node_id, revealed=True)
        LOGGER.debug("Text reveal finished for node %s.", node_id)
        return True

    def is_choices_visible(self) -> bool:
        """Whether choices for the tracked node may be shown."""
        with self._lock:
            return self._state.revealed

    def state(self) -> RevealState:
        """Return the current reveal state snapshot."""
        with self._lock:
            return self._state


__all__ = ["RevealState", "TextRevealGate"]
