"""Story session wiring: navigation, reveal gating, holds and the rating prompt."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Optional, Protocol

import yaml  # type: ignore[import]

from narrative.events import (
    HAPTIC_BEGIN,
    ChoicesRevealed,
    EventBus,
    HapticFeedback,
    HoldPhaseChanged,
    NodeChanged,
    ReviewPromptRequested,
)
from narrative.hold_confirm import HoldPhase, HoldToConfirm, TimerFactory, daemon_timer
from narrative.navigator import StoryNavigator
from narrative.review_prompt import PromptDecision, ReviewPromptScheduler, build_prompt_text
from narrative.reveal_gate import TextRevealGate
from narrative.settings_store import SettingsStore
from narrative.story_graph import Choice, StoryGraph, StoryNode
from shared.settings_keys import BACKGROUND_VOLUME, DEFAULT_HOLD_SECONDS, HAPTIC_INTENSITY

LOGGER = logging.getLogger(__name__)

SETTINGS_WRITE_ERRORS = (OSError, yaml.YAMLError)


class ReviewChannel(Protocol):
    """Platform in-app review flow."""

    def is_available(self) -> bool: ...

    def request_review(self) -> None: ...


class MusicPlayer(Protocol):
    """Background music backend such as ``devices.audio_player.AudioPlayer``."""

    def load(self, path: Path) -> None: ...

    def set_volume(self, value_0_to_1: float) -> None: ...

    def play(self, loop: bool = False) -> bool: ...

    def stop(self) -> None: ...


class UnavailableReviewChannel:
    """Review channel for platforms without an in-app review flow."""

    def is_available(self) -> bool:
        return False

    def request_review(self) -> None:
        LOGGER.debug("Review requested but no review channel is configured.")


def epoch_millis() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class StorySession:
    """
    Drive one playthrough of a story graph.

    The session owns the navigator, the reveal gate and one hold-to-confirm
    machine per displayed choice. Presentation layers feed it gestures and
    reveal completions, and observe it through ``events``.
    """

    def __init__(
        self,
        graph: StoryGraph,
        settings: SettingsStore,
        *,
        haptics: Optional[Callable[[HapticFeedback], None]] = None,
        review_channel: Optional[ReviewChannel] = None,
        music: Optional[MusicPlayer] = None,
        music_path: Optional[Path] = None,
        scheduler: Optional[ReviewPromptScheduler] = None,
        hold_seconds: float = DEFAULT_HOLD_SECONDS,
        haptic_intensity: int = HAPTIC_INTENSITY,
        wall_clock: Callable[[], int] = epoch_millis,
        hold_clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = daemon_timer,
    ) -> None:
        self.graph = graph
        self.settings = settings
        self.events = EventBus()
        self.gate = TextRevealGate()
        self.navigator = StoryNavigator(graph, self.gate)
        self.scheduler = scheduler or ReviewPromptScheduler()
        self._haptics = haptics
        self._review_channel: ReviewChannel = review_channel or UnavailableReviewChannel()
        self._music = music
        self._music_path = music_path
        self._hold_seconds = hold_seconds
        self._haptic_intensity = haptic_intensity
        self._wall_clock = wall_clock
        self._hold_clock = hold_clock
        self._timer_factory = timer_factory
        self._lock = RLock()
        self._holds: list[HoldToConfirm] = []
        self._holds_node_id: Optional[str] = None
        self._review_pending = False
        self._closed = False
        self.navigator.add_transition_listener(self._on_transition)

    def start(self) -> None:
        """Begin the playthrough and start background music when configured."""
        if self._music is not None and self._music_path is not None:
            try:
                self._music.load(self._music_path)
                self._music.set_volume(BACKGROUND_VOLUME)
                self._music.play(loop=True)
                LOGGER.info("Background music started from %s.", self._music_path)
            except Exception as exc:
                LOGGER.warning("Error initializing audio: %s", exc)
        node = self.navigator.current_node()
        self.events.publish(NodeChanged(node_id=node.id, transition_count=0))

    def close(self) -> None:
        """Dispose pending holds and stop background music."""
        with self._lock:
            self._closed = True
            self._dispose_holds()
        if self._music is not None:
            try:
                self._music.stop()
            except Exception as exc:
                LOGGER.warning("Error stopping audio: %s", exc)
        LOGGER.info("Story session closed.")

    def current_node(self) -> StoryNode:
        """Return the node the renderer should display."""
        return self.navigator.current_node()

    def choices_visible(self) -> bool:
        """Whether the current node's text reveal has finished."""
        return self.gate.is_choices_visible()

    def visible_choices(self) -> tuple[Choice, ...]:
        """Choices the renderer may draw as interactive; empty until revealed."""
        if not self.gate.is_choices_visible():
            return ()
        return self.navigator.current_node().choices

    def reveal_finished(self, node_id: str) -> bool:
        """Record that the renderer finished revealing the text for ``node_id``."""
        tracked = self.navigator.current_node_id
        node = self.graph.resolve(tracked)
        if node_id != tracked and node_id == node.id and tracked not in self.graph:
            # The renderer only sees the resolved fallback node.
            node_id = tracked
        with self._lock:
            if not self.gate.on_reveal_finished(node_id):
                return False
            self._build_holds(node_id, node)
        self.events.publish(ChoicesRevealed(node_id=node_id, choice_count=len(node.choices)))
        return True

    def start_hold(self, index: int) -> bool:
        """Begin holding choice ``index``; False while choices are hidden or busy."""
        hold = self._hold_for(index)
        if hold is None:
            return False
        return hold.start_hold()

    def release(self, index: int) -> bool:
        """Release choice ``index``; False when it was not being held."""
        hold = self._hold_for(index)
        if hold is None:
            return False
        return hold.release()

    def hold_phases(self) -> list[HoldPhase]:
        """Current phase of each displayed choice, in display order."""
        with self._lock:
            return [hold.phase for hold in self._holds]

    def restart(self) -> None:
        """Return to the start node; the rating history is kept."""
        with self._lock:
            self._dispose_holds()
        self.navigator.restart()
        self.events.publish(
            NodeChanged(node_id=self.navigator.current_node_id, transition_count=0)
        )

    def respond_to_review(self, accepted: bool) -> bool:
        """
        Apply the player's answer to a shown rating prompt.

        Returns False when no prompt was pending.
        """
        with self._lock:
            if not self._review_pending:
                return False
            self._review_pending = False
        if not accepted:
            LOGGER.info("User declined to rate.")
            return True
        try:
            self._review_channel.request_review()
        except Exception as exc:
            LOGGER.warning("Error requesting review: %s", exc)
        try:
            self.settings.set_has_rated(True)
        except SETTINGS_WRITE_ERRORS as exc:
            LOGGER.warning("Unable to record rating: %s", exc)
        LOGGER.info("User agreed to rate.")
        return True

    @property
    def review_pending(self) -> bool:
        """Whether a rating prompt is awaiting the player's answer."""
        with self._lock:
            return self._review_pending

    def snapshot(self) -> dict[str, Any]:
        """Return a serialisable view of node, reveal, holds and settings."""
        node = self.navigator.current_node()
        reveal = self.gate.state()
        with self._lock:
            holds = [
                {
                    "label": choice.label,
                    "phase": hold.phase.value,
                    "progress": hold.progress(),
                }
                for choice, hold in zip(node.choices, self._holds)
            ]
        return {
            "navigator": self.navigator.snapshot(),
            "node": {
                "id": node.id,
                "text": node.text,
                "animation": node.animation_ref,
                "choices": [choice.label for choice in node.choices],
            },
            "reveal": {"node_id": reveal.node_id, "revealed": reveal.revealed},
            "holds": holds,
            "review_pending": self.review_pending,
            "settings": self.settings.snapshot(),
        }

    def _hold_for(self, index: int) -> Optional[HoldToConfirm]:
        current_id = self.navigator.current_node_id
        with self._lock:
            if self._closed or not self.gate.is_choices_visible():
                LOGGER.debug("Gesture on choice %d ignored; choices hidden.", index)
                return None
            if self._holds_node_id != current_id:
                return None
            if not 0 <= index < len(self._holds):
                LOGGER.debug("Gesture on unknown choice %d ignored.", index)
                return None
            return self._holds[index]

    def _build_holds(self, node_id: str, node: StoryNode) -> None:
        self._dispose_holds()
        self._holds = [self._make_hold(node_id, index, choice) for index, choice in enumerate(node.choices)]
        self._holds_node_id = node_id

    def _make_hold(self, node_id: str, index: int, choice: Choice) -> HoldToConfirm:
        def on_completed() -> None:
            self._commit_choice(node_id, choice)

        def on_phase_change(phase: HoldPhase) -> None:
            self.events.publish(HoldPhaseChanged(node_id=node_id, choice_index=index, phase=phase.value))

        return HoldToConfirm(
            on_completed,
            feedback=self._forward_haptics,
            on_phase_change=on_phase_change,
            hold_seconds=self._hold_seconds,
            intensity=self._haptic_intensity,
            clock=self._hold_clock,
            timer_factory=self._timer_factory,
        )

    def _dispose_holds(self) -> None:
        for hold in self._holds:
            hold.dispose()
        self._holds = []
        self._holds_node_id = None

    def _commit_choice(self, node_id: str, choice: Choice) -> None:
        LOGGER.info("Choice '%s' committed on node %s.", choice.label, node_id)
        self.navigator.commit(choice.target_node_id, expected_node_id=node_id)

    def _forward_haptics(self, event: HapticFeedback) -> None:
        if event.action == HAPTIC_BEGIN and not self.settings.get_vibration_enabled():
            return
        self.events.publish(event)
        if self._haptics is None:
            return
        try:
            self._haptics(event)
        except Exception as exc:
            LOGGER.warning("Haptic sink failed for %s: %s", event.action, exc)

    def _on_transition(self, node_id: str, transition_count: int) -> None:
        with self._lock:
            self._dispose_holds()
        self.events.publish(NodeChanged(node_id=node_id, transition_count=transition_count))
        self._maybe_prompt_review(transition_count)

    def _maybe_prompt_review(self, transition_count: int) -> None:
        now = self._wall_clock()
        decision = self.scheduler.on_transition(transition_count, now, self.settings.review_record())
        if decision is not PromptDecision.SHOW:
            return
        try:
            available = self._review_channel.is_available()
        except Exception as exc:
            LOGGER.warning("Review channel check failed: %s", exc)
            return
        if not available:
            LOGGER.debug("Review prompt due but review channel unavailable.")
            return
        user_name = self.settings.get_user_name()
        title, body = build_prompt_text(user_name)
        try:
            self.settings.set_last_prompt_at(now)
        except SETTINGS_WRITE_ERRORS as exc:
            LOGGER.warning("Unable to record rating prompt time: %s", exc)
        with self._lock:
            self._review_pending = True
        self.events.publish(ReviewPromptRequested(user_name=user_name, title=title, body=body))
        LOGGER.info("Review requested for user: %s", user_name)


__all__ = ["MusicPlayer", "ReviewChannel", "StorySession", "UnavailableReviewChannel", "epoch_millis"]
