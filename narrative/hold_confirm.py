"""Hold-to-confirm state machine for a single displayed choice."""

from __future__ import annotations

import logging
import time
from enum import Enum
from threading import Lock, Timer
from typing import Any, Callable, Optional

from narrative.events import HAPTIC_BEGIN, HAPTIC_STOP, HapticFeedback
from shared.settings_keys import DEFAULT_HOLD_SECONDS, HAPTIC_INTENSITY

LOGGER = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


class HoldPhase(Enum):
    IDLE = "idle"
    HOLDING = "holding"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


def daemon_timer(interval: float, callback: Callable[[], None]) -> Timer:
    """Create a daemon ``threading.Timer`` that has not been started yet."""
    timer = Timer(interval, callback)
    timer.daemon = True
    return timer


class HoldToConfirm:
    """
    Turn a sustained press into a committed choice.

    ``start_hold`` arms a timer for ``hold_seconds``. Releasing before it fires
    cancels the hold and returns the session to idle; letting it fire commits
    and invokes ``on_completed`` once. Every hold cycle gets a generation
    number, and the timer callback only acts when its generation is still
    current and the phase is still holding, so a release and a timeout racing
    each other resolve to exactly one outcome.
    """

    def __init__(
        self,
        on_completed: Callable[[], None],
        *,
        feedback: Optional[Callable[[HapticFeedback], None]] = None,
        on_phase_change: Optional[Callable[[HoldPhase], None]] = None,
        hold_seconds: float = DEFAULT_HOLD_SECONDS,
        intensity: int = HAPTIC_INTENSITY,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = daemon_timer,
    ) -> None:
        if hold_seconds <= 0:
            raise ValueError("hold_seconds must be positive.")
        self._on_completed = on_completed
        self._feedback = feedback
        self._on_phase_change = on_phase_change
        self._hold_seconds = hold_seconds
        self._intensity = intensity
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = Lock()
        self._phase = HoldPhase.IDLE
        self._started_at: Optional[float] = None
        self._timer: Any = None
        self._generation = 0
        self._disposed = False

    @property
    def phase(self) -> HoldPhase:
        with self._lock:
            return self._phase

    @property
    def started_at(self) -> Optional[float]:
        with self._lock:
            return self._started_at

    @property
    def hold_seconds(self) -> float:
        return self._hold_seconds

    def start_hold(self, now: Optional[float] = None) -> bool:
        """Begin holding; returns False unless the session was idle."""
        with self._lock:
            if self._disposed or self._phase is not HoldPhase.IDLE:
                return False
            self._generation += 1
            generation = self._generation
            self._started_at = self._clock() if now is None else now
            self._phase = HoldPhase.HOLDING
            self._timer = self._timer_factory(
                self._hold_seconds,
                lambda: self._on_elapsed(generation),
            )
            self._timer.start()
        LOGGER.debug("Hold started (generation %d).", generation)
        self._emit(HAPTIC_BEGIN, self._intensity)
        self._notify(HoldPhase.HOLDING)
        return True

    def release(self, now: Optional[float] = None) -> bool:
        """
        Handle the press being lifted.

        Before the hold duration has elapsed this cancels the hold. A release
        that arrives after the duration but before the timer thread has run
        completes the hold instead. Returns False when nothing was held.
        """
        with self._lock:
            if self._phase is not HoldPhase.HOLDING:
                return False
            current = self._clock() if now is None else now
            assert self._started_at is not None
            generation = self._generation
            completed = current - self._started_at >= self._hold_seconds
            if not completed:
                self._cancel_timer()
                self._started_at = None
                self._phase = HoldPhase.IDLE
        if completed:
            self._on_elapsed(generation)
            return True
        LOGGER.debug("Hold released early; cancelled.")
        self._emit(HAPTIC_STOP, 0)
        self._notify(HoldPhase.CANCELLED)
        self._notify(HoldPhase.IDLE)
        return True

    def reset(self) -> bool:
        """Return a committed or cancelled session to idle for re-display."""
        with self._lock:
            if self._disposed or self._phase not in (HoldPhase.COMMITTED, HoldPhase.CANCELLED):
                return False
            self._phase = HoldPhase.IDLE
            self._started_at = None
        self._notify(HoldPhase.IDLE)
        return True

    def dispose(self) -> None:
        """Tear down the session without committing; stops feedback if holding."""
        with self._lock:
            self._disposed = True
            self._generation += 1
            self._cancel_timer()
            was_holding = self._phase is HoldPhase.HOLDING
            self._started_at = None
            if was_holding:
                self._phase = HoldPhase.IDLE
        if was_holding:
            self._emit(HAPTIC_STOP, 0)

    def progress(self, now: Optional[float] = None) -> float:
        """Fraction of the hold duration elapsed, for drawing the fill animation."""
        with self._lock:
            if self._phase is HoldPhase.COMMITTED:
                return 1.0
            if self._phase is not HoldPhase.HOLDING or self._started_at is None:
                return 0.0
            current = self._clock() if now is None else now
            elapsed = (current - self._started_at) / self._hold_seconds
        return max(0.0, min(1.0, elapsed))

    def _on_elapsed(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._phase is not HoldPhase.HOLDING:
                LOGGER.debug("Stale hold timer ignored (generation %d).", generation)
                return
            self._cancel_timer()
            self._phase = HoldPhase.COMMITTED
        LOGGER.debug("Hold completed (generation %d).", generation)
        self._emit(HAPTIC_STOP, 0)
        self._notify(HoldPhase.COMMITTED)
        self._on_completed()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _emit(self, action: str, intensity: int) -> None:
        if self._feedback is None:
            return
        try:
            self._feedback(HapticFeedback(action=action, intensity=intensity))
        except Exception as exc:
            LOGGER.warning("Haptic feedback %s failed: %s", action, exc)

    def _notify(self, phase: HoldPhase) -> None:
        if self._on_phase_change is None:
            return
        try:
            self._on_phase_change(phase)
        except Exception as exc:
            LOGGER.warning("Hold phase listener failed for %s: %s", phase.value, exc)


__all__ = ["HoldPhase", "HoldToConfirm", "TimerFactory", "daemon_timer"]
