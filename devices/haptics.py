"""Vibration motor driver used as the haptic feedback sink."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Optional

try:  # pragma: no cover - executed when gpiozero is available
    from gpiozero import DigitalOutputDevice
except ImportError:  # pragma: no cover - executed in test/mock environments
    DigitalOutputDevice = None  # type: ignore[assignment,misc]

from narrative.events import HAPTIC_BEGIN, HAPTIC_STOP, HapticFeedback
from shared.settings_keys import HAPTIC_PATTERN_MS

LOGGER = logging.getLogger(__name__)

DEFAULT_MOTOR_PIN = 18


class VibrationMotor:
    """
    Pulse a vibration motor while a choice is being held.

    The motor follows ``pattern_ms`` (initial delay, on, off) and repeats until
    stopped. Missing hardware and driver errors are logged and ignored.
    """

    def __init__(
        self,
        pin: int = DEFAULT_MOTOR_PIN,
        pattern_ms: tuple[int, int, int] = HAPTIC_PATTERN_MS,
        device: Optional[Any] = None,
    ) -> None:
        self._pattern_ms = pattern_ms
        self._lock = Lock()
        self._active = False
        self._device = device
        if self._device is None and DigitalOutputDevice is not None:
            try:
                self._device = DigitalOutputDevice(pin, active_high=True)
                LOGGER.info("Vibration motor ready on pin %d.", pin)
            except Exception as exc:
                LOGGER.warning("Vibration motor unavailable on pin %d: %s", pin, exc)
                self._device = None

    @property
    def available(self) -> bool:
        return self._device is not None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def handle(self, event: HapticFeedback) -> None:
        """Apply a begin/stop feedback request."""
        if event.action == HAPTIC_BEGIN:
            self.begin(event.intensity)
        elif event.action == HAPTIC_STOP:
            self.stop()
        else:
            LOGGER.debug("Unknown haptic action %s ignored.", event.action)

    def begin(self, intensity: int) -> None:
        if intensity <= 0:
            return
        with self._lock:
            if self._device is None:
                LOGGER.debug("Vibration request ignored; motor unavailable.")
                return
            _delay, on_ms, off_ms = self._pattern_ms
            try:
                self._device.blink(on_time=on_ms / 1000.0, off_time=off_ms / 1000.0)
            except Exception as exc:
                LOGGER.warning("Error starting vibration: %s", exc)
                return
            self._active = True
        LOGGER.debug("Continuous vibration started (intensity %d).", intensity)

    def stop(self) -> None:
        with self._lock:
            if self._device is None or not self._active:
                return
            self._active = False
            try:
                self._device.off()
            except Exception as exc:
                LOGGER.warning("Error stopping vibration: %s", exc)
                return
        LOGGER.debug("Vibration stopped.")

    def close(self) -> None:
        self.stop()
        if self._device is not None:
            try:
                self._device.close()
            except Exception as exc:  # pragma: no cover
                LOGGER.debug("Failed to close vibration motor: %s", exc)


__all__ = ["DEFAULT_MOTOR_PIN", "VibrationMotor"]
