"""Utilities for loading and persisting player settings."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from threading import Lock
from typing import Any

import yaml  # type: ignore[import]

from narrative.review_prompt import ReviewPromptRecord
from shared.settings_keys import (
    BACKGROUND_OPACITY,
    DEFAULT_SETTINGS,
    DEFAULT_USER_NAME,
    HAS_RATED,
    LAST_RATING_PROMPT,
    USER_NAME,
    VIBRATION_ENABLED,
)

LOGGER = logging.getLogger(__name__)

SETTINGS_PATH = Path(
    os.environ.get(
        "NARRATIVE_SETTINGS_PATH",
        Path(__file__).resolve().parent / "player_settings.yaml",
    )
)


def load_settings(path: Path | None = None) -> dict[str, Any]:
    """Load player settings from disk, filling in defaults for missing keys."""
    target = path or SETTINGS_PATH
    settings = dict(DEFAULT_SETTINGS)
    if not target.exists():
        return settings
    with target.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError("Player settings file must contain a mapping.")
    settings.update(data)
    return settings


def save_settings(settings: Mapping[str, Any], path: Path | None = None) -> None:
    """Persist player settings to disk."""
    target = path or SETTINGS_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dict(settings), handle, sort_keys=True)


class SettingsStore:
    """
    Typed access to persisted settings; every write is saved immediately.

    A write that fails to reach disk raises and leaves the in-memory values
    unchanged.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or SETTINGS_PATH
        self._lock = Lock()
        self._settings = load_settings(self._path)

    @property
    def path(self) -> Path:
        return self._path

    def get_has_rated(self) -> bool:
        """Whether the player has agreed to rate the app."""
        return _coerce_bool(self._get(HAS_RATED), False)

    def set_has_rated(self, value: bool) -> None:
        self._set(HAS_RATED, bool(value))

    def get_last_prompt_at(self) -> int:
        """Epoch milliseconds of the last rating prompt shown, 0 if never."""
        return _coerce_int(self._get(LAST_RATING_PROMPT), 0)

    def set_last_prompt_at(self, millis: int) -> None:
        self._set(LAST_RATING_PROMPT, int(millis))

    def get_user_name(self) -> str:
        """Display name used in the rating prompt, defaulting to Adventurer."""
        value = self._get(USER_NAME)
        if not isinstance(value, str) or not value.strip():
            return DEFAULT_USER_NAME
        return value

    def set_user_name(self, name: str) -> None:
        self._set(USER_NAME, name.strip())

    def get_vibration_enabled(self) -> bool:
        """Whether haptic feedback should start while a choice is held."""
        return _coerce_bool(self._get(VIBRATION_ENABLED), True)

    def set_vibration_enabled(self, enabled: bool) -> None:
        self._set(VIBRATION_ENABLED, bool(enabled))
        LOGGER.info("Vibration setting changed to: %s", bool(enabled))

    def get_background_opacity(self) -> float:
        """Background image opacity clamped to 0.0-1.0."""
        return _clamp_float(self._get(BACKGROUND_OPACITY), 0.0, 1.0)

    def set_background_opacity(self, value: float) -> None:
        self._set(BACKGROUND_OPACITY, _clamp_float(value, 0.0, 1.0))

    def review_record(self) -> ReviewPromptRecord:
        """Snapshot the persisted rating-prompt history."""
        return ReviewPromptRecord(
            has_rated=self.get_has_rated(),
            last_prompt_at_millis=self.get_last_prompt_at(),
        )

    def snapshot(self) -> dict[str, Any]:
        """Return a serialisable view of every setting."""
        return {
            HAS_RATED: self.get_has_rated(),
            LAST_RATING_PROMPT: self.get_last_prompt_at(),
            USER_NAME: self.get_user_name(),
            VIBRATION_ENABLED: self.get_vibration_enabled(),
            BACKGROUND_OPACITY: self.get_background_opacity(),
        }

    def _get(self, key: str) -> Any:
        with self._lock:
            return self._settings.get(key, DEFAULT_SETTINGS[key])

    def _set(self, key: str, value: Any) -> None:
        with self._lock:
            updated = dict(self._settings)
            updated[key] = value
            save_settings(updated, self._path)
            self._settings = updated


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _clamp_float(value: Any, minimum: float, maximum: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = minimum
    return max(minimum, min(maximum, number))


__all__ = [
    "SETTINGS_PATH",
    "SettingsStore",
    "load_settings",
    "save_settings",
]
