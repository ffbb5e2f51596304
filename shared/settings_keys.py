"""Setting keys and tuning constants shared by narrative and device code.

This module defines a single source of truth for the persisted setting
names and the interaction constants used by the narrative core. Both the
narrative and devices packages import from here so that stored keys and
timings stay consistent.
"""

from __future__ import annotations

from typing_extensions import Final


HAS_RATED: Final[str] = "has_rated"
LAST_RATING_PROMPT: Final[str] = "last_rating_prompt"
USER_NAME: Final[str] = "user_name"
VIBRATION_ENABLED: Final[str] = "vibration_enabled"
BACKGROUND_OPACITY: Final[str] = "background_opacity"

DEFAULT_USER_NAME: Final[str] = "Adventurer"
DEFAULT_SETTINGS: Final[dict[str, object]] = {
    HAS_RATED: False,
    LAST_RATING_PROMPT: 0,
    USER_NAME: DEFAULT_USER_NAME,
    VIBRATION_ENABLED: True,
    BACKGROUND_OPACITY: 0.5,
}

START_NODE_ID: Final[str] = "start"

REVIEW_PROMPT_INTERVAL: Final[int] = 10
REVIEW_COOLDOWN_MS: Final[int] = 432_000_000  # 5 days

DEFAULT_HOLD_SECONDS: Final[float] = 8.0
HAPTIC_INTENSITY: Final[int] = 64
HAPTIC_PATTERN_MS: Final[tuple[int, int, int]] = (0, 500, 500)

BACKGROUND_VOLUME: Final[float] = 0.3


__all__ = [
    "BACKGROUND_OPACITY",
    "BACKGROUND_VOLUME",
    "DEFAULT_HOLD_SECONDS",
    "DEFAULT_SETTINGS",
    "DEFAULT_USER_NAME",
    "HAPTIC_INTENSITY",
    "HAPTIC_PATTERN_MS",
    "HAS_RATED",
    "LAST_RATING_PROMPT",
    "REVIEW_COOLDOWN_MS",
    "REVIEW_PROMPT_INTERVAL",
    "START_NODE_ID",
    "USER_NAME",
    "VIBRATION_ENABLED",
]
