"""Decide when to offer the rating prompt."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from shared.settings_keys import REVIEW_COOLDOWN_MS, REVIEW_PROMPT_INTERVAL

NOT_NOW_LABEL = "Not Now"
RATE_NOW_LABEL = "Rate Now"


class PromptDecision(Enum):
    SHOW = "show"
    SUPPRESS = "suppress"


@dataclass(frozen=True)
class ReviewPromptRecord:
    """Persisted answer history for the rating prompt."""

    has_rated: bool = False
    last_prompt_at_millis: int = 0


class ReviewPromptScheduler:
    """
    Pure policy for the rating prompt.

    A prompt is offered on every ``interval``-th transition, only to users who
    have not rated yet, and only when more than ``cooldown_ms`` has passed
    since the previous prompt. Recording the outcome is left to the caller.
    """

    def __init__(
        self,
        interval: int = REVIEW_PROMPT_INTERVAL,
        cooldown_ms: int = REVIEW_COOLDOWN_MS,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive.")
        self.interval = interval
        self.cooldown_ms = cooldown_ms

    def on_transition(
        self,
        transition_count: int,
        now: int,
        record: ReviewPromptRecord,
    ) -> PromptDecision:
        if transition_count <= 0 or transition_count % self.interval != 0:
            return PromptDecision.SUPPRESS
        if record.has_rated:
            return PromptDecision.SUPPRESS
        if now - record.last_prompt_at_millis <= self.cooldown_ms:
            return PromptDecision.SUPPRESS
        return PromptDecision.SHOW


def build_prompt_text(user_name: str) -> tuple[str, str]:
    """Return the personalised ``(title, body)`` shown in the rating prompt."""
    title = f"Hello, {user_name}!"
    body = (
        "We hope you're enjoying your adventure so far!\n"
        "Would you like to share your experience and rate our app?"
    )
    return title, body


__all__ = [
    "NOT_NOW_LABEL",
    "RATE_NOW_LABEL",
    "PromptDecision",
    "ReviewPromptRecord",
    "ReviewPromptScheduler",
    "build_prompt_text",
]
