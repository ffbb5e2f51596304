"""Background music playback for story sessions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

try:  # pragma: no cover - executed when pygame is available
    from pygame import mixer
except ImportError:  # pragma: no cover - executed in test/mock environments
    mixer = None  # type: ignore[assignment]


LOGGER = logging.getLogger(__name__)


class AudioPlayer:
    """Provide a thin wrapper around pygame.mixer for looping background music."""

    def __init__(self) -> None:
        self._loaded_path: Optional[Path] = None
        self._volume: float = 1.0
        self._mixer_available = mixer is not None
        if self._mixer_available and not mixer.get_init():  # type: ignore[union-attr]
            try:
                mixer.init()  # type: ignore[union-attr]
                LOGGER.info("pygame.mixer initialised for audio playback.")
            except Exception as exc:  # pragma: no cover
                LOGGER.warning("Failed to initialise pygame.mixer: %s", exc)
                self._mixer_available = False

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def loaded_path(self) -> Optional[Path]:
        return self._loaded_path

    def load(self, path: Path) -> None:
        """Store the path to the audio file to be played later."""
        self._loaded_path = path
        LOGGER.debug("Audio track ready: %s", path)

    def set_volume(self, value_0_to_1: float) -> None:
        """Adjust output volume if the mixer is present."""
        self._volume = max(0.0, min(1.0, value_0_to_1))
        if not self._mixer_available or mixer is None:
            LOGGER.debug("Volume request %.2f ignored; mixer unavailable.", self._volume)
            return
        mixer.music.set_volume(self._volume)  # type: ignore[union-attr]
        LOGGER.debug("Volume set to %.2f.", self._volume)

    def play(self, loop: bool = False) -> bool:
        """Start playback for the loaded track; returns False when nothing played."""
        if self._loaded_path is None:
            LOGGER.warning("No audio loaded; play() ignored.")
            return False
        if not self._mixer_available or mixer is None:
            LOGGER.info("Play request for %s ignored; mixer unavailable.", self._loaded_path)
            return False
        try:
            mixer.music.load(str(self._loaded_path))  # type: ignore[union-attr]
            mixer.music.set_volume(self._volume)  # type: ignore[union-attr]
            mixer.music.play(-1 if loop else 0)  # type: ignore[union-attr]
        except Exception as exc:
            LOGGER.error("Failed to play audio %s: %s", self._loaded_path, exc)
            return False
        LOGGER.debug("Playback started for %s (loop=%s).", self._loaded_path, loop)
        return True

    def stop(self) -> None:
        """Stop playback when supported."""
        if not self._mixer_available or mixer is None:
            LOGGER.debug("Stop request ignored; mixer unavailable.")
            return
        try:
            mixer.music.stop()  # type: ignore[union-attr]
        except Exception as exc:  # pragma: no cover
            LOGGER.warning("Failed to stop audio: %s", exc)


__all__ = ["AudioPlayer"]
