"""HTTP surface that lets a renderer drive a story session."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from flask import Flask, jsonify, request

from devices.audio_player import AudioPlayer
from devices.haptics import VibrationMotor
from narrative.session import SETTINGS_WRITE_ERRORS, StorySession
from narrative.settings_store import SettingsStore
from narrative.story_graph import StoryGraphError, load_story_graph

LOGGER = logging.getLogger(__name__)


class LinkReviewChannel:
    """Review channel that hands a store listing URL back to the renderer."""

    def __init__(self, review_url: Optional[str]) -> None:
        self.review_url = review_url
        self.requests = 0

    def is_available(self) -> bool:
        return bool(self.review_url)

    def request_review(self) -> None:
        self.requests += 1
        LOGGER.info("Review link issued: %s", self.review_url)


def create_app(session: StorySession, review_url: Optional[str] = None) -> Flask:
    """Create the Flask app bound to ``session``."""
    app = Flask(__name__)
    app.config["STORY_SESSION"] = session

    @app.get("/api/state")
    def api_state() -> Any:
        return jsonify(session.snapshot())

    @app.post("/api/reveal-finished")
    def api_reveal_finished() -> Any:
        payload = request.get_json(silent=True) or {}
        node_id = payload.get("node_id")
        if not isinstance(node_id, str) or not node_id:
            return jsonify({"ok": False, "error": "node_id is required."}), 400
        revealed = session.reveal_finished(node_id)
        return jsonify({"ok": True, "revealed": revealed, "choices_visible": session.choices_visible()})

    @app.post("/api/choices/<int:index>/hold")
    def api_hold(index: int) -> Any:
        if not session.start_hold(index):
            return jsonify({"ok": False, "error": "Choice is not available for holding."}), 409
        return jsonify({"ok": True, "phases": _phases(session)})

    @app.post("/api/choices/<int:index>/release")
    def api_release(index: int) -> Any:
        if not session.release(index):
            return jsonify({"ok": False, "error": "Choice is not being held."}), 409
        return jsonify({"ok": True, "state": session.snapshot()})

    @app.post("/api/review/respond")
    def api_review_respond() -> Any:
        payload = request.get_json(silent=True) or {}
        accepted = payload.get("accepted")
        if not isinstance(accepted, bool):
            return jsonify({"ok": False, "error": "accepted must be a boolean."}), 400
        if not session.respond_to_review(accepted):
            return jsonify({"ok": False, "error": "No review prompt is pending."}), 409
        response: dict[str, Any] = {"ok": True}
        if accepted and review_url:
            response["review_url"] = review_url
        return jsonify(response)

    @app.get("/api/settings")
    def api_settings() -> Any:
        return jsonify(session.settings.snapshot())

    @app.post("/api/settings")
    def api_update_settings() -> Any:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({"ok": False, "error": "Expected a JSON object."}), 400
        try:
            _apply_settings(session.settings, payload)
        except ValueError as exc:
            return jsonify({"ok": False, "error": str(exc)}), 400
        except SETTINGS_WRITE_ERRORS as exc:
            LOGGER.warning("Unable to save settings: %s", exc)
            return jsonify({"ok": False, "error": "Settings could not be saved."}), 503
        return jsonify({"ok": True, "settings": session.settings.snapshot()})

    @app.post("/api/reset-state")
    def api_reset_state() -> Any:
        session.restart()
        return jsonify({"ok": True, "state": session.snapshot()})

    return app


def _phases(session: StorySession) -> list[str]:
    return [phase.value for phase in session.hold_phases()]


def _apply_settings(settings: SettingsStore, payload: dict[str, Any]) -> None:
    if "vibration_enabled" in payload:
        value = payload["vibration_enabled"]
        if not isinstance(value, bool):
            raise ValueError("vibration_enabled must be a boolean.")
        settings.set_vibration_enabled(value)
    if "background_opacity" in payload:
        value = payload["background_opacity"]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("background_opacity must be a number.")
        settings.set_background_opacity(float(value))
    if "user_name" in payload:
        value = payload["user_name"]
        if not isinstance(value, str):
            raise ValueError("user_name must be a string.")
        settings.set_user_name(value)


def main() -> None:
    """Run the story server using paths and options from the environment."""
    logging.basicConfig(
        level=os.environ.get("NARRATIVE_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        graph = load_story_graph()
    except (OSError, StoryGraphError) as exc:
        LOGGER.error("Unable to load story graph: %s", exc)
        raise SystemExit(1) from exc

    review_url = os.environ.get("NARRATIVE_REVIEW_URL")
    music_env = os.environ.get("NARRATIVE_MUSIC_PATH")
    motor = VibrationMotor()
    session = StorySession(
        graph,
        SettingsStore(),
        haptics=motor.handle,
        review_channel=LinkReviewChannel(review_url),
        music=AudioPlayer(),
        music_path=Path(music_env) if music_env else None,
    )
    app = create_app(session, review_url=review_url)
    session.start()
    try:
        app.run(
            host=os.environ.get("NARRATIVE_HOST", "127.0.0.1"),
            port=int(os.environ.get("NARRATIVE_PORT", "8080")),
        )
    finally:
        session.close()
        motor.close()


if __name__ == "__main__":  # pragma: no cover
    main()


__all__ = ["LinkReviewChannel", "create_app", "main"]
