"""Tests for persisted player settings."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml  # type: ignore[import]

from narrative.review_prompt import ReviewPromptRecord
from narrative.settings_store import SettingsStore, load_settings


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "missing.yaml")
    assert store.get_user_name() == "Adventurer"
    assert store.get_vibration_enabled() is True
    assert store.get_background_opacity() == 0.5
    assert store.review_record() == ReviewPromptRecord(has_rated=False, last_prompt_at_millis=0)


def test_writes_persist_under_documented_keys(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    store = SettingsStore(path)
    store.set_has_rated(True)
    store.set_last_prompt_at(1234)
    store.set_user_name("  Robin ")

    stored = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert stored["has_rated"] is True
    assert stored["last_rating_prompt"] == 1234
    assert stored["user_name"] == "Robin"

    reloaded = SettingsStore(path)
    assert reloaded.review_record() == ReviewPromptRecord(has_rated=True, last_prompt_at_millis=1234)


def test_blank_user_name_falls_back(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.yaml")
    store.set_user_name("   ")
    assert store.get_user_name() == "Adventurer"


def test_opacity_is_clamped(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.yaml")
    store.set_background_opacity(1.7)
    assert store.get_background_opacity() == 1.0
    store.set_background_opacity(-3)
    assert store.get_background_opacity() == 0.0


def test_corrupt_values_are_coerced(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("last_rating_prompt: soon\nbackground_opacity: dim\n", encoding="utf-8")
    store = SettingsStore(path)
    assert store.get_last_prompt_at() == 0
    assert store.get_background_opacity() == 0.0


def test_load_settings_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(path)


def test_failed_write_leaves_values_unchanged(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = SettingsStore(blocker / "settings.yaml")

    with pytest.raises(OSError):
        store.set_last_prompt_at(1234)
    assert store.get_last_prompt_at() == 0


@pytest.mark.parametrize("raw", ['"false"', "no_thanks", "0"])
def test_non_boolean_flags_fall_back_to_defaults(tmp_path: Path, raw: str) -> None:
    """Hand-edited strings or numbers are not read as truthy flags."""
    path = tmp_path / "settings.yaml"
    path.write_text(f"vibration_enabled: {raw}\nhas_rated: {raw}\n", encoding="utf-8")
    store = SettingsStore(path)
    assert store.get_vibration_enabled() is True
    assert store.get_has_rated() is False


def test_yaml_booleans_are_honoured(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("vibration_enabled: false\nhas_rated: true\n", encoding="utf-8")
    store = SettingsStore(path)
    assert store.get_vibration_enabled() is False
    assert store.get_has_rated() is True
