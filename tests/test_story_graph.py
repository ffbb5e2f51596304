"""Tests for story graph loading and lookup."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from narrative.story_graph import STORY_GRAPH_PATH, StoryGraph, StoryGraphError, load_story_graph


def test_resolve_returns_known_node(graph: StoryGraph) -> None:
    node = graph.resolve("forest")
    assert node.id == "forest"
    assert node.animation_ref == "forest.riv"
    assert [choice.target_node_id for choice in node.choices] == ["start", "nowhere"]


@pytest.mark.parametrize("node_id", ["nowhere", "", "START", "forest "])
def test_unknown_ids_resolve_to_start(graph: StoryGraph, node_id: str) -> None:
    """Lookups never fail; missing ids fall back to the start node."""
    assert graph.resolve(node_id).id == "start"


def test_missing_start_node_is_rejected() -> None:
    with pytest.raises(StoryGraphError):
        StoryGraph.from_mapping({"forest": {"text": "Trees.", "choices": []}})


def test_malformed_choice_is_rejected() -> None:
    raw: dict[str, Any] = {"start": {"text": "Hi.", "choices": [{"label": "Go"}]}}
    with pytest.raises(StoryGraphError):
        StoryGraph.from_mapping(raw)


def test_dangling_targets_are_listed(graph: StoryGraph) -> None:
    assert graph.dangling_targets() == [("forest", "nowhere")]


def test_nodes_are_immutable(graph: StoryGraph) -> None:
    node = graph.resolve("start")
    with pytest.raises(AttributeError):
        node.text = "changed"  # type: ignore[misc]
    assert isinstance(node.choices, tuple)


def test_load_story_graph_from_yaml(tmp_path: Path) -> None:
    target = tmp_path / "story.yaml"
    target.write_text(
        "start:\n"
        "  text: Hello\n"
        "  animation: hello.riv\n"
        "  choices:\n"
        "    - label: Onward\n"
        "      next: end\n"
        "end:\n"
        "  text: Goodbye\n",
        encoding="utf-8",
    )
    graph = load_story_graph(target)
    assert len(graph) == 2
    assert "end" in graph
    assert graph.resolve("end").choices == ()


def test_load_story_graph_missing_file(tmp_path: Path) -> None:
    with pytest.raises(StoryGraphError):
        load_story_graph(tmp_path / "missing.yaml")


def test_packaged_story_is_consistent() -> None:
    """The bundled story should load and have no dangling choices."""
    graph = load_story_graph(STORY_GRAPH_PATH)
    assert "start" in graph
    assert graph.dangling_targets() == []
