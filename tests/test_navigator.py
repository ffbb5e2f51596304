"""Tests for navigation state and commits."""

from __future__ import annotations

import threading

import pytest

from narrative.navigator import NavigationError, NavigatorState, StoryNavigator
from narrative.reveal_gate import TextRevealGate
from narrative.story_graph import StoryGraph


def _navigator(graph: StoryGraph) -> tuple[StoryNavigator, TextRevealGate]:
    gate = TextRevealGate()
    return StoryNavigator(graph, gate), gate


def test_starts_at_start_node(graph: StoryGraph) -> None:
    navigator, gate = _navigator(graph)
    assert navigator.current_node().id == "start"
    assert navigator.transition_count == 0
    assert gate.state().node_id == "start"


def test_commit_sequence_counts_transitions(graph: StoryGraph) -> None:
    navigator, _gate = _navigator(graph)
    targets = ["forest", "start", "hill", "start", "forest"]
    for target in targets:
        assert navigator.commit(target) is True

    assert navigator.transition_count == len(targets)
    assert navigator.current_node_id == "forest"
    assert navigator.history() == targets


def test_commit_resets_reveal_gate(graph: StoryGraph) -> None:
    navigator, gate = _navigator(graph)
    gate.on_reveal_finished("start")
    navigator.commit("forest")
    assert gate.state().node_id == "forest"
    assert gate.is_choices_visible() is False


def test_unknown_target_is_stored_and_resolved_to_start(graph: StoryGraph) -> None:
    navigator, gate = _navigator(graph)
    navigator.commit("nowhere")
    assert navigator.current_node_id == "nowhere"
    assert navigator.current_node().id == "start"
    assert gate.state().node_id == "nowhere"
    assert navigator.transition_count == 1


def test_listeners_receive_new_count(graph: StoryGraph) -> None:
    navigator, _gate = _navigator(graph)
    seen: list[tuple[str, int]] = []
    remove = navigator.add_transition_listener(lambda node_id, count: seen.append((node_id, count)))
    navigator.commit("forest")
    navigator.commit("start")
    remove()
    navigator.commit("hill")
    assert seen == [("forest", 1), ("start", 2)]


def test_failing_listener_does_not_undo_commit(graph: StoryGraph) -> None:
    navigator, _gate = _navigator(graph)

    def broken(node_id: str, count: int) -> None:
        raise RuntimeError("presentation crashed")

    navigator.add_transition_listener(broken)
    assert navigator.commit("forest") is True
    assert navigator.current_node_id == "forest"


def test_nested_commit_is_rejected(graph: StoryGraph) -> None:
    navigator, _gate = _navigator(graph)
    errors: list[Exception] = []

    def reentrant(node_id: str, count: int) -> None:
        try:
            navigator.commit("hill")
        except NavigationError as exc:
            errors.append(exc)

    navigator.add_transition_listener(reentrant)
    navigator.commit("forest")
    assert len(errors) == 1
    assert navigator.transition_count == 1
    assert navigator.current_node_id == "forest"


def test_stale_expected_node_is_discarded(graph: StoryGraph) -> None:
    navigator, _gate = _navigator(graph)
    assert navigator.commit("forest", expected_node_id="start") is True
    assert navigator.commit("hill", expected_node_id="start") is False
    assert navigator.transition_count == 1


def test_concurrent_commits_for_same_choice_apply_once(graph: StoryGraph) -> None:
    """Two racing completions of a choice on the same node move the story once."""
    navigator, _gate = _navigator(graph)
    barrier = threading.Barrier(2)
    results: list[bool] = []

    def worker() -> None:
        barrier.wait()
        results.append(navigator.commit("forest", expected_node_id="start"))

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(results) == [False, True]
    assert navigator.transition_count == 1


def test_restart_returns_to_start(graph: StoryGraph) -> None:
    navigator, gate = _navigator(graph)
    navigator.commit("forest")
    navigator.restart()
    assert navigator.snapshot() == NavigatorState().snapshot()
    assert gate.state().node_id == "start"


def test_snapshot_is_a_copy(graph: StoryGraph) -> None:
    navigator, _gate = _navigator(graph)
    navigator.commit("forest")
    snapshot = navigator.snapshot()
    snapshot["history"].append("tampered")  # type: ignore[attr-defined]
    assert navigator.history() == ["forest"]


@pytest.mark.parametrize("count", [1, 5, 12])
def test_transition_count_matches_commits(graph: StoryGraph, count: int) -> None:
    navigator, _gate = _navigator(graph)
    for index in range(count):
        navigator.commit("forest" if index % 2 == 0 else "start")
    assert navigator.transition_count == count
