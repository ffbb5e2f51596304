"""Story graph loading and node lookup."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import]

from shared.settings_keys import START_NODE_ID

LOGGER = logging.getLogger(__name__)

STORY_GRAPH_PATH = Path(
    os.environ.get(
        "NARRATIVE_STORY_PATH",
        Path(__file__).resolve().parent / "story_graph.yaml",
    )
)


class StoryGraphError(ValueError):
    """Raised when a story definition cannot be turned into a graph."""


@dataclass(frozen=True)
class Choice:
    """A labelled edge to another node."""

    label: str
    target_node_id: str


@dataclass(frozen=True)
class StoryNode:
    """A unit of narrative content: text, an animation and its outgoing choices."""

    id: str
    text: str
    animation_ref: str
    choices: tuple[Choice, ...] = ()


class StoryGraph:
    """Read-only mapping of node identifiers to story nodes."""

    def __init__(self, nodes: Mapping[str, StoryNode]) -> None:
        if START_NODE_ID not in nodes:
            raise StoryGraphError(f"Story graph has no '{START_NODE_ID}' node.")
        self._nodes: dict[str, StoryNode] = dict(nodes)

    @classmethod
    def from_mapping(cls, raw: Any) -> "StoryGraph":
        """Build a graph from a ``{node_id: {text, animation, choices}}`` mapping."""
        if not isinstance(raw, Mapping):
            raise StoryGraphError("Story definition must contain a mapping of nodes.")
        nodes: dict[str, StoryNode] = {}
        for node_id, payload in raw.items():
            if not isinstance(node_id, str) or not node_id:
                raise StoryGraphError(f"Story node ids must be non-empty strings: {node_id!r}")
            nodes[node_id] = _parse_node(node_id, payload)
        graph = cls(nodes)
        for source, target in graph.dangling_targets():
            LOGGER.warning(
                "Choice on node %s targets unknown node %s; it will resolve to %s.",
                source,
                target,
                START_NODE_ID,
            )
        return graph

    def resolve(self, node_id: str) -> StoryNode:
        """Return the node for ``node_id``, or the start node when it is absent."""
        node = self._nodes.get(node_id)
        if node is None:
            LOGGER.debug("Node %s not found; resolving to %s.", node_id, START_NODE_ID)
            return self._nodes[START_NODE_ID]
        return node

    def dangling_targets(self) -> list[tuple[str, str]]:
        """List ``(node_id, target)`` pairs whose target is not in the graph."""
        missing: list[tuple[str, str]] = []
        for node_id in sorted(self._nodes):
            for choice in self._nodes[node_id].choices:
                if choice.target_node_id not in self._nodes:
                    missing.append((node_id, choice.target_node_id))
        return missing

    def node_ids(self) -> list[str]:
        return sorted(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self.node_ids())

    def __len__(self) -> int:
        return len(self._nodes)


def load_story_graph(path: Path | None = None) -> StoryGraph:
    """Load a story graph from a YAML file."""
    target = path or STORY_GRAPH_PATH
    if not target.exists():
        raise StoryGraphError(f"Story definition not found: {target}")
    with target.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    graph = StoryGraph.from_mapping(data)
    LOGGER.info("Loaded %d story nodes from %s.", len(graph), target)
    return graph


def _parse_node(node_id: str, payload: Any) -> StoryNode:
    if not isinstance(payload, Mapping):
        raise StoryGraphError(f"Story node '{node_id}' must be a mapping.")
    text = _require_str(payload.get("text"), f"story node '{node_id}' text")
    animation = _require_str(payload.get("animation", ""), f"story node '{node_id}' animation")
    raw_choices = payload.get("choices") or []
    if not isinstance(raw_choices, list):
        raise StoryGraphError(f"story node '{node_id}' choices must be a list.")
    choices: list[Choice] = []
    for index, entry in enumerate(raw_choices):
        context = f"story node '{node_id}' choices[{index}]"
        if not isinstance(entry, Mapping):
            raise StoryGraphError(f"{context} must be a mapping.")
        choices.append(
            Choice(
                label=_require_str(entry.get("label"), f"{context} label"),
                target_node_id=_require_str(entry.get("next"), f"{context} next"),
            )
        )
    return StoryNode(id=node_id, text=text, animation_ref=animation, choices=tuple(choices))


def _require_str(value: Any, context: str) -> str:
    if not isinstance(value, str):
        raise StoryGraphError(f"{context} must be a string.")
    return value


__all__ = [
    "STORY_GRAPH_PATH",
    "Choice",
    "StoryGraph",
    "StoryGraphError",
    "StoryNode",
    "load_story_graph",
]
