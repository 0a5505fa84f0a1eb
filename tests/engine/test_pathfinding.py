"""Tests for shortest and bounded path queries."""

from __future__ import annotations

import math

import pytest

from graphlens.domain.models import GraphSnapshot
from graphlens.domain.types import PathMode
from graphlens.engine.pathfinding import find_all_paths, find_path

WIKILINK_COST = 1 / 0.9
MENTION_COST = 1 / 0.6
TAG_COST = 1 / 0.2


class TestFindPath:
    def test_weighted_prefers_strong_links(self, snapshot: GraphSnapshot) -> None:
        result = find_path(snapshot.nodes, snapshot.links, "note-a", "note-d")
        assert result.found
        assert result.path == ["note-a", "note-b", "note-c", "note-d"]
        assert result.intermediate_nodes == ["note-b", "note-c"]
        assert result.hops == 3
        assert result.distance == pytest.approx(2 * WIKILINK_COST + MENTION_COST)
        assert result.total_weight == pytest.approx(result.distance)
        assert result.mode == PathMode.WEIGHTED

    def test_hops_prefers_fewest_links(self, snapshot: GraphSnapshot) -> None:
        result = find_path(
            snapshot.nodes, snapshot.links, "note-a", "note-d", mode=PathMode.HOPS
        )
        assert result.path == ["note-a", "note-c", "note-d"]
        assert result.distance == 2.0
        assert result.total_weight == pytest.approx(TAG_COST + MENTION_COST)

    @pytest.mark.parametrize("mode", list(PathMode))
    def test_symmetric(self, snapshot: GraphSnapshot, mode: PathMode) -> None:
        forward = find_path(snapshot.nodes, snapshot.links, "note-a", "note-d", mode=mode)
        backward = find_path(snapshot.nodes, snapshot.links, "note-d", "note-a", mode=mode)
        assert backward.distance == pytest.approx(forward.distance)

    def test_same_node(self, snapshot: GraphSnapshot) -> None:
        result = find_path(snapshot.nodes, snapshot.links, "note-b", "note-b")
        assert result.found
        assert result.path == ["note-b"]
        assert result.distance == 0.0
        assert result.hops == 0

    @pytest.mark.parametrize(
        ("source", "target"),
        [("ghost", "note-a"), ("note-a", "ghost"), ("ghost", "ghost")],
    )
    def test_missing_endpoint(self, snapshot: GraphSnapshot, source: str, target: str) -> None:
        result = find_path(snapshot.nodes, snapshot.links, source, target)
        assert not result.found
        assert result.path == []
        assert math.isinf(result.distance)

    def test_disconnected(self, snapshot: GraphSnapshot) -> None:
        result = find_path(snapshot.nodes, snapshot.links, "note-a", "db-1")
        assert not result.found
        assert math.isinf(result.distance)


class TestFindAllPaths:
    def test_ordered_by_hops(self, snapshot: GraphSnapshot) -> None:
        paths = find_all_paths(snapshot.nodes, snapshot.links, "note-a", "note-d", max_depth=3)
        assert [p.path for p in paths] == [
            ["note-a", "note-c", "note-d"],
            ["note-a", "note-b", "note-c", "note-d"],
        ]
        assert [p.hops for p in paths] == [2, 3]

    def test_depth_bound(self, snapshot: GraphSnapshot) -> None:
        shallow = find_all_paths(snapshot.nodes, snapshot.links, "note-a", "note-d", max_depth=2)
        deep = find_all_paths(snapshot.nodes, snapshot.links, "note-a", "note-d", max_depth=4)
        assert len(shallow) == 1
        assert deep[-1].path == ["note-a", "folder-1", "note-b", "note-c", "note-d"]

    def test_limit(self, snapshot: GraphSnapshot) -> None:
        paths = find_all_paths(snapshot.nodes, snapshot.links, "note-a", "note-d", limit=1)
        assert [p.path for p in paths] == [["note-a", "note-c", "note-d"]]

    def test_same_hops_ordered_by_weight(self, snapshot: GraphSnapshot) -> None:
        paths = find_all_paths(snapshot.nodes, snapshot.links, "folder-1", "note-c", max_depth=2)
        assert [p.path for p in paths] == [
            ["folder-1", "note-b", "note-c"],
            ["folder-1", "note-a", "note-c"],
        ]

    @pytest.mark.parametrize(("source", "target"), [("note-a", "note-a"), ("note-a", "ghost")])
    def test_degenerate_queries(self, snapshot: GraphSnapshot, source: str, target: str) -> None:
        assert find_all_paths(snapshot.nodes, snapshot.links, source, target) == []
