"""Tests for the built-in spring physics provider."""

from __future__ import annotations

from graphlens.domain.models import GraphSnapshot, LayoutSettings, Position
from graphlens.engine.layout import seed_positions
from graphlens.plugins.builtins.spring import SpringPhysics


def _seeded(snapshot: GraphSnapshot, settings: LayoutSettings):
    return seed_positions(snapshot.nodes, settings)


class TestSpringPhysics:
    def test_empty(self) -> None:
        assert SpringPhysics().simulate_forces([], [], LayoutSettings(), {}) == {}

    def test_positions_inside_viewport(self, snapshot: GraphSnapshot) -> None:
        settings = LayoutSettings(width=400, height=300)
        settled = SpringPhysics().simulate_forces(
            _seeded(snapshot, settings), snapshot.links, settings, {}
        )
        assert settled is not None
        assert set(settled) == {n.id for n in snapshot.nodes}
        for pos in settled.values():
            assert 0.0 <= pos.x <= 400.0
            assert 0.0 <= pos.y <= 300.0

    def test_pinned_nodes_omitted(self, snapshot: GraphSnapshot) -> None:
        settings = LayoutSettings()
        pinned = {"note-a": Position(x=50.0, y=60.0)}
        settled = SpringPhysics().simulate_forces(
            _seeded(snapshot, settings), snapshot.links, settings, pinned
        )
        assert settled is not None
        assert "note-a" not in settled
        assert len(settled) == len(snapshot.nodes) - 1

    def test_deterministic(self, snapshot: GraphSnapshot) -> None:
        settings = LayoutSettings()
        nodes = _seeded(snapshot, settings)
        first = SpringPhysics().simulate_forces(nodes, snapshot.links, settings, {})
        second = SpringPhysics().simulate_forces(nodes, snapshot.links, settings, {})
        assert first == second
