"""Tests for the layout engine and its placement strategies."""

from __future__ import annotations

import math
import threading
from datetime import UTC, datetime

import pytest
from structlog.testing import capture_logs

from graphlens.domain.models import (
    GraphLink,
    GraphNode,
    GraphSnapshot,
    LayoutSettings,
    Position,
)
from graphlens.domain.types import LayoutType, LinkType, NodeType
from graphlens.engine.layout import (
    TIMELINE_TYPE_OFFSETS,
    LayoutEngine,
    connected_clusters,
    resolve_layout_type,
    seed_positions,
    timeline_jitter,
)
from graphlens.engine.scheduler import (
    CancellationToken,
    ComputationCancelled,
    ComputationScheduler,
)
from graphlens.plugins.hookspecs import hookimpl
from graphlens.plugins.manager import PluginManager
from tests.conftest import make_link, make_node

ALL_TYPES = [t.value for t in LayoutType]


def _by_id(nodes: list[GraphNode]) -> dict[str, GraphNode]:
    return {n.id: n for n in nodes}


def _parent(source: str, target: str) -> GraphLink:
    return make_link(source, target, type=LinkType.PARENT)


def _dated(node_id: str, month: int, **kwargs: object) -> GraphNode:
    return make_node(
        node_id,
        metadata={"last_modified": datetime(2024, month, 1, tzinfo=UTC)},
        **kwargs,
    )


class TestDispatch:
    @pytest.mark.parametrize("layout_type", ALL_TYPES)
    def test_empty_input(self, layout_type: str) -> None:
        assert LayoutEngine().layout([], [], LayoutSettings(type=layout_type)) == []

    @pytest.mark.parametrize("layout_type", ALL_TYPES)
    def test_single_node(self, layout_type: str) -> None:
        (node,) = LayoutEngine().layout([make_node("a")], [], LayoutSettings(type=layout_type))
        assert node.x is not None
        assert node.y is not None

    @pytest.mark.parametrize("layout_type", ALL_TYPES)
    def test_input_order_preserved(self, snapshot: GraphSnapshot, layout_type: str) -> None:
        placed = LayoutEngine().layout(
            snapshot.nodes, snapshot.links, LayoutSettings(type=layout_type)
        )
        assert [n.id for n in placed] == [n.id for n in snapshot.nodes]

    def test_inputs_not_mutated(self, snapshot: GraphSnapshot) -> None:
        LayoutEngine().layout(snapshot.nodes, snapshot.links, LayoutSettings(type="circular"))
        assert all(n.x is None for n in snapshot.nodes)

    def test_unknown_type_falls_back_to_force(self) -> None:
        with capture_logs() as logs:
            placed = LayoutEngine().layout(
                [make_node("a"), make_node("b")], [], LayoutSettings(type="spiral")
            )
        assert all(n.fx is None for n in placed)
        assert any(
            entry["event"] == "layout.unknown_type" and entry["log_level"] == "warning"
            for entry in logs
        )

    def test_resolve_layout_type(self) -> None:
        assert resolve_layout_type("timeline") == LayoutType.TIMELINE
        assert resolve_layout_type("bogus") == LayoutType.FORCE

    def test_stale_annotations_cleared(self, snapshot: GraphSnapshot) -> None:
        engine = LayoutEngine()
        clustered = engine.layout(snapshot.nodes, snapshot.links, LayoutSettings(type="cluster"))
        layered = engine.layout(clustered, snapshot.links, LayoutSettings(type="hierarchical"))
        assert all(n.cluster is None for n in layered)
        circled = engine.layout(layered, snapshot.links, LayoutSettings(type="circular"))
        assert all(n.level is None for n in circled)


class TestForce:
    def test_seeds_inside_viewport(self, snapshot: GraphSnapshot) -> None:
        settings = LayoutSettings(width=300, height=200)
        placed = LayoutEngine().layout(snapshot.nodes, snapshot.links, settings)
        for node in placed:
            assert 0 <= node.x <= 300  # type: ignore[operator]
            assert 0 <= node.y <= 200  # type: ignore[operator]
            assert node.fx is None

    def test_seeding_is_deterministic(self, snapshot: GraphSnapshot) -> None:
        first = LayoutEngine().layout(snapshot.nodes, snapshot.links)
        second = LayoutEngine().layout(snapshot.nodes, snapshot.links)
        assert [(n.x, n.y) for n in first] == [(n.x, n.y) for n in second]

    def test_existing_positions_kept(self) -> None:
        node = make_node("a", x=12.0, y=34.0)
        (placed,) = seed_positions([node], LayoutSettings())
        assert (placed.x, placed.y) == (12.0, 34.0)

    def test_release_drops_static_pins(self) -> None:
        node = make_node("a", x=1.0, y=1.0, fx=1.0, fy=1.0)
        (placed,) = LayoutEngine().layout([node], [], LayoutSettings(type="force"))
        assert placed.fx is None
        assert placed.fy is None

    def test_physics_provider_moves_nodes(self, snapshot: GraphSnapshot) -> None:
        plugins = PluginManager()
        plugins.register_builtins()
        seeded = LayoutEngine().layout(snapshot.nodes, snapshot.links)
        settled = LayoutEngine(plugins).layout(snapshot.nodes, snapshot.links)
        assert [(n.x, n.y) for n in settled] != [(n.x, n.y) for n in seeded]
        for node in settled:
            assert 0 <= node.x <= 800  # type: ignore[operator]
            assert 0 <= node.y <= 600  # type: ignore[operator]

    def test_physics_disabled_keeps_seed(self, snapshot: GraphSnapshot) -> None:
        plugins = PluginManager()
        plugins.register_builtins()
        settings = LayoutSettings(physics=False)
        seeded = LayoutEngine().layout(snapshot.nodes, snapshot.links, settings)
        placed = LayoutEngine(plugins).layout(snapshot.nodes, snapshot.links, settings)
        assert [(n.x, n.y) for n in placed] == [(n.x, n.y) for n in seeded]


class TestHierarchical:
    def test_child_below_parent(self, snapshot: GraphSnapshot) -> None:
        placed = _by_id(
            LayoutEngine().layout(
                snapshot.nodes, snapshot.links, LayoutSettings(type="hierarchical")
            )
        )
        for link in snapshot.links:
            if link.type == LinkType.PARENT:
                assert placed[link.target].y > placed[link.source].y  # type: ignore[operator]

    def test_levels_and_spacing(self, snapshot: GraphSnapshot) -> None:
        placed = _by_id(
            LayoutEngine().layout(
                snapshot.nodes, snapshot.links, LayoutSettings(type="hierarchical")
            )
        )
        assert placed["folder-1"].level == 0
        assert placed["note-a"].level == 1
        assert placed["note-b"].level == 1
        assert placed["note-a"].y == pytest.approx(300.0)
        assert placed["note-a"].x == pytest.approx(800 / 3)
        assert placed["note-b"].x == pytest.approx(2 * 800 / 3)
        # Roots share level 0: Projects, Gamma, Delta, Reading List.
        assert [placed[i].x for i in ("folder-1", "note-c", "note-d", "db-1")] == pytest.approx(
            [160.0, 320.0, 480.0, 640.0]
        )
        assert all(n.is_pinned for n in placed.values())

    def test_deep_chain(self) -> None:
        nodes = [make_node(str(i)) for i in range(4)]
        links = [_parent(str(i), str(i + 1)) for i in range(3)]
        placed = LayoutEngine().layout(nodes, links, LayoutSettings(type="hierarchical"))
        ys = [n.y for n in placed]
        assert ys == sorted(ys)
        assert [n.level for n in placed] == [0, 1, 2, 3]

    def test_longest_path_layering(self) -> None:
        # r -> a -> b and r -> b: b sits below a.
        nodes = [make_node("r"), make_node("a"), make_node("b")]
        links = [_parent("r", "a"), _parent("a", "b"), _parent("r", "b")]
        placed = _by_id(LayoutEngine().layout(nodes, links, LayoutSettings(type="hierarchical")))
        assert placed["b"].y > placed["a"].y > placed["r"].y  # type: ignore[operator]

    def test_parent_cycle_terminates(self) -> None:
        nodes = [make_node("x"), make_node("y"), make_node("z")]
        links = [_parent("x", "y"), _parent("y", "z"), _parent("z", "x")]
        placed = LayoutEngine().layout(nodes, links, LayoutSettings(type="hierarchical"))
        assert [n.level for n in placed] == [0, 1, 2]

    def test_non_parent_links_ignored(self) -> None:
        nodes = [make_node("a"), make_node("b")]
        placed = LayoutEngine().layout(
            nodes, [make_link("a", "b")], LayoutSettings(type="hierarchical")
        )
        assert [n.level for n in placed] == [0, 0]

    def test_cancellation(self, snapshot: GraphSnapshot) -> None:
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ComputationCancelled):
            LayoutEngine().layout(
                snapshot.nodes,
                snapshot.links,
                LayoutSettings(type="hierarchical"),
                cancel=token,
            )


class TestCircular:
    def test_four_nodes_at_quarter_turns(self) -> None:
        nodes = [make_node(c) for c in "ABCD"]
        placed = LayoutEngine().layout(nodes, [], LayoutSettings(type="circular"))
        cx, cy = 400.0, 300.0
        radius = 0.35 * 600
        for index, node in enumerate(placed):
            dx, dy = node.x - cx, node.y - cy  # type: ignore[operator]
            assert math.atan2(dy, dx) % (2 * math.pi) == pytest.approx(index * math.pi / 2)
            assert math.hypot(dx, dy) == pytest.approx(radius)
            assert node.is_pinned


class TestTimeline:
    def test_sorted_by_last_modified(self) -> None:
        nodes = [_dated("C", 3), _dated("A", 1), _dated("B", 2)]
        links = [make_link("A", "B", 1.0), make_link("B", "C", 0.5)]
        placed = _by_id(LayoutEngine().layout(nodes, links, LayoutSettings(type="timeline")))
        assert placed["A"].x < placed["B"].x < placed["C"].x  # type: ignore[operator]
        assert placed["A"].x == pytest.approx(80.0)
        assert placed["C"].x == pytest.approx(720.0)

    def test_ties_keep_collection_order(self) -> None:
        nodes = [_dated("first", 1), _dated("second", 1)]
        placed = LayoutEngine().layout(nodes, [], LayoutSettings(type="timeline"))
        assert placed[0].x < placed[1].x  # type: ignore[operator]

    def test_type_offset_and_bounded_jitter(self) -> None:
        settings = LayoutSettings(type="timeline", timeline_jitter=10.0)
        nodes = [
            _dated("f", 1, type=NodeType.FOLDER),
            _dated("d", 2, type=NodeType.DATABASE),
            _dated("t", 3, type=NodeType.TAG),
        ]
        for node in LayoutEngine().layout(nodes, [], settings):
            offset = TIMELINE_TYPE_OFFSETS[node.type]
            assert abs(node.y - 300.0 - offset) <= 10.0  # type: ignore[operator]

    def test_jitter_is_deterministic(self) -> None:
        assert timeline_jitter("note-a", 20.0) == timeline_jitter("note-a", 20.0)
        assert timeline_jitter("note-a", 0.0) == 0.0


class TestCluster:
    def test_components_share_cluster_ids(self) -> None:
        nodes = [make_node(c) for c in "abcde"]
        links = [make_link("a", "b"), make_link("c", "d")]
        placed = _by_id(LayoutEngine().layout(nodes, links, LayoutSettings(type="cluster")))
        assert placed["a"].cluster == placed["b"].cluster == "cluster-0"
        assert placed["c"].cluster == placed["d"].cluster == "cluster-1"
        assert placed["e"].cluster is None
        assert placed["e"].fx is None

    def test_grid_placement(self) -> None:
        nodes = [make_node(c) for c in "abcd"]
        links = [make_link("a", "b"), make_link("c", "d")]
        placed = _by_id(LayoutEngine().layout(nodes, links, LayoutSettings(type="cluster")))
        radius = min(80.0, 20 * math.sqrt(2))
        # 2 clusters -> 2x2 grid, cell 400x300; first cell centre (200, 150).
        assert placed["a"].x == pytest.approx(200 + radius)
        assert placed["a"].y == pytest.approx(150)
        assert placed["c"].x == pytest.approx(600 + radius)

    def test_sample_graph(self, snapshot: GraphSnapshot) -> None:
        placed = _by_id(
            LayoutEngine().layout(snapshot.nodes, snapshot.links, LayoutSettings(type="cluster"))
        )
        assert {placed[i].cluster for i in ("folder-1", "note-a", "note-d")} == {"cluster-0"}
        assert placed["db-1"].cluster is None

    def test_connected_clusters_skip_singletons(self, snapshot: GraphSnapshot) -> None:
        clusters = connected_clusters(snapshot.nodes, snapshot.links)
        assert len(clusters) == 1
        assert sorted(clusters[0]) == ["folder-1", "note-a", "note-b", "note-c", "note-d"]


class TestPins:
    @pytest.mark.parametrize("layout_type", ALL_TYPES)
    def test_pin_overrides_every_mode(self, snapshot: GraphSnapshot, layout_type: str) -> None:
        engine = LayoutEngine()
        engine.pin_node("note-a", 11.0, 22.0)
        settings = LayoutSettings(type=layout_type)
        placed = _by_id(engine.layout(snapshot.nodes, snapshot.links, settings))
        alpha = placed["note-a"]
        assert (alpha.x, alpha.y, alpha.fx, alpha.fy) == (11.0, 22.0, 11.0, 22.0)

    def test_pinned_node_fixed_under_physics(self, snapshot: GraphSnapshot) -> None:
        plugins = PluginManager()
        plugins.register_builtins()
        engine = LayoutEngine(plugins)
        engine.pin_node("note-b", 100.0, 100.0)
        placed = _by_id(engine.layout(snapshot.nodes, snapshot.links))
        assert (placed["note-b"].x, placed["note-b"].y) == (100.0, 100.0)

    def test_unpin(self) -> None:
        engine = LayoutEngine()
        engine.pin_node("a", 1.0, 2.0)
        assert engine.unpin_node("a") is True
        assert engine.unpin_node("a") is False
        assert engine.pins == {}

    def test_clear_pins(self) -> None:
        engine = LayoutEngine()
        engine.pin_node("a", 1.0, 2.0)
        engine.pin_node("b", 3.0, 4.0)
        engine.clear_pins()
        assert engine.pins == {}


class _GatedPhysics:
    """Holds a force layout inside the provider until released."""

    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()
        self.seen: dict[str, Position] | None = None

    @hookimpl
    def simulate_forces(self, nodes, links, settings, pinned) -> None:
        self.seen = dict(pinned)
        self.entered.set()
        self.release.wait(timeout=5)
        return None


class TestPinsDuringBackgroundLayout:
    def test_run_uses_pins_from_its_start(self, snapshot: GraphSnapshot) -> None:
        physics = _GatedPhysics()
        plugins = PluginManager()
        plugins.register_plugin(physics, name="gated")
        engine = LayoutEngine(plugins)
        engine.pin_node("note-a", 10.0, 10.0)

        scheduler = ComputationScheduler(max_workers=1)
        try:
            ticket = scheduler.submit(
                "layout",
                lambda token: engine.layout(snapshot.nodes, snapshot.links, cancel=token),
            )
            assert physics.entered.wait(timeout=5)
            engine.pin_node("note-b", 50.0, 60.0)
            assert engine.unpin_node("note-a") is True
            physics.release.set()
            placed = _by_id(ticket.result(timeout=5))
        finally:
            physics.release.set()
            scheduler.shutdown()

        assert physics.seen == {"note-a": Position(x=10.0, y=10.0)}
        assert (placed["note-a"].x, placed["note-a"].fx) == (10.0, 10.0)
        assert placed["note-b"].fx is None

    def test_next_run_sees_new_pins(self, snapshot: GraphSnapshot) -> None:
        physics = _GatedPhysics()
        physics.release.set()
        plugins = PluginManager()
        plugins.register_plugin(physics, name="gated")
        engine = LayoutEngine(plugins)
        engine.pin_node("note-a", 10.0, 10.0)
        engine.layout(snapshot.nodes, snapshot.links)

        engine.pin_node("note-b", 50.0, 60.0)
        engine.unpin_node("note-a")
        placed = _by_id(engine.layout(snapshot.nodes, snapshot.links))

        assert physics.seen == {"note-b": Position(x=50.0, y=60.0)}
        assert (placed["note-b"].x, placed["note-b"].y) == (50.0, 60.0)
        assert placed["note-a"].fx is None

    def test_concurrent_pin_updates(self) -> None:
        engine = LayoutEngine()

        def pin_many(prefix: str) -> None:
            for i in range(200):
                engine.pin_node(f"{prefix}-{i}", float(i), float(i))

        threads = [threading.Thread(target=pin_many, args=(p,)) for p in ("a", "b", "c")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(engine.pins) == 600
