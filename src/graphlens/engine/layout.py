"""Layout engine — five placement strategies plus the pinned-position cache.

``force`` seeds missing coordinates from a seeded RNG and delegates the
rest to a physics provider (see :mod:`graphlens.plugins`). The other four
modes are pure functions of the node/link set and pin their output via
``fx``/``fy``. User pins (``pin_node``) override every mode and survive
until :meth:`LayoutEngine.clear_pins` (called on full regeneration).

Traversals use explicit stacks and visited sets; nothing recurses over
the graph. Output nodes are fresh records in input order.
"""

from __future__ import annotations

import math
import random
import threading
import zlib
from collections import deque
from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from graphlens.domain.models import GraphLink, GraphNode, LayoutSettings, Position
from graphlens.domain.types import LayoutType, LinkType, NodeType
from graphlens.engine.network import adjacency
from graphlens.engine.scheduler import CancellationToken, checkpoint

if TYPE_CHECKING:
    from graphlens.plugins.manager import PluginManager

logger = structlog.get_logger(__name__)

CIRCULAR_RADIUS_RATIO = 0.35
TIMELINE_MARGIN = 0.1
CLUSTER_MAX_RADIUS = 80.0
CLUSTER_RADIUS_STEP = 20.0

TIMELINE_TYPE_OFFSETS: dict[NodeType, float] = {
    NodeType.FILE: 0.0,
    NodeType.FOLDER: -50.0,
    NodeType.DATABASE: 50.0,
    NodeType.TAG: -100.0,
}


class LayoutEngine:
    """Place nodes in the viewport according to :class:`LayoutSettings`.

    Holds the only long-lived mutable state in the engine: the pin cache.
    Pins may change from any thread, including while a layout runs on the
    scheduler. Each run works from one copy of the pins taken at its start.
    """

    def __init__(self, plugins: PluginManager | None = None) -> None:
        self._plugins = plugins
        self._pins: dict[str, Position] = {}
        self._pins_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Pin API
    # ------------------------------------------------------------------

    def pin_node(self, node_id: str, x: float, y: float) -> None:
        """Fix *node_id* at ``(x, y)`` for every subsequent layout."""
        with self._pins_lock:
            self._pins[node_id] = Position(x=x, y=y)

    def unpin_node(self, node_id: str) -> bool:
        """Release a user pin. Returns False when the node was not pinned."""
        with self._pins_lock:
            return self._pins.pop(node_id, None) is not None

    def clear_pins(self) -> None:
        with self._pins_lock:
            self._pins.clear()

    @property
    def pins(self) -> dict[str, Position]:
        """Copy of the current pins."""
        with self._pins_lock:
            return dict(self._pins)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def layout(
        self,
        nodes: Sequence[GraphNode],
        links: Sequence[GraphLink],
        settings: LayoutSettings | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[GraphNode]:
        """Return laid-out copies of *nodes* (input order preserved)."""
        settings = settings or LayoutSettings()
        if not nodes:
            return []

        pins = self.pins
        kind = resolve_layout_type(settings.type)
        if kind == LayoutType.HIERARCHICAL:
            placed = hierarchical_layout(nodes, links, settings, cancel=cancel)
        elif kind == LayoutType.CIRCULAR:
            placed = circular_layout(nodes, settings)
        elif kind == LayoutType.TIMELINE:
            placed = timeline_layout(nodes, settings)
        elif kind == LayoutType.CLUSTER:
            placed = cluster_layout(nodes, links, settings, cancel=cancel)
        else:
            placed = self._force_layout(nodes, links, settings, pins)

        stale: dict[str, None] = {}
        if kind != LayoutType.CLUSTER:
            stale["cluster"] = None
        if kind != LayoutType.HIERARCHICAL:
            stale["level"] = None
        placed = [n.model_copy(update=stale) for n in placed]
        return _apply_pins(placed, pins)

    def _force_layout(
        self,
        nodes: Sequence[GraphNode],
        links: Sequence[GraphLink],
        settings: LayoutSettings,
        pins: dict[str, Position],
    ) -> list[GraphNode]:
        seeded = seed_positions(nodes, settings, release=True)
        if not settings.physics or self._plugins is None:
            return seeded

        ids = {n.id for n in seeded}
        pinned = {nid: pos for nid, pos in pins.items() if nid in ids}
        settled = self._plugins.simulate_forces(
            nodes=seeded, links=list(links), settings=settings, pinned=pinned
        )
        if not settled:
            return seeded
        return [
            n.model_copy(update={"x": settled[n.id].x, "y": settled[n.id].y})
            if n.id in settled and n.id not in pinned
            else n
            for n in seeded
        ]


def _apply_pins(nodes: list[GraphNode], pins: dict[str, Position]) -> list[GraphNode]:
    if not pins:
        return nodes
    result: list[GraphNode] = []
    for node in nodes:
        pin = pins.get(node.id)
        if pin is None:
            result.append(node)
        else:
            result.append(
                node.model_copy(update={"x": pin.x, "y": pin.y, "fx": pin.x, "fy": pin.y})
            )
    return result


def resolve_layout_type(value: str) -> LayoutType:
    """Map a settings string to a :class:`LayoutType`, falling back to force."""
    try:
        return LayoutType(value)
    except ValueError:
        logger.warning("layout.unknown_type", requested=value, fallback=LayoutType.FORCE.value)
        return LayoutType.FORCE


# ------------------------------------------------------------------
# Strategies
# ------------------------------------------------------------------


def seed_positions(
    nodes: Sequence[GraphNode],
    settings: LayoutSettings,
    *,
    release: bool = False,
) -> list[GraphNode]:
    """Give unplaced nodes a seeded random position inside the viewport.

    With *release*, static ``fx``/``fy`` pins from a previous layout are
    dropped so the physics provider may move the node.
    """
    rng = random.Random(settings.seed)
    result: list[GraphNode] = []
    for node in nodes:
        update: dict[str, float | None] = {}
        if node.x is None or node.y is None:
            update["x"] = rng.uniform(0, settings.width)
            update["y"] = rng.uniform(0, settings.height)
        if release and (node.fx is not None or node.fy is not None):
            update["fx"] = None
            update["fy"] = None
        result.append(node.model_copy(update=update) if update else node)
    return result


def hierarchical_layout(
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
    settings: LayoutSettings,
    *,
    cancel: CancellationToken | None = None,
) -> list[GraphNode]:
    """Layered tree layout driven by ``parent`` links.

    Levels come from longest-path layering over the parent edges that
    remain after dropping DFS back edges, so every acyclic parent edge
    satisfies ``level(child) > level(parent)``. Nodes with no parent are
    roots; members of parent cycles with no root are entered from their
    first node in collection order.
    """
    order = [n.id for n in nodes]
    ids = set(order)
    children: dict[str, list[str]] = {nid: [] for nid in order}
    has_parent: set[str] = set()
    for link in links:
        if link.type != LinkType.PARENT:
            continue
        parent, child = link.source, link.target
        if parent == child or parent not in ids or child not in ids:
            continue
        if child not in children[parent]:
            children[parent].append(child)
            has_parent.add(child)

    discovery, kept = _dfs_forest(order, children, has_parent, cancel)
    levels = _longest_path_levels(discovery, kept)

    max_depth = max(levels.values(), default=0)
    level_height = settings.height / (max_depth + 1)
    by_level: dict[int, list[str]] = {}
    for nid in discovery:
        by_level.setdefault(levels[nid], []).append(nid)

    coords: dict[str, tuple[float, float]] = {}
    for level, members in by_level.items():
        step = settings.width / (len(members) + 1)
        for index, nid in enumerate(members):
            coords[nid] = (step * (index + 1), level * level_height)

    return [
        node.model_copy(
            update={
                "x": coords[node.id][0],
                "y": coords[node.id][1],
                "fx": coords[node.id][0],
                "fy": coords[node.id][1],
                "level": levels[node.id],
            }
        )
        for node in nodes
    ]


def _dfs_forest(
    order: list[str],
    children: dict[str, list[str]],
    has_parent: set[str],
    cancel: CancellationToken | None,
) -> tuple[list[str], dict[str, list[str]]]:
    """Iterative DFS from every root; return discovery order and kept edges.

    Edges into a node still on the stack (back edges) are dropped, which
    leaves an acyclic edge set.
    """
    on_stack: set[str] = set()
    visited: set[str] = set()
    discovery: list[str] = []
    kept: dict[str, list[str]] = {nid: [] for nid in order}

    roots = [nid for nid in order if nid not in has_parent]
    pending = deque(roots)
    remaining = iter(order)

    while True:
        if pending:
            start = pending.popleft()
        else:
            start = next((nid for nid in remaining if nid not in visited), None)
            if start is None:
                break
        if start in visited:
            continue

        checkpoint(cancel)
        visited.add(start)
        on_stack.add(start)
        discovery.append(start)
        stack: list[tuple[str, int]] = [(start, 0)]
        while stack:
            nid, i = stack[-1]
            if i >= len(children[nid]):
                stack.pop()
                on_stack.discard(nid)
                continue
            stack[-1] = (nid, i + 1)
            child = children[nid][i]
            if child in on_stack:
                continue
            kept[nid].append(child)
            if child not in visited:
                visited.add(child)
                on_stack.add(child)
                discovery.append(child)
                stack.append((child, 0))

    return discovery, kept


def _longest_path_levels(discovery: list[str], kept: dict[str, list[str]]) -> dict[str, int]:
    """Kahn's algorithm over an acyclic edge set, level = longest path from a source."""
    indegree = dict.fromkeys(discovery, 0)
    for targets in kept.values():
        for child in targets:
            indegree[child] += 1

    levels = dict.fromkeys(discovery, 0)
    queue = deque(nid for nid in discovery if indegree[nid] == 0)
    while queue:
        nid = queue.popleft()
        for child in kept[nid]:
            levels[child] = max(levels[child], levels[nid] + 1)
            indegree[child] -= 1
            if indegree[child] == 0:
                queue.append(child)
    return levels


def circular_layout(nodes: Sequence[GraphNode], settings: LayoutSettings) -> list[GraphNode]:
    """Evenly spaced on a circle of radius ``0.35 * min(width, height)``."""
    cx, cy = settings.width / 2, settings.height / 2
    radius = CIRCULAR_RADIUS_RATIO * min(settings.width, settings.height)
    count = len(nodes)
    result: list[GraphNode] = []
    for index, node in enumerate(nodes):
        angle = 2 * math.pi * index / count
        x = cx + radius * math.cos(angle)
        y = cy + radius * math.sin(angle)
        result.append(node.model_copy(update={"x": x, "y": y, "fx": x, "fy": y}))
    return result


def timeline_layout(nodes: Sequence[GraphNode], settings: LayoutSettings) -> list[GraphNode]:
    """Spread nodes along ``x`` by modification time (stable on ties).

    ``y`` is the viewport centre plus a per-type offset plus a bounded
    jitter derived from the node id.
    """
    ranked = sorted(range(len(nodes)), key=lambda i: nodes[i].metadata.last_modified)
    rank_of = {index: rank for rank, index in enumerate(ranked)}

    start = TIMELINE_MARGIN * settings.width
    span = (1 - 2 * TIMELINE_MARGIN) * settings.width
    denominator = max(len(nodes) - 1, 1)
    center_y = settings.height / 2

    result: list[GraphNode] = []
    for index, node in enumerate(nodes):
        x = start + span * rank_of[index] / denominator
        y = (
            center_y
            + TIMELINE_TYPE_OFFSETS.get(node.type, 0.0)
            + timeline_jitter(node.id, settings.timeline_jitter)
        )
        result.append(node.model_copy(update={"x": x, "y": y, "fx": x, "fy": y}))
    return result


def timeline_jitter(node_id: str, amplitude: float) -> float:
    """Deterministic offset in ``[-amplitude, amplitude]``."""
    unit = zlib.crc32(node_id.encode("utf-8")) / 0xFFFFFFFF
    return (unit * 2 - 1) * amplitude


def connected_clusters(
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
    *,
    cancel: CancellationToken | None = None,
) -> list[list[str]]:
    """Connected components of size >= 2, in discovery order."""
    adj = adjacency(nodes, links)
    visited: set[str] = set()
    clusters: list[list[str]] = []
    for node in nodes:
        if node.id in visited:
            continue
        checkpoint(cancel)
        component: list[str] = []
        stack = [node.id]
        visited.add(node.id)
        while stack:
            nid = stack.pop()
            component.append(nid)
            for neighbor in adj[nid]:
                if neighbor not in visited:
                    visited.add(neighbor)
                    stack.append(neighbor)
        if len(component) > 1:
            clusters.append(component)
    return clusters


def cluster_layout(
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
    settings: LayoutSettings,
    *,
    cancel: CancellationToken | None = None,
) -> list[GraphNode]:
    """Arrange each connected component on its own grid cell.

    Singletons keep their position (seeded when unplaced) and carry no
    cluster id.
    """
    clusters = connected_clusters(nodes, links, cancel=cancel)
    grid = math.ceil(math.sqrt(len(clusters))) if clusters else 1
    cell_w, cell_h = settings.width / grid, settings.height / grid

    placement: dict[str, tuple[float, float, str]] = {}
    for k, members in enumerate(clusters):
        row, col = divmod(k, grid)
        cx, cy = cell_w * (col + 0.5), cell_h * (row + 0.5)
        radius = min(CLUSTER_MAX_RADIUS, CLUSTER_RADIUS_STEP * math.sqrt(len(members)))
        for index, nid in enumerate(members):
            angle = 2 * math.pi * index / len(members)
            placement[nid] = (
                cx + radius * math.cos(angle),
                cy + radius * math.sin(angle),
                f"cluster-{k}",
            )

    result: list[GraphNode] = []
    for node in seed_positions(nodes, settings):
        placed = placement.get(node.id)
        if placed is None:
            result.append(node.model_copy(update={"cluster": None}))
            continue
        x, y, cluster_id = placed
        result.append(
            node.model_copy(update={"x": x, "y": y, "fx": x, "fy": y, "cluster": cluster_id})
        )
    return result
