"""Built-in physics provider backed by networkx's spring layout.

Runs Fruchterman-Reingold in a unit box scaled from the viewport, starting
from the seeded positions. Pinned nodes are passed as ``fixed`` so they
never move. The result is clamped back into the viewport.
"""

from __future__ import annotations

import networkx as nx

from graphlens.domain.models import GraphLink, GraphNode, LayoutSettings, Position
from graphlens.engine.network import to_networkx
from graphlens.plugins.hookspecs import hookimpl


class SpringPhysics:
    """Deterministic force-directed placement (seeded, fixed iteration count)."""

    @hookimpl(trylast=True)
    def simulate_forces(
        self,
        nodes: list[GraphNode],
        links: list[GraphLink],
        settings: LayoutSettings,
        pinned: dict[str, Position],
    ) -> dict[str, Position] | None:
        if not nodes:
            return {}

        width, height = settings.width, settings.height
        g = to_networkx(nodes, links)

        start: dict[str, tuple[float, float]] = {}
        for node in nodes:
            pin = pinned.get(node.id)
            x = pin.x if pin else (node.x if node.x is not None else width / 2)
            y = pin.y if pin else (node.y if node.y is not None else height / 2)
            start[node.id] = (x / width, y / height)

        fixed = [node_id for node_id in pinned if node_id in g]
        k = settings.link_distance / min(width, height) if settings.link_distance > 0 else None

        if fixed:
            raw = nx.spring_layout(
                g,
                k=k,
                pos=start,
                fixed=fixed,
                iterations=settings.iterations,
                weight="strength",
                seed=settings.seed,
            )
        else:
            raw = nx.spring_layout(
                g,
                k=k,
                pos=start,
                iterations=settings.iterations,
                weight="strength",
                scale=0.5,
                center=(0.5, 0.5),
                seed=settings.seed,
            )

        return {
            node_id: Position(
                x=_clamp(float(px) * width, width),
                y=_clamp(float(py) * height, height),
            )
            for node_id, (px, py) in raw.items()
            if node_id not in pinned
        }


def _clamp(value: float, upper: float) -> float:
    return min(max(value, 0.0), upper)
