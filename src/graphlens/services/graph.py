"""GraphService — filtering, layout, analytics, and path queries.

Every method works on the visible subgraph (snapshot + filters) and
returns a ServiceResult whose ``data`` is JSON-ready. Engine-level
"not found" outcomes (missing node, no path) become error results here.
"""

from __future__ import annotations

from typing import Any

from graphlens.domain.models import (
    GraphFilters,
    GraphLink,
    GraphNode,
    LayoutSettings,
    PathResult,
)
from graphlens.domain.types import LayoutType, PathMode
from graphlens.engine.analytics import analyze, annotate, detect_communities
from graphlens.engine.pathfinding import find_all_paths, find_path
from graphlens.services.base import BaseService
from graphlens.services.result import ErrorCode, ServiceResult
from graphlens.services.telemetry import trace_span, traced


def dump_nodes(nodes: list[GraphNode]) -> list[dict[str, Any]]:
    return [node.model_dump(mode="json") for node in nodes]


def dump_links(links: list[GraphLink]) -> list[dict[str, Any]]:
    return [link.model_dump(mode="json") for link in links]


def _path_payload(result: PathResult) -> dict[str, Any]:
    return {
        "found": result.found,
        "path": result.path,
        "distance": result.distance,
        "total_weight": result.total_weight,
        "hops": result.hops,
        "intermediate_nodes": result.intermediate_nodes,
        "mode": result.mode.value,
    }


class GraphService(BaseService):
    """Handles graph filtering, placement, and analysis."""

    # ------------------------------------------------------------------
    # filter: visible subgraph
    # ------------------------------------------------------------------

    @traced
    def filter(self, filters: GraphFilters | None = None) -> ServiceResult:
        """Return the visible subgraph for *filters*."""
        with trace_span("filter_graph") as span:
            nodes, links = self._visible(filters)
            if span:
                span.annotate("nodes", len(nodes))
                span.annotate("links", len(links))

        total = len(self._workspace.snapshot.nodes)
        return ServiceResult(
            ok=True,
            op="filter",
            data={
                "node_count": len(nodes),
                "link_count": len(links),
                "hidden_count": total - len(nodes),
                "nodes": dump_nodes(nodes),
                "links": dump_links(links),
            },
        )

    # ------------------------------------------------------------------
    # layout: node placement
    # ------------------------------------------------------------------

    @traced
    def layout(
        self,
        settings: LayoutSettings | None = None,
        filters: GraphFilters | None = None,
    ) -> ServiceResult:
        """Place the visible nodes and return them with positions.

        An unknown layout type falls back to ``force`` with a warning.
        """
        settings = settings or self._workspace.settings.layout
        warnings: list[str] = []
        if settings.type not in {t.value for t in LayoutType}:
            warnings.append(f"Unknown layout type '{settings.type}', using force")

        nodes, links = self._visible(filters)
        with trace_span("layout") as span:
            placed = self._workspace.layout_engine.layout(nodes, links, settings)
            if span:
                span.annotate("nodes", len(placed))

        return ServiceResult(
            ok=True,
            op="layout",
            data={
                "layout": settings.type if not warnings else LayoutType.FORCE.value,
                "width": settings.width,
                "height": settings.height,
                "node_count": len(placed),
                "link_count": len(links),
                "nodes": dump_nodes(placed),
                "links": dump_links(links),
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # analyze: network metrics
    # ------------------------------------------------------------------

    @traced
    def analyze(
        self,
        filters: GraphFilters | None = None,
        *,
        include_nodes: bool = False,
    ) -> ServiceResult:
        """Compute network metrics for the visible subgraph.

        Args:
            filters: Visibility filters (default: ``[filters]`` section).
            include_nodes: Also return the annotated node records.
        """
        nodes, links = self._visible(filters)
        with trace_span("analyze") as span:
            analysis = analyze(nodes, links, self._workspace.settings.analytics)
            if span:
                span.annotate("nodes", analysis.node_count)
                span.annotate("communities", len(analysis.communities))

        data = analysis.model_dump(mode="json")
        if include_nodes:
            data["nodes"] = dump_nodes(annotate(nodes, analysis))
        return ServiceResult(ok=True, op="analyze", data=data)

    # ------------------------------------------------------------------
    # communities: community detection
    # ------------------------------------------------------------------

    @traced
    def communities(self, filters: GraphFilters | None = None) -> ServiceResult:
        """Detect communities in the visible subgraph."""
        nodes, links = self._visible(filters)
        if not nodes:
            return ServiceResult(ok=True, op="communities", data={"count": 0, "communities": []})

        config = self._workspace.settings.analytics
        with trace_span("community_detection"):
            found = detect_communities(nodes, links, config)

        titles = {node.id: node.title for node in nodes}
        items = [
            {
                **community.model_dump(mode="json"),
                "titles": [titles[m] for m in community.members],
            }
            for community in found
        ]
        return ServiceResult(
            ok=True,
            op="communities",
            data={
                "algorithm": config.community_algorithm.value,
                "count": len(items),
                "communities": items,
            },
        )

    # ------------------------------------------------------------------
    # path: best route between two nodes
    # ------------------------------------------------------------------

    @traced
    def path(
        self,
        source_id: str,
        target_id: str,
        *,
        mode: PathMode | None = None,
        filters: GraphFilters | None = None,
    ) -> ServiceResult:
        """Find the best path between two visible nodes.

        Args:
            source_id: Starting node ID.
            target_id: Destination node ID.
            mode: ``weighted`` or ``hops`` (default: ``[analytics] path_mode``).
            filters: Visibility filters.
        """
        mode = mode or self._workspace.settings.analytics.path_mode
        nodes, links = self._visible(filters)
        node_ids = {node.id for node in nodes}

        for nid, label in [(source_id, "source"), (target_id, "target")]:
            if nid not in node_ids:
                return ServiceResult.failure(
                    "path",
                    ErrorCode.NOT_FOUND,
                    f"Node '{nid}' ({label}) not found in graph",
                    id=nid,
                )

        result = find_path(nodes, links, source_id, target_id, mode=mode)
        if not result.found:
            return ServiceResult.failure(
                "path",
                ErrorCode.NO_PATH,
                f"No path between '{source_id}' and '{target_id}'",
                source_id=source_id,
                target_id=target_id,
            )

        titles = {node.id: node.title for node in nodes}
        return ServiceResult(
            ok=True,
            op="path",
            data={
                "source_id": source_id,
                "target_id": target_id,
                **_path_payload(result),
                "steps": [{"id": nid, "title": titles[nid]} for nid in result.path],
            },
        )

    @traced
    def all_paths(
        self,
        source_id: str,
        target_id: str,
        *,
        max_depth: int | None = None,
        limit: int | None = None,
        filters: GraphFilters | None = None,
    ) -> ServiceResult:
        """Enumerate simple paths up to *max_depth* hops."""
        max_depth = max_depth or self._workspace.settings.analytics.max_path_depth
        nodes, links = self._visible(filters)
        node_ids = {node.id for node in nodes}
        for nid, label in [(source_id, "source"), (target_id, "target")]:
            if nid not in node_ids:
                return ServiceResult.failure(
                    "all_paths",
                    ErrorCode.NOT_FOUND,
                    f"Node '{nid}' ({label}) not found in graph",
                    id=nid,
                )

        paths = find_all_paths(
            nodes, links, source_id, target_id, max_depth=max_depth, limit=limit
        )
        return ServiceResult(
            ok=True,
            op="all_paths",
            data={
                "source_id": source_id,
                "target_id": target_id,
                "max_depth": max_depth,
                "count": len(paths),
                "paths": [_path_payload(p) for p in paths],
            },
        )

    # ------------------------------------------------------------------
    # pin / unpin: user-fixed positions
    # ------------------------------------------------------------------

    @traced
    def pin(self, node_id: str, x: float, y: float) -> ServiceResult:
        """Fix *node_id* at ``(x, y)`` until the next regeneration."""
        if not self._workspace.snapshot.has_node(node_id):
            return ServiceResult.failure(
                "pin", ErrorCode.NOT_FOUND, f"Node '{node_id}' not found in graph", id=node_id
            )
        self._workspace.layout_engine.pin_node(node_id, x, y)
        return ServiceResult(ok=True, op="pin", data={"id": node_id, "x": x, "y": y})

    @traced
    def unpin(self, node_id: str) -> ServiceResult:
        """Release a user pin."""
        released = self._workspace.layout_engine.unpin_node(node_id)
        if not released:
            return ServiceResult.failure(
                "unpin", ErrorCode.NOT_FOUND, f"Node '{node_id}' is not pinned", id=node_id
            )
        return ServiceResult(ok=True, op="unpin", data={"id": node_id})
