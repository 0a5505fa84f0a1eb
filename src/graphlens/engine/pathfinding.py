"""Path finder — shortest and bounded path queries over an undirected view.

Weighted mode runs Dijkstra over ``cost = 1 / max(strength, eps)``;
hops mode runs BFS and reports the edge count as ``distance``. Missing
endpoints and disconnected pairs yield ``found=False``, never an error.
"""

from __future__ import annotations

from collections.abc import Sequence

import networkx as nx

from graphlens.domain.models import GraphLink, GraphNode, PathResult
from graphlens.domain.types import PathMode
from graphlens.engine.network import to_networkx

DEFAULT_MAX_DEPTH = 5


def find_path(
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
    source_id: str,
    target_id: str,
    *,
    mode: PathMode = PathMode.WEIGHTED,
) -> PathResult:
    """Find the best path from *source_id* to *target_id*.

    Args:
        nodes: Visible nodes.
        links: Visible links; treated as undirected.
        source_id: Start node id.
        target_id: End node id.
        mode: ``weighted`` (Dijkstra over link cost) or ``hops`` (BFS).
    """
    g = to_networkx(nodes, links)
    if source_id not in g or target_id not in g:
        return PathResult.not_found(mode)
    if source_id == target_id:
        return PathResult.trivial(source_id, mode)

    try:
        if mode == PathMode.HOPS:
            path: list[str] = nx.shortest_path(g, source_id, target_id)
        else:
            _, path = nx.single_source_dijkstra(g, source_id, target_id, weight="cost")
    except nx.NetworkXNoPath:
        return PathResult.not_found(mode)

    total = _path_cost(g, path)
    hops = len(path) - 1
    return PathResult(
        found=True,
        path=path,
        distance=float(hops) if mode == PathMode.HOPS else total,
        intermediate_nodes=path[1:-1],
        total_weight=total,
        hops=hops,
        mode=mode,
    )


def find_all_paths(
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
    source_id: str,
    target_id: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    limit: int | None = None,
) -> list[PathResult]:
    """Enumerate simple paths of at most *max_depth* hops.

    Results are ordered by hop count, then by total cost. An unknown
    endpoint or ``source_id == target_id`` yields an empty list.
    """
    g = to_networkx(nodes, links)
    if source_id not in g or target_id not in g or source_id == target_id:
        return []

    results: list[PathResult] = []
    for path in nx.all_simple_paths(g, source_id, target_id, cutoff=max_depth):
        total = _path_cost(g, path)
        results.append(
            PathResult(
                found=True,
                path=path,
                distance=total,
                intermediate_nodes=path[1:-1],
                total_weight=total,
                hops=len(path) - 1,
                mode=PathMode.WEIGHTED,
            )
        )
    results.sort(key=lambda r: (r.hops, r.total_weight))
    if limit is not None:
        results = results[:limit]
    return results


def _path_cost(g: nx.Graph, path: list[str]) -> float:
    return float(sum(g.edges[u, v]["cost"] for u, v in zip(path, path[1:], strict=False)))
