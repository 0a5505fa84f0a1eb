"""NetworkX views over node/link records.

Rebuilt per call, no cross-call cache. Nodes are added first (in
collection order) so isolated nodes are visible to algorithms and
iteration order is stable between runs.
"""

from __future__ import annotations

from collections.abc import Iterable

import networkx as nx

from graphlens.domain.models import Connection, GraphLink, GraphNode
from graphlens.domain.types import LinkType

# Minimum strength used when converting strength to traversal cost.
STRENGTH_EPSILON = 1e-3

type _Graph = nx.Graph


def link_cost(strength: float) -> float:
    """Traversal cost of a link: weaker links are more expensive."""
    return 1.0 / max(strength, STRENGTH_EPSILON)


def to_networkx(nodes: Iterable[GraphNode], links: Iterable[GraphLink]) -> _Graph:
    """Build an undirected simple graph.

    Parallel links between the same pair collapse into one edge that keeps
    the strongest link (lowest cost). Links whose endpoints are not in
    *nodes* are skipped. Self-loops are dropped.
    """
    g: _Graph = nx.Graph()
    for node in nodes:
        g.add_node(node.id, type=str(node.type), title=node.title)

    for link in links:
        u, v = link.source, link.target
        if u == v or u not in g or v not in g:
            continue
        cost = link_cost(link.strength)
        existing = g.get_edge_data(u, v)
        if existing is not None and existing["cost"] <= cost:
            existing["count"] += 1
            continue
        count = existing["count"] + 1 if existing is not None else 1
        g.add_edge(
            u,
            v,
            cost=cost,
            strength=link.strength,
            link_type=str(link.type),
            count=count,
        )
    return g


def adjacency(
    nodes: Iterable[GraphNode], links: Iterable[GraphLink]
) -> dict[str, list[str]]:
    """Undirected adjacency lists in first-seen order."""
    adj: dict[str, dict[str, None]] = {node.id: {} for node in nodes}
    for link in links:
        u, v = link.source, link.target
        if u == v or u not in adj or v not in adj:
            continue
        adj[u].setdefault(v, None)
        adj[v].setdefault(u, None)
    return {node_id: list(neighbors) for node_id, neighbors in adj.items()}


def degree_counts(
    node_ids: Iterable[str], links: Iterable[GraphLink]
) -> dict[str, int]:
    """Raw in+out link count per node, counting every link."""
    degrees = {node_id: 0 for node_id in node_ids}
    for link in links:
        if link.source in degrees:
            degrees[link.source] += 1
        if link.target in degrees:
            degrees[link.target] += 1
    return degrees


def attach_connections(
    nodes: Iterable[GraphNode], links: Iterable[GraphLink]
) -> list[GraphNode]:
    """Return copies of *nodes* whose ``connections`` mirror *links*.

    Each link is listed on both endpoints. The target side of a one-way
    wikilink is recorded as a ``backlink``. Links with an endpoint outside
    *nodes* are ignored.
    """
    node_list = list(nodes)
    conns: dict[str, list[Connection]] = {node.id: [] for node in node_list}
    for link in links:
        if link.source not in conns or link.target not in conns:
            continue
        conns[link.source].append(
            Connection(to=link.target, type=link.type, strength=link.strength)
        )
        back = link.type
        if link.type == LinkType.LINK and not link.bidirectional:
            back = LinkType.BACKLINK
        conns[link.target].append(Connection(to=link.source, type=back, strength=link.strength))
    return [node.model_copy(update={"connections": conns[node.id]}) for node in node_list]
