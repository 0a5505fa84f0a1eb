"""Filter pipeline — derive the visible subgraph from raw nodes and links.

Stages run in a fixed order. Every stage that removes nodes is followed
by a prune of links whose endpoints are gone, so connection counts in
later stages always reflect the progressively filtered link set.

INVARIANT: no dangling link survives the pipeline, and every visible
node's ``connections`` point only at visible nodes.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Sequence

import structlog

from graphlens.domain.models import GraphFilters, GraphLink, GraphNode
from graphlens.engine.network import attach_connections, degree_counts

logger = structlog.get_logger(__name__)

type NodePredicate = Callable[[GraphNode], bool]


def filter_graph(
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
    filters: GraphFilters,
) -> tuple[list[GraphNode], list[GraphLink]]:
    """Apply *filters* and return ``(visible_nodes, visible_links)``.

    Inputs are never mutated. Links are passed through by reference;
    nodes come back as copies whose ``connections`` list only the visible
    links. Order of both lists is preserved.
    """
    visible = list(nodes)
    visible_links = _prune(visible, links)

    for name, predicate in _attribute_stages(filters):
        before = len(visible)
        visible = [node for node in visible if predicate(node)]
        if len(visible) != before:
            visible_links = _prune(visible, visible_links)
        logger.debug("filter.stage", stage=name, removed=before - len(visible))

    if filters.focus_node is not None:
        keep = _neighborhood(filters.focus_node, filters.focus_depth, visible, visible_links)
        visible = [node for node in visible if node.id in keep]
        visible_links = _prune(visible, visible_links)

    if filters.min_connections > 0:
        degrees = degree_counts((n.id for n in visible), visible_links)
        visible = [n for n in visible if degrees[n.id] >= filters.min_connections]
        visible_links = _prune(visible, visible_links)

    if not filters.show_orphans:
        degrees = degree_counts((n.id for n in visible), visible_links)
        visible = [n for n in visible if degrees[n.id] > 0]
        visible_links = _prune(visible, visible_links)

    return attach_connections(visible, visible_links), visible_links


def _prune(nodes: Sequence[GraphNode], links: Sequence[GraphLink]) -> list[GraphLink]:
    """Drop links with an endpoint outside *nodes*."""
    ids = {node.id for node in nodes}
    return [link for link in links if link.source in ids and link.target in ids]


def _attribute_stages(filters: GraphFilters) -> list[tuple[str, NodePredicate]]:
    """Build the per-node predicate stages that are active for *filters*."""
    stages: list[tuple[str, NodePredicate]] = []

    query = filters.search_query.strip().lower()
    if query:

        def matches_search(node: GraphNode) -> bool:
            if query in node.title.lower():
                return True
            return any(query in tag.lower() for tag in node.metadata.tags)

        stages.append(("search", matches_search))

    allowed_types = set(filters.node_types)
    stages.append(("node_types", lambda node: node.type in allowed_types))

    if filters.tags:
        wanted_tags = set(filters.tags)
        stages.append(("tags", lambda node: any(t in wanted_tags for t in node.metadata.tags)))

    date_range = filters.date_range
    if date_range is not None:
        stages.append(("date_range", lambda node: date_range.contains(node.metadata.last_modified)))

    if filters.collaborators:
        wanted_people = set(filters.collaborators)
        stages.append(
            (
                "collaborators",
                lambda node: any(c in wanted_people for c in node.metadata.collaborators),
            )
        )

    if filters.access_levels is not None:
        levels = set(filters.access_levels)
        stages.append(("access_levels", lambda node: node.metadata.access_level in levels))

    word_range = filters.word_count_range
    if word_range is not None:
        stages.append(("word_count", lambda node: word_range.contains(node.metadata.word_count)))

    return stages


def _neighborhood(
    center: str,
    depth: int,
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
) -> set[str]:
    """Node ids within *depth* hops of *center* (undirected BFS).

    Returns an empty set when *center* is not among *nodes*.
    """
    ids = {node.id for node in nodes}
    if center not in ids:
        return set()

    neighbors: dict[str, list[str]] = {node_id: [] for node_id in ids}
    for link in links:
        neighbors[link.source].append(link.target)
        neighbors[link.target].append(link.source)

    visited: set[str] = {center}
    queue: deque[tuple[str, int]] = deque([(center, 0)])
    while queue:
        node_id, d = queue.popleft()
        if d >= depth:
            continue
        for neighbor in neighbors[node_id]:
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append((neighbor, d + 1))
    return visited
