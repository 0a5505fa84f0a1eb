"""Network analytics — structural metrics, centrality, and communities.

Every metric is computed on the undirected simple view built by
:func:`graphlens.engine.network.to_networkx`, except degree centrality,
which counts raw links (in + out). All algorithms are deterministic:
community detection runs with a fixed seed, and ties are broken by
collection order, so an unchanged subgraph always yields identical values.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence

import networkx as nx
import structlog

from graphlens.config.models import AnalyticsConfig
from graphlens.domain.models import (
    CentralityMetrics,
    Community,
    GraphLink,
    GraphNode,
    NetworkAnalysis,
)
from graphlens.domain.types import CommunityAlgorithm
from graphlens.engine.network import degree_counts, to_networkx
from graphlens.engine.scheduler import CancellationToken, checkpoint

logger = structlog.get_logger(__name__)

MAIN_TAG_COUNT = 3


def analyze(
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
    config: AnalyticsConfig | None = None,
    *,
    cancel: CancellationToken | None = None,
) -> NetworkAnalysis:
    """Compute a full :class:`NetworkAnalysis` for the given subgraph.

    Links with an endpoint outside *nodes* are ignored. *cancel* is
    checked between stages; a cancelled token raises
    :class:`~graphlens.engine.scheduler.ComputationCancelled`.
    """
    config = config or AnalyticsConfig()
    g = to_networkx(nodes, links)
    order = [node.id for node in nodes if node.id in g]
    valid_links = [link for link in links if link.source in g and link.target in g]
    n = g.number_of_nodes()

    degree = degree_counts(order, valid_links)
    checkpoint(cancel)

    clustering = node_clustering(g)
    checkpoint(cancel)

    distance = "cost" if config.weighted_centrality else None
    betweenness = nx.betweenness_centrality(g, weight=distance) if n else {}
    checkpoint(cancel)
    closeness = nx.closeness_centrality(g, distance=distance) if n else {}
    checkpoint(cancel)
    pagerank = _pagerank(g)
    checkpoint(cancel)

    communities = detect_communities(nodes, links, config, graph=g)
    checkpoint(cancel)

    avg_path, diameter = _path_statistics(g, cancel)

    centrality = CentralityMetrics(
        degree={nid: degree[nid] for nid in order},
        betweenness={nid: betweenness[nid] for nid in order},
        closeness={nid: closeness[nid] for nid in order},
        pagerank={nid: pagerank.get(nid, 0.0) for nid in order},
        combined=_combined_importance(order, degree, betweenness, closeness, pagerank),
        clustering={nid: clustering[nid] for nid in order if nid in clustering},
    )

    analysis = NetworkAnalysis(
        node_count=n,
        link_count=len(valid_links),
        density=network_density(g),
        clustering=mean_clustering(clustering),
        average_degree=(2 * g.number_of_edges() / n) if n else 0.0,
        average_path_length=avg_path,
        diameter=diameter,
        modularity=_modularity(g, communities),
        centrality=centrality,
        communities=communities,
        central_nodes=_top_fraction(order, degree, config.central_fraction),
        bridge_nodes=_top_fraction(
            order, betweenness, config.bridge_fraction, nonzero_only=True
        ),
        isolated_nodes=[nid for nid in order if g.degree(nid) == 0],
    )
    logger.debug(
        "analytics.done",
        nodes=analysis.node_count,
        links=analysis.link_count,
        communities=len(communities),
    )
    return analysis


def network_density(g: nx.Graph) -> float:
    """Distinct undirected pairs over possible pairs; 0 below two nodes."""
    n = g.number_of_nodes()
    if n < 2:
        return 0.0
    return g.number_of_edges() / (n * (n - 1) / 2)


def node_clustering(g: nx.Graph) -> dict[str, float]:
    """Local clustering coefficient for nodes with at least two neighbours.

    Nodes with fewer than two neighbours are omitted; their coefficient
    is undefined.
    """
    eligible = [nid for nid in g if g.degree(nid) >= 2]
    if not eligible:
        return {}
    scores = nx.clustering(g, nodes=eligible)
    return {nid: float(scores[nid]) for nid in eligible}


def mean_clustering(clustering: dict[str, float]) -> float:
    if not clustering:
        return 0.0
    return sum(clustering.values()) / len(clustering)


def detect_communities(
    nodes: Sequence[GraphNode],
    links: Sequence[GraphLink],
    config: AnalyticsConfig | None = None,
    *,
    graph: nx.Graph | None = None,
) -> list[Community]:
    """Partition nodes into communities.

    Communities are ordered by size (largest first), ties broken by the
    position of their first member in *nodes*. Members keep collection
    order. Ids are ``community-0``, ``community-1``, ...
    """
    config = config or AnalyticsConfig()
    g = graph if graph is not None else to_networkx(nodes, links)
    if g.number_of_nodes() == 0:
        return []

    groups = _partition(g, config)
    position = {node.id: i for i, node in enumerate(nodes)}
    ordered_groups = [sorted(group, key=position.__getitem__) for group in groups]
    ordered_groups.sort(key=lambda members: (-len(members), position[members[0]]))

    tags_by_id = {node.id: node.metadata.tags for node in nodes}
    communities: list[Community] = []
    for k, members in enumerate(ordered_groups):
        communities.append(
            Community(
                id=f"community-{k}",
                members=members,
                size=len(members),
                density=network_density(g.subgraph(members)),
                main_tags=_main_tags(tags_by_id[m] for m in members),
            )
        )
    return communities


def annotate(nodes: Sequence[GraphNode], analysis: NetworkAnalysis) -> list[GraphNode]:
    """Return fresh node records carrying the metrics in *analysis*.

    Nodes absent from the analysis keep ``None`` annotations.
    """
    community_of = {
        member: community.id for community in analysis.communities for member in community.members
    }
    c = analysis.centrality
    return [
        node.model_copy(
            update={
                "centrality": c.degree.get(node.id),
                "betweenness": c.betweenness.get(node.id),
                "closeness": c.closeness.get(node.id),
                "clustering": c.clustering.get(node.id),
                "pagerank": c.pagerank.get(node.id),
                "importance": c.combined.get(node.id),
                "community": community_of.get(node.id),
            }
        )
        for node in nodes
    ]


# ------------------------------------------------------------------
# Internals
# ------------------------------------------------------------------


def _partition(g: nx.Graph, config: AnalyticsConfig) -> list[set[str]]:
    algorithm = config.community_algorithm
    if algorithm == CommunityAlgorithm.GREEDY_MODULARITY:
        if g.number_of_edges() == 0:
            return [{nid} for nid in g]
        result = nx.community.greedy_modularity_communities(
            g, weight="strength", resolution=config.resolution
        )
    elif algorithm == CommunityAlgorithm.LABEL_PROPAGATION:
        result = nx.community.asyn_lpa_communities(
            g, weight="strength", seed=config.community_seed
        )
    else:
        result = nx.community.louvain_communities(
            g, weight="strength", resolution=config.resolution, seed=config.community_seed
        )
    return [set(group) for group in result]


def _modularity(g: nx.Graph, communities: list[Community]) -> float:
    if g.number_of_edges() == 0 or not communities:
        return 0.0
    partition = [set(c.members) for c in communities]
    return float(nx.community.modularity(g, partition, weight="strength"))


def _pagerank(g: nx.Graph) -> dict[str, float]:
    if g.number_of_nodes() == 0:
        return {}
    try:
        return nx.pagerank(g, weight="strength")
    except nx.PowerIterationFailedConvergence:
        logger.warning("analytics.pagerank_not_converged", nodes=g.number_of_nodes())
        uniform = 1.0 / g.number_of_nodes()
        return dict.fromkeys(g, uniform)


def _path_statistics(g: nx.Graph, cancel: CancellationToken | None) -> tuple[float, int]:
    """Mean and maximum shortest-path hop count over connected pairs."""
    total = 0
    pairs = 0
    diameter = 0
    for _source, lengths in nx.all_pairs_shortest_path_length(g):
        checkpoint(cancel)
        for length in lengths.values():
            if length == 0:
                continue
            total += length
            pairs += 1
            diameter = max(diameter, length)
    return (total / pairs if pairs else 0.0), diameter


def _combined_importance(
    order: list[str],
    degree: dict[str, int],
    betweenness: dict[str, float],
    closeness: dict[str, float],
    pagerank: dict[str, float],
) -> dict[str, float]:
    """Mean of the four max-normalised centrality scores, in [0, 1]."""
    scores = [
        _normalise({nid: float(degree[nid]) for nid in order}),
        _normalise(betweenness),
        _normalise(closeness),
        _normalise(pagerank),
    ]
    return {nid: sum(s.get(nid, 0.0) for s in scores) / len(scores) for nid in order}


def _normalise(values: dict[str, float]) -> dict[str, float]:
    peak = max(values.values(), default=0.0)
    if peak <= 0 or not math.isfinite(peak):
        return dict.fromkeys(values, 0.0)
    return {k: v / peak for k, v in values.items()}


def _top_fraction(
    order: list[str],
    scores: dict[str, float] | dict[str, int],
    fraction: float,
    *,
    nonzero_only: bool = False,
) -> list[str]:
    """Top ``max(1, floor(n * fraction))`` ids by score, stable on ties."""
    if not order:
        return []
    count = max(1, math.floor(len(order) * fraction))
    candidates = [nid for nid in order if not nonzero_only or scores.get(nid, 0) > 0]
    ranked = sorted(candidates, key=lambda nid: -scores.get(nid, 0))
    return ranked[:count]


def _main_tags(tag_lists: Iterable[list[str]]) -> list[str]:
    counts: Counter[str] = Counter()
    for tags in tag_lists:
        counts.update(tags)
    return [tag for tag, _ in counts.most_common(MAIN_TAG_COUNT)]
