"""Tests for network analytics."""

from __future__ import annotations

import pytest

from graphlens.config.models import AnalyticsConfig
from graphlens.domain.models import GraphSnapshot
from graphlens.domain.types import CommunityAlgorithm
from graphlens.engine.analytics import analyze, annotate, detect_communities, network_density
from graphlens.engine.network import to_networkx
from graphlens.engine.scheduler import CancellationToken, ComputationCancelled
from tests.conftest import make_link, make_node


def _two_triangles():
    nodes = [
        make_node(c, metadata={"tags": ["left"] if c in "abc" else ["right"]}) for c in "abcdef"
    ]
    links = [
        make_link("a", "b"),
        make_link("b", "c"),
        make_link("c", "a"),
        make_link("d", "e"),
        make_link("e", "f"),
        make_link("f", "d"),
        make_link("c", "d", 0.1),
    ]
    return nodes, links


class TestMetrics:
    def test_sample_graph(self, snapshot: GraphSnapshot) -> None:
        result = analyze(snapshot.nodes, snapshot.links)
        assert result.node_count == 6
        assert result.link_count == 6
        assert result.density == pytest.approx(0.4)
        assert result.average_degree == pytest.approx(2.0)
        assert result.average_path_length == pytest.approx(1.5)
        assert result.diameter == 3
        assert result.isolated_nodes == ["db-1"]

    def test_degree_counts_raw_links(self, snapshot: GraphSnapshot) -> None:
        degree = analyze(snapshot.nodes, snapshot.links).centrality.degree
        assert degree == {
            "folder-1": 2,
            "note-a": 3,
            "note-b": 3,
            "note-c": 3,
            "note-d": 1,
            "db-1": 0,
        }

    def test_clustering(self, snapshot: GraphSnapshot) -> None:
        result = analyze(snapshot.nodes, snapshot.links)
        local = result.centrality.clustering
        assert local == pytest.approx(
            {"folder-1": 1.0, "note-a": 2 / 3, "note-b": 2 / 3, "note-c": 1 / 3}
        )
        assert "note-d" not in local
        assert result.clustering == pytest.approx(2 / 3)
        assert 0.0 <= result.clustering <= 1.0

    def test_central_and_bridge_nodes(self, snapshot: GraphSnapshot) -> None:
        result = analyze(snapshot.nodes, snapshot.links)
        # Ties on degree resolve by collection order.
        assert result.central_nodes == ["note-a"]
        assert result.bridge_nodes == ["note-c"]

    def test_centrality_ranges(self, snapshot: GraphSnapshot) -> None:
        c = analyze(snapshot.nodes, snapshot.links).centrality
        assert sum(c.pagerank.values()) == pytest.approx(1.0)
        assert all(0.0 <= v <= 1.0 for v in c.combined.values())
        assert c.betweenness["db-1"] == 0.0
        assert c.closeness["db-1"] == 0.0

    def test_deterministic(self, snapshot: GraphSnapshot) -> None:
        first = analyze(snapshot.nodes, snapshot.links)
        second = analyze(snapshot.nodes, snapshot.links)
        assert first == second

    def test_empty_graph(self) -> None:
        result = analyze([], [])
        assert result.node_count == 0
        assert result.density == 0.0
        assert result.communities == []
        assert result.central_nodes == []

    def test_links_outside_subgraph_ignored(self) -> None:
        nodes = [make_node("a"), make_node("b")]
        result = analyze(nodes, [make_link("a", "b"), make_link("a", "ghost")])
        assert result.link_count == 1
        assert result.density == pytest.approx(1.0)

    def test_cancellation(self, snapshot: GraphSnapshot) -> None:
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ComputationCancelled):
            analyze(snapshot.nodes, snapshot.links, cancel=token)


class TestDensity:
    @pytest.mark.parametrize("count", [0, 1])
    def test_below_two_nodes(self, count: int) -> None:
        nodes = [make_node(str(i)) for i in range(count)]
        assert network_density(to_networkx(nodes, [])) == 0.0

    def test_parallel_links_count_once(self) -> None:
        nodes = [make_node("a"), make_node("b")]
        links = [make_link("a", "b"), make_link("b", "a", 0.5)]
        assert network_density(to_networkx(nodes, links)) == 1.0


class TestCommunities:
    @pytest.mark.parametrize(
        "algorithm", [CommunityAlgorithm.LOUVAIN, CommunityAlgorithm.GREEDY_MODULARITY]
    )
    def test_two_triangles(self, algorithm: CommunityAlgorithm) -> None:
        nodes, links = _two_triangles()
        config = AnalyticsConfig(community_algorithm=algorithm)
        communities = detect_communities(nodes, links, config)
        assert [c.members for c in communities] == [["a", "b", "c"], ["d", "e", "f"]]
        assert [c.id for c in communities] == ["community-0", "community-1"]
        assert communities[0].density == pytest.approx(1.0)
        assert communities[0].main_tags == ["left"]
        assert communities[1].main_tags == ["right"]

    def test_partition_covers_every_node(self, snapshot: GraphSnapshot) -> None:
        communities = detect_communities(snapshot.nodes, snapshot.links)
        members = [m for c in communities for m in c.members]
        assert sorted(members) == sorted(n.id for n in snapshot.nodes)
        sizes = [c.size for c in communities]
        assert sizes == sorted(sizes, reverse=True)
        assert communities[-1].members == ["db-1"]

    def test_label_propagation_partitions(self, snapshot: GraphSnapshot) -> None:
        config = AnalyticsConfig(community_algorithm=CommunityAlgorithm.LABEL_PROPAGATION)
        first = detect_communities(snapshot.nodes, snapshot.links, config)
        second = detect_communities(snapshot.nodes, snapshot.links, config)
        assert first == second
        assert sum(c.size for c in first) == len(snapshot.nodes)

    def test_isolated_nodes_are_singletons(self) -> None:
        nodes = [make_node("a"), make_node("b")]
        communities = detect_communities(
            nodes, [], AnalyticsConfig(community_algorithm=CommunityAlgorithm.GREEDY_MODULARITY)
        )
        assert [c.members for c in communities] == [["a"], ["b"]]
        assert communities[0].density == 0.0

    def test_modularity_positive_for_clear_split(self) -> None:
        nodes, links = _two_triangles()
        assert analyze(nodes, links).modularity > 0.0


class TestAnnotate:
    def test_copies_metrics_onto_nodes(self, snapshot: GraphSnapshot) -> None:
        result = analyze(snapshot.nodes, snapshot.links)
        annotated = {n.id: n for n in annotate(snapshot.nodes, result)}
        alpha = annotated["note-a"]
        assert alpha.centrality == 3
        assert alpha.pagerank == result.centrality.pagerank["note-a"]
        assert alpha.importance == result.centrality.combined["note-a"]
        assert alpha.community is not None
        assert annotated["note-d"].clustering is None
        assert snapshot.nodes[1].centrality is None

    def test_unknown_nodes_keep_none(self, snapshot: GraphSnapshot) -> None:
        result = analyze(snapshot.nodes[:2], [])
        (stranger,) = annotate([make_node("other")], result)
        assert stranger.centrality is None
        assert stranger.community is None
