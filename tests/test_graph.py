"""
Tests for graph building and filtering.
"""

import pytest

from dep_risk_graph.graph_builder import (
    bfs_levels,
    build_from_flat,
    build_from_tree,
    discovery_levels,
    find_cycles,
    node_group,
    node_size,
    to_networkx,
)
from dep_risk_graph.graph_filter import GraphFilter, filter_graph
from dep_risk_graph.models import (
    DependencyNode,
    DependencyTree,
    Edge,
    FlatDependency,
    GraphData,
    GraphLink,
    GraphNode,
)


def make_node(node_id, risk_score, level, has_cve=False):
    return GraphNode(
        id=node_id,
        name=node_id,
        version="1.0",
        level=level,
        group=node_group(has_cve, risk_score),
        has_cve=has_cve,
        risk_score=risk_score,
        size=10,
    )


@pytest.fixture
def chain_graph():
    """Three nodes with risk 2, 5, 8 at levels 0, 1, 2, linked in sequence."""
    return GraphData(
        nodes=[
            make_node("low", 2.0, 0),
            make_node("mid", 5.0, 1, has_cve=True),
            make_node("high", 8.0, 2),
        ],
        links=[GraphLink("low", "mid"), GraphLink("mid", "high")],
    )


class TestNodeAttributes:
    def test_cve_overrides_score(self):
        assert node_group(True, 2.0) == 1
        assert node_group(True, 9.5) == 1

    @pytest.mark.parametrize(
        "score,expected",
        [(7.1, 2), (7.0, 3), (4.1, 3), (4.0, 4), (0.0, 4), (None, 4)],
    )
    def test_score_bands(self, score, expected):
        assert node_group(False, score) == expected

    def test_size_grows_with_out_degree(self):
        assert node_size(0) == 10
        assert node_size(3) == 16


class TestLeveling:
    def test_bfs_levels_diamond(self):
        adjacency = {"root": ["a", "b"], "a": ["c"], "b": ["c"]}
        assert bfs_levels(adjacency, "root") == {"root": 0, "a": 1, "b": 1, "c": 2}

    def test_bfs_levels_without_root(self):
        assert bfs_levels({"a": ["b"]}, None) == {}

    def test_bfs_level_is_shortest_path(self):
        adjacency = {"root": ["a", "c"], "a": ["b"], "b": ["c"]}
        assert bfs_levels(adjacency, "root")["c"] == 1

    def test_discovery_levels_come_from_tree(self):
        tree = DependencyTree(
            root="root",
            nodes={
                "root": DependencyNode("root", "1", 0, ["c"]),
                "c": DependencyNode("c", "1", 3, []),
            },
            edges=[Edge("root", "c")],
            failures={},
        )
        assert discovery_levels(tree) == {"root": 0, "c": 3}


class TestBuildFromTree:
    def test_dangling_links_are_kept(self):
        tree = DependencyTree(
            root="root",
            nodes={
                "root": DependencyNode(
                    "root", "2.0", 0, ["a", "gone"], has_cve=False, risk_score=5.5
                ),
                "a": DependencyNode("a", "1.0", 1, [], has_cve=True, risk_score=1.0),
            },
            edges=[Edge("root", "a"), Edge("root", "gone")],
            failures={},
        )

        graph = build_from_tree(tree)

        nodes = {node.id: node for node in graph.nodes}
        assert nodes["root"].group == 3
        assert nodes["root"].size == 14
        assert nodes["a"].group == 1
        assert nodes["a"].level == 1
        assert graph.links == [GraphLink("root", "a"), GraphLink("root", "gone")]

    def test_unscored_node_gets_zero_score(self):
        tree = DependencyTree(
            root="root",
            nodes={"root": DependencyNode("root", "1", 0, [])},
            edges=[],
            failures={},
        )
        graph = build_from_tree(tree)
        assert graph.nodes[0].risk_score == 0.0
        assert graph.nodes[0].group == 4


class TestBuildFromFlat:
    def test_levels_and_surviving_links(self):
        dependencies = [
            FlatDependency("root", "1.0", 1.0),
            FlatDependency("a", "1.0", 8.0),
            FlatDependency("c", "1.0", 2.0, vulnerability_ids=["CVE-2024-1"]),
            FlatDependency("orphan", None, None),
        ]
        adjacency = {"root": ["a", "b"], "a": ["c"], "b": ["c"]}

        graph = build_from_flat(dependencies, adjacency, root="root")

        nodes = {node.id: node for node in graph.nodes}
        assert nodes["root"].level == 0
        assert nodes["a"].level == 1
        assert nodes["c"].level == 2
        assert nodes["orphan"].level == 0
        assert nodes["orphan"].version == "unknown"
        assert nodes["root"].size == 14  # b counts even though it is absent
        assert nodes["a"].group == 2
        assert nodes["c"].group == 1
        assert graph.links == [GraphLink("root", "a"), GraphLink("a", "c")]

    def test_no_root_defaults_to_level_zero(self):
        graph = build_from_flat(
            [FlatDependency("a"), FlatDependency("b")], {"a": ["b"]}
        )
        assert [node.level for node in graph.nodes] == [0, 0]
        assert graph.links == [GraphLink("a", "b")]

    def test_duplicate_names_keep_last_entry(self):
        graph = build_from_flat(
            [FlatDependency("a", "1.0", 1.0), FlatDependency("a", "2.0", 9.0)], {}
        )

        assert len(graph.nodes) == 1
        assert graph.nodes[0].version == "2.0"
        assert graph.nodes[0].risk_score == 9.0


class TestGraphFilter:
    def test_min_risk_keeps_only_high_node(self, chain_graph):
        result = filter_graph(chain_graph, min_risk_score=6)
        assert [node.id for node in result.nodes] == ["high"]
        assert result.links == []

    def test_zero_min_risk_is_a_real_bound(self, chain_graph):
        graph = chain_graph._replace(
            nodes=chain_graph.nodes + [make_node("negative", -1.0, 0)]
        )
        result = filter_graph(graph, min_risk_score=0)
        assert "negative" not in result.node_ids()
        assert len(result.nodes) == 3

    def test_predicates_combine_by_conjunction(self, chain_graph):
        result = filter_graph(chain_graph, min_risk_score=4, max_level=1)
        assert [node.id for node in result.nodes] == ["mid"]

    def test_cve_only(self, chain_graph):
        result = filter_graph(chain_graph, cve_only=True)
        assert [node.id for node in result.nodes] == ["mid"]

    def test_link_needs_both_endpoints(self, chain_graph):
        result = filter_graph(chain_graph, max_level=1)
        assert result.links == [GraphLink("low", "mid")]

    def test_no_predicates_returns_equal_graph(self, chain_graph):
        assert filter_graph(chain_graph) == chain_graph
        assert GraphFilter().is_empty()

    def test_input_is_not_mutated(self, chain_graph):
        before = chain_graph.to_dict()
        GraphFilter(min_risk_score=9).apply(chain_graph)
        assert chain_graph.to_dict() == before


class TestNetworkx:
    def test_dangling_targets_become_bare_nodes(self):
        graph = GraphData(
            nodes=[make_node("a", 1.0, 0)],
            links=[GraphLink("a", "missing")],
        )
        nx_graph = to_networkx(graph)
        assert nx_graph.has_edge("a", "missing")
        assert nx_graph.nodes["a"]["risk_score"] == 1.0

    def test_find_cycles(self):
        graph = GraphData(
            nodes=[make_node("a", 1.0, 0), make_node("b", 1.0, 1)],
            links=[GraphLink("a", "b"), GraphLink("b", "a")],
        )
        cycles = find_cycles(graph)
        assert len(cycles) == 1
        assert set(cycles[0]) == {"a", "b"}
