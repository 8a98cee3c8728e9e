"""
Build force-directed graph data from dependency results.

Two entry points produce the same ``GraphData`` shape:

* ``build_from_tree`` keeps the resolver's discovery levels and copies every
  edge, including edges whose target never became a node.
* ``build_from_flat`` works from already-scored flat results plus an
  adjacency map. Levels come from a breadth-first search from the root and
  links are kept only between nodes that exist.

The two leveling strategies are not interchangeable: a package can sit at a
deeper discovery level than its BFS level.
"""

from collections import deque
from typing import Iterable

import networkx as nx

from dep_risk_graph.models import (
    DependencyTree,
    FlatDependency,
    GraphData,
    GraphLink,
    GraphNode,
)

HIGH_RISK_THRESHOLD = 7.0
MEDIUM_RISK_THRESHOLD = 4.0

GROUP_CVE = 1
GROUP_HIGH_RISK = 2
GROUP_MEDIUM_RISK = 3
GROUP_LOW_RISK = 4


def node_group(has_cve: bool, risk_score: float | None) -> int:
    """Classify a node for coloring. A known CVE always wins over the score."""
    if has_cve:
        return GROUP_CVE
    score = risk_score or 0.0
    if score > HIGH_RISK_THRESHOLD:
        return GROUP_HIGH_RISK
    if score > MEDIUM_RISK_THRESHOLD:
        return GROUP_MEDIUM_RISK
    return GROUP_LOW_RISK


def node_size(out_degree: int) -> int:
    return 10 + 2 * out_degree


def discovery_levels(tree: DependencyTree) -> dict[str, int]:
    """Level at which the resolver first visited each node."""
    return {name: node.level for name, node in tree.nodes.items()}


def bfs_levels(adjacency: dict[str, list[str]], root: str | None) -> dict[str, int]:
    """
    Shortest distance from ``root`` for every reachable name.

    The first time a name is reached its level is fixed. Children are
    visited in adjacency order. Unreachable names are not included.
    """
    if root is None:
        return {}
    levels = {root: 0}
    queue = deque([root])
    while queue:
        current = queue.popleft()
        for child in adjacency.get(current, []):
            if child not in levels:
                levels[child] = levels[current] + 1
                queue.append(child)
    return levels


def build_from_tree(tree: DependencyTree) -> GraphData:
    """Convert a resolver tree into graph data."""
    levels = discovery_levels(tree)
    nodes = [
        GraphNode(
            id=name,
            name=name,
            version=node.version,
            level=levels[name],
            group=node_group(node.has_cve, node.risk_score),
            has_cve=node.has_cve,
            risk_score=node.risk_score or 0.0,
            size=node_size(len(node.dependency_names)),
        )
        for name, node in tree.nodes.items()
    ]
    links = [GraphLink(edge.source, edge.target) for edge in tree.edges]
    return GraphData(nodes=nodes, links=links)


def build_from_flat(
    dependencies: Iterable[FlatDependency],
    adjacency: dict[str, list[str]],
    root: str | None = None,
) -> GraphData:
    """
    Convert flat scored results into graph data.

    Args:
        dependencies: Scored packages, one node per name. A later entry
            replaces an earlier one with the same name.
        adjacency: Direct dependency names per package.
        root: Package to level from. Without it every node is level 0.

    Returns:
        GraphData with links only between packages present in
        ``dependencies``.
    """
    levels = bfs_levels(adjacency, root)
    nodes: dict[str, GraphNode] = {}
    for dependency in dependencies:
        nodes[dependency.name] = GraphNode(
            id=dependency.name,
            name=dependency.name,
            version=dependency.version or "unknown",
            level=levels.get(dependency.name, 0),
            group=node_group(dependency.has_cve, dependency.risk_score),
            has_cve=dependency.has_cve,
            risk_score=dependency.risk_score or 0.0,
            size=node_size(len(adjacency.get(dependency.name, []))),
        )

    node_ids = set(nodes)
    links = [
        GraphLink(source, target)
        for source, targets in adjacency.items()
        if source in node_ids
        for target in targets
        if target in node_ids
    ]
    return GraphData(nodes=list(nodes.values()), links=links)


def to_networkx(graph: GraphData) -> nx.DiGraph:
    """
    Convert graph data to a NetworkX DiGraph.

    Link targets without a node are added as bare nodes so dangling edges
    survive the conversion.
    """
    nx_graph = nx.DiGraph()
    for node in graph.nodes:
        nx_graph.add_node(
            node.id,
            name=node.name,
            version=node.version,
            level=node.level,
            group=node.group,
            has_cve=node.has_cve,
            risk_score=node.risk_score,
            size=node.size,
        )
    for link in graph.links:
        nx_graph.add_edge(link.source, link.target, value=link.value)
    return nx_graph


def find_cycles(graph: GraphData) -> list[list[str]]:
    """Dependency cycles among the graph's nodes."""
    return [list(cycle) for cycle in nx.simple_cycles(to_networkx(graph))]
