"""
Graph filtering.

Each predicate is optional and ``None`` means "not set": ``min_risk_score=0``
is a real bound. Set predicates combine with AND, and a link survives only
when both of its endpoints survive.
"""

from typing import NamedTuple

from dep_risk_graph.models import GraphData, GraphNode


class GraphFilter(NamedTuple):
    """Reusable set of node predicates."""

    cve_only: bool | None = None
    min_risk_score: float | None = None
    max_level: int | None = None

    def is_empty(self) -> bool:
        return self.cve_only is None and self.min_risk_score is None and self.max_level is None

    def matches(self, node: GraphNode) -> bool:
        if self.cve_only and not node.has_cve:
            return False
        if self.min_risk_score is not None and node.risk_score < self.min_risk_score:
            return False
        if self.max_level is not None and node.level > self.max_level:
            return False
        return True

    def apply(self, graph: GraphData) -> GraphData:
        nodes = [node for node in graph.nodes if self.matches(node)]
        kept = {node.id for node in nodes}
        links = [
            link for link in graph.links if link.source in kept and link.target in kept
        ]
        return GraphData(nodes=nodes, links=links)


def filter_graph(
    graph: GraphData,
    cve_only: bool | None = None,
    min_risk_score: float | None = None,
    max_level: int | None = None,
) -> GraphData:
    """
    Filter graph nodes and drop links that lose an endpoint.

    Args:
        graph: Graph to filter. It is not modified.
        cve_only: Keep only nodes with a known CVE.
        min_risk_score: Inclusive lower bound on risk score.
        max_level: Inclusive upper bound on level.

    Returns:
        A new GraphData.
    """
    return GraphFilter(cve_only, min_risk_score, max_level).apply(graph)
