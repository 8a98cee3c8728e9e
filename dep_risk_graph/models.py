"""
Data model for dependency trees and visualization graphs.

A ``DependencyTree`` is an arena of nodes keyed by package name plus a flat
list of ``(source, target)`` edges. Diamonds and cycles are expressed by
repeated edges and edges pointing back at existing names rather than by
nested parent/child objects.
"""

from typing import Any, NamedTuple

from dep_risk_graph.risk.base import RiskBreakdown


class Edge(NamedTuple):
    """A "depends-on" relation discovered during resolution."""

    source: str
    target: str


class FetchFailure(NamedTuple):
    """Why a package was omitted from a tree."""

    kind: str  # "not_found", "network", "timeout", "invalid"
    message: str


class DependencyNode(NamedTuple):
    """A package discovered during resolution.

    ``level`` is the discovery level: the recursion depth at which the
    package was first visited. It is never revised afterwards.
    """

    name: str
    version: str
    level: int
    dependency_names: list[str]
    has_cve: bool = False
    risk_score: float | None = None
    license: str | None = None
    risk_breakdown: RiskBreakdown | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "level": self.level,
            "dependencyNames": list(self.dependency_names),
            "hasCVE": self.has_cve,
            "riskScore": self.risk_score,
        }
        if self.license is not None:
            data["license"] = self.license
        return data


class DependencyTree(NamedTuple):
    """Result of one resolver analysis.

    ``edges`` may reference targets absent from ``nodes`` (depth-cut,
    excluded or failed packages) and may repeat a pair reached through
    several paths. ``failures`` records why omitted packages are missing;
    it is diagnostic only and not part of the serialized shape.
    """

    root: str
    nodes: dict[str, DependencyNode]
    edges: list[Edge]
    failures: dict[str, FetchFailure]

    @classmethod
    def empty(cls, root: str) -> "DependencyTree":
        return cls(root=root, nodes={}, edges=[], failures={})

    def dangling_edges(self) -> list[Edge]:
        """Edges whose target never became a node."""
        return [edge for edge in self.edges if edge.target not in self.nodes]

    def adjacency(self) -> dict[str, list[str]]:
        """Per-node dependency names, in registry order."""
        return {name: list(node.dependency_names) for name, node in self.nodes.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "nodes": {name: node.to_dict() for name, node in self.nodes.items()},
            "edges": [
                {"source": edge.source, "target": edge.target} for edge in self.edges
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DependencyTree":
        nodes = {
            name: DependencyNode(
                name=raw["name"],
                version=raw["version"],
                level=raw["level"],
                dependency_names=list(raw.get("dependencyNames", [])),
                has_cve=raw.get("hasCVE", False),
                risk_score=raw.get("riskScore"),
                license=raw.get("license"),
            )
            for name, raw in data.get("nodes", {}).items()
        }
        edges = [Edge(e["source"], e["target"]) for e in data.get("edges", [])]
        return cls(root=data["root"], nodes=nodes, edges=edges, failures={})


class FlatDependency(NamedTuple):
    """An already-scored package, as consumed by report and history tools."""

    name: str
    version: str | None = None
    risk_score: float | None = None
    vulnerability_ids: list[str] = []
    license: str | None = None
    risk_breakdown: RiskBreakdown | None = None

    @property
    def has_cve(self) -> bool:
        return len(self.vulnerability_ids) > 0


class GraphNode(NamedTuple):
    """Visualization node."""

    id: str
    name: str
    version: str
    level: int
    group: int  # 1: CVE, 2: high risk, 3: medium risk, 4: low risk
    has_cve: bool
    risk_score: float
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "level": self.level,
            "group": self.group,
            "hasCVE": self.has_cve,
            "riskScore": self.risk_score,
            "size": self.size,
        }


class GraphLink(NamedTuple):
    """Visualization link."""

    source: str
    target: str
    value: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "value": self.value}


class GraphData(NamedTuple):
    """Force-directed graph payload: nodes and links."""

    nodes: list[GraphNode]
    links: list[GraphLink]

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "links": [link.to_dict() for link in self.links],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GraphData":
        nodes = [
            GraphNode(
                id=raw["id"],
                name=raw["name"],
                version=raw["version"],
                level=raw["level"],
                group=raw["group"],
                has_cve=raw["hasCVE"],
                risk_score=raw["riskScore"],
                size=raw["size"],
            )
            for raw in data.get("nodes", [])
        ]
        links = [
            GraphLink(raw["source"], raw["target"], raw.get("value", 1))
            for raw in data.get("links", [])
        ]
        return cls(nodes=nodes, links=links)


def flatten_tree(tree: DependencyTree) -> list[FlatDependency]:
    """
    Flatten a tree into the scored list handed to report/history consumers.

    Nodes keep their discovery order. Vulnerability ids are not carried by
    tree nodes, so a CVE-flagged node gets a single placeholder id.
    """
    flat = []
    for node in tree.nodes.values():
        vuln_ids: list[str] = []
        if node.risk_breakdown is not None and node.risk_breakdown.security:
            vuln_ids = list(node.risk_breakdown.security.vulnerability_ids)
        if node.has_cve and not vuln_ids:
            vuln_ids = ["UNKNOWN"]
        flat.append(
            FlatDependency(
                name=node.name,
                version=node.version,
                risk_score=node.risk_score,
                vulnerability_ids=vuln_ids,
                license=node.license,
                risk_breakdown=node.risk_breakdown,
            )
        )
    return flat
