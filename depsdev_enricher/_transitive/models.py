"""Data models for transitive dependency resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from ..inventory import Package


class Relation(str, Enum):
    """Relation of a graph node to the queried package."""

    SELF = "SELF"
    DIRECT = "DIRECT"
    INDIRECT = "INDIRECT"


@dataclass(frozen=True)
class VersionKey:
    """Identifies a package version in a deps.dev system."""

    system: str
    name: str
    version: str


@dataclass
class Node:
    """A single package in a dependency graph.

    Attributes:
        version_key: System, name and version of the package
        relation: SELF for the queried package, DIRECT or INDIRECT otherwise
        bundled: Whether the package is vendored inside its parent
        errors: Resolution errors reported by deps.dev for this node
    """

    version_key: VersionKey
    relation: Relation
    bundled: bool = False
    errors: List[str] = field(default_factory=list)


@dataclass
class Edge:
    """A requirement from one node to another, by node index."""

    from_node: int
    to_node: int
    requirement: str = ""


@dataclass
class DependencyGraph:
    """Pre-computed dependency graph returned by deps.dev."""

    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    @property
    def self_node(self) -> Optional[Node]:
        """The node describing the queried package itself."""
        for node in self.nodes:
            if node.relation is Relation.SELF:
                return node
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DependencyGraph":
        """
        Build a graph from a decoded deps.dev response.

        Raises:
            ValueError: If the payload does not match the graph schema
        """
        if not isinstance(data, dict):
            raise ValueError("dependency graph must be a JSON object")

        raw_nodes = data.get("nodes") or []
        raw_edges = data.get("edges") or []
        if not isinstance(raw_nodes, list):
            raise ValueError(f"'nodes' must be a list, got {type(raw_nodes).__name__}")
        if not isinstance(raw_edges, list):
            raise ValueError(f"'edges' must be a list, got {type(raw_edges).__name__}")

        nodes = [_node_from_dict(raw) for raw in raw_nodes]

        edges = []
        for raw in raw_edges:
            try:
                edges.append(
                    Edge(
                        from_node=int(raw.get("fromNode", 0)),
                        to_node=int(raw["toNode"]),
                        requirement=str(raw.get("requirement") or ""),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise ValueError(f"malformed edge {raw!r}: {e}") from e

        return cls(nodes=nodes, edges=edges)


def _node_from_dict(raw: Any) -> Node:
    """Parse one graph node, rejecting wrongly typed fields."""
    if not isinstance(raw, dict) or not isinstance(raw.get("versionKey"), dict):
        raise ValueError(f"malformed node {raw!r}: missing versionKey object")

    key = raw["versionKey"]
    name = key.get("name")
    version = key.get("version", "")
    system = key.get("system", "")
    if not isinstance(name, str) or not name:
        raise ValueError(f"malformed node {raw!r}: name must be a non-empty string")
    if not isinstance(version, str) or not isinstance(system, str):
        raise ValueError(f"malformed node {raw!r}: system and version must be strings")

    errors = raw.get("errors") or []
    if not isinstance(errors, list):
        raise ValueError(f"malformed node {raw!r}: errors must be a list")

    try:
        relation = Relation(raw.get("relation"))
    except ValueError as e:
        raise ValueError(f"malformed node {raw!r}: {e}") from e

    return Node(
        version_key=VersionKey(system=system, name=name, version=version),
        relation=relation,
        bundled=bool(raw.get("bundled", False)),
        errors=[str(err) for err in errors],
    )


class PackageWithIndex(NamedTuple):
    """A package together with its index in the inventory list."""

    package: Package
    index: int


# path -> name -> PackageWithIndex
ManifestGroups = Dict[str, Dict[str, PackageWithIndex]]


@dataclass
class MergeResult:
    """Counts of inventory changes made for one manifest."""

    updated: int = 0
    added: int = 0


@dataclass
class ManifestResult:
    """Outcome of resolving and merging one manifest group.

    Attributes:
        path: Manifest path
        resolved_count: Unique packages returned by the resolver
        updated: Existing inventory entries updated in place
        added: New inventory entries appended
        error: Failure message when the group was skipped
    """

    path: str
    resolved_count: int = 0
    updated: int = 0
    added: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class EnrichmentResult:
    """Result of one enricher pass over an inventory.

    Attributes:
        enricher: Name of the enricher that ran
        manifests: Per-manifest outcomes
        cancelled: True if the pass stopped because of cancellation
    """

    enricher: str
    manifests: List[ManifestResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def added_count(self) -> int:
        return sum(m.added for m in self.manifests)

    @property
    def updated_count(self) -> int:
        return sum(m.updated for m in self.manifests)

    @property
    def failed_count(self) -> int:
        return sum(1 for m in self.manifests if not m.succeeded)
