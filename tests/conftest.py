"""Pytest configuration and shared fixtures for all tests."""

from typing import Dict, List, Optional, Tuple, Union

import pytest

from depsdev_enricher._transitive.models import DependencyGraph
from depsdev_enricher.inventory import Package


@pytest.fixture(autouse=True)
def disable_sentry_for_tests(monkeypatch):
    """Disable Sentry telemetry for all tests."""
    monkeypatch.setenv("TELEMETRY", "false")
    monkeypatch.delenv("SENTRY_DSN", raising=False)


def _node(name: str, version: str, relation: str, system: str = "PYPI", errors: Optional[List[str]] = None) -> dict:
    return {
        "versionKey": {"system": system, "name": name, "version": version},
        "bundled": False,
        "relation": relation,
        "errors": errors or [],
    }


def _payload(self_name: str, self_version: str, deps: List[Tuple[str, str, str]], system: str = "PYPI") -> dict:
    nodes = [_node(self_name, self_version, "SELF", system)]
    nodes.extend(_node(name, version, relation, system) for name, version, relation in deps)
    edges = [{"fromNode": 0, "toNode": i, "requirement": "*"} for i in range(1, len(nodes))]
    return {"nodes": nodes, "edges": edges}


@pytest.fixture
def graph_payload():
    """Build a deps.dev :dependencies JSON payload.

    Usage:
        graph_payload("requests", "2.31.0", [("urllib3", "2.0.0", "DIRECT")])
    """
    return _payload


@pytest.fixture
def make_graph():
    """Build a DependencyGraph with the same arguments as graph_payload."""

    def _make(self_name, self_version, deps, system="PYPI") -> DependencyGraph:
        return DependencyGraph.from_dict(_payload(self_name, self_version, deps, system))

    return _make


class FakeDepsDevClient:
    """In-memory stand-in for DepsDevClient.

    graphs maps (name, version) to a DependencyGraph or an exception to raise.
    Every call is recorded in calls.
    """

    def __init__(self, system: str, graphs: Dict[Tuple[str, str], Union[DependencyGraph, Exception]]) -> None:
        self.system = system
        self.graphs = graphs
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    def get_dependencies(self, name, version, token=None):
        self.calls.append((name, version))
        if token is not None:
            token.raise_if_cancelled()
        outcome = self.graphs[(name, version)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client():
    """Factory for FakeDepsDevClient instances."""

    def _make(graphs, system="pypi") -> FakeDepsDevClient:
        return FakeDepsDevClient(system, graphs)

    return _make


@pytest.fixture
def requirement():
    """Build a package as produced by the requirements.txt extractor."""

    def _make(name: str, version: str = "", path: str = "requirements.txt") -> Package:
        return Package(
            name=name,
            version=version,
            purl_type="pypi",
            locations=[path],
            plugins=["python/requirements"],
        )

    return _make


@pytest.fixture
def pom_dependency():
    """Build a package as produced by a pom.xml extractor."""

    def _make(name: str, version: str = "", path: str = "pom.xml", plugin: str = "java/pomxml") -> Package:
        return Package(
            name=name,
            version=version,
            purl_type="maven",
            locations=[path],
            plugins=[plugin],
        )

    return _make
