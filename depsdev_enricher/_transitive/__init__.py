"""Transitive dependency resolution via deps.dev.

This module resolves the full transitive closure of packages declared in
manifests (requirements.txt, pom.xml) using the pre-computed dependency
graphs served by the deps.dev REST API, and merges the result back into
the scan inventory.

Supported manifests:
- Python: requirements.txt (python/requirements extractor)
- Maven: pom.xml (java/pomxml, java/pomxmlenhanceable, java/pomxmlnet)

Example usage:
    from depsdev_enricher._transitive import enrich_inventory

    results = enrich_inventory(inventory)
    for result in results:
        print(f"{result.enricher}: added {result.added_count} packages")

Note:
    Enrichment is best effort. A failed lookup skips one package, a
    failed manifest is logged and skipped, and enrich_inventory never
    raises for either.
"""

from .cache import ResolutionCache, make_cache_key
from .cancellation import CancellationToken
from .client import DEPSDEV_BASE_URL, DepsDevClient, new_maven_client, new_pypi_client
from .ecosystems import ECOSYSTEMS, MAVEN, PYPI, Ecosystem
from .enricher import (
    DepsDevEnricher,
    create_default_registry,
    enrich_inventory,
    new_maven_enricher,
    new_pypi_enricher,
)
from .grouper import group_packages
from .merger import MergePlan, apply_merge_plan, merge_resolved, plan_merge
from .models import (
    DependencyGraph,
    Edge,
    EnrichmentResult,
    ManifestResult,
    MergeResult,
    Node,
    PackageWithIndex,
    Relation,
    VersionKey,
)
from .protocol import Capabilities, InventoryEnricher, Network
from .registry import EnricherRegistry
from .resolver import TransitiveResolver

__all__ = [
    # Main API
    "enrich_inventory",
    "create_default_registry",
    "new_pypi_enricher",
    "new_maven_enricher",
    # Components
    "DepsDevClient",
    "new_pypi_client",
    "new_maven_client",
    "ResolutionCache",
    "make_cache_key",
    "CancellationToken",
    "group_packages",
    "TransitiveResolver",
    "MergePlan",
    "plan_merge",
    "apply_merge_plan",
    "merge_resolved",
    "DepsDevEnricher",
    "EnricherRegistry",
    "InventoryEnricher",
    "Capabilities",
    "Network",
    # Ecosystems
    "Ecosystem",
    "ECOSYSTEMS",
    "PYPI",
    "MAVEN",
    # Models
    "DependencyGraph",
    "Node",
    "Edge",
    "VersionKey",
    "Relation",
    "PackageWithIndex",
    "MergeResult",
    "ManifestResult",
    "EnrichmentResult",
    "DEPSDEV_BASE_URL",
]
