"""Ecosystem descriptors for deps.dev transitive resolution.

The resolution pipeline is the same for every ecosystem. What differs is
captured here: which extractor plugins feed it, how names are normalized,
which purl type is emitted, and what metadata a resolved package carries.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..inventory import PURL_TYPE_MAVEN, PURL_TYPE_PYPI, MavenMetadata
from .client import SYSTEM_MAVEN, SYSTEM_PYPI
from .models import Relation

# Upstream extractor plugin names
REQUIREMENTS_EXTRACTOR_NAME = "python/requirements"
POMXML_EXTRACTOR_NAME = "java/pomxml"
POMXML_ENHANCEABLE_NAME = "java/pomxmlenhanceable"
POMXML_NET_NAME = "java/pomxmlnet"

# Enricher names, also used as provenance tags
PYPI_ENRICHER_NAME = "transitivedependency/requirements/depsdev"
MAVEN_ENRICHER_NAME = "transitivedependency/maven/depsdev"

MetadataBuilder = Callable[[str, Relation], Optional[MavenMetadata]]


@dataclass(frozen=True)
class Ecosystem:
    """
    Everything ecosystem-specific about transitive resolution.

    Attributes:
        key: Short identifier used in configuration ("pypi", "maven")
        system: deps.dev system name
        purl_type: Package URL type of emitted packages
        enricher_name: Provenance tag written on touched packages
        extractor_names: Upstream plugins whose packages are eligible
        required_plugin: Plugin the host must run before this enricher
        normalize_name: Name normalization applied to graph nodes
        build_metadata: Builds metadata for an emitted package
    """

    key: str
    system: str
    purl_type: str
    enricher_name: str
    extractor_names: Tuple[str, ...]
    required_plugin: str
    normalize_name: Callable[[str], str]
    build_metadata: MetadataBuilder

    def dedup_key(self, name: str, version: str) -> str:
        return f"{self.normalize_name(name)}@{version}"


def normalize_pypi_name(name: str) -> str:
    """PyPI names are case-insensitive."""
    return name.lower()


def normalize_maven_name(name: str) -> str:
    """Maven coordinates are case-sensitive and already "groupId:artifactId"."""
    return name


def no_metadata(name: str, relation: Relation) -> Optional[MavenMetadata]:
    return None


def build_maven_metadata(name: str, relation: Relation) -> MavenMetadata:
    """Split "groupId:artifactId" and flag indirect dependencies."""
    group_id, _, artifact_id = name.partition(":")
    return MavenMetadata(
        group_id=group_id,
        artifact_id=artifact_id,
        is_transitive=relation is Relation.INDIRECT,
    )


PYPI = Ecosystem(
    key="pypi",
    system=SYSTEM_PYPI,
    purl_type=PURL_TYPE_PYPI,
    enricher_name=PYPI_ENRICHER_NAME,
    extractor_names=(REQUIREMENTS_EXTRACTOR_NAME,),
    required_plugin=REQUIREMENTS_EXTRACTOR_NAME,
    normalize_name=normalize_pypi_name,
    build_metadata=no_metadata,
)

MAVEN = Ecosystem(
    key="maven",
    system=SYSTEM_MAVEN,
    purl_type=PURL_TYPE_MAVEN,
    enricher_name=MAVEN_ENRICHER_NAME,
    extractor_names=(POMXML_EXTRACTOR_NAME, POMXML_ENHANCEABLE_NAME, POMXML_NET_NAME),
    required_plugin=POMXML_ENHANCEABLE_NAME,
    normalize_name=normalize_maven_name,
    build_metadata=build_maven_metadata,
)

ECOSYSTEMS = {e.key: e for e in (PYPI, MAVEN)}
