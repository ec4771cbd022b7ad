"""Package inventory models shared by extractors and enrichers.

The inventory is an ordered, mutable list of packages. Upstream extractors
append the packages they find in manifests and tag each one with their
plugin name; enrichers then update entries in place or append new ones.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from packageurl import PackageURL

from .exceptions import FileProcessingError
from .logging_config import logger

PURL_TYPE_PYPI = "pypi"
PURL_TYPE_MAVEN = "maven"


@dataclass
class MavenMetadata:
    """Maven-specific package metadata.

    Attributes:
        group_id: Maven groupId
        artifact_id: Maven artifactId
        is_transitive: True if the package is an indirect dependency
    """

    group_id: str
    artifact_id: str
    is_transitive: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "artifact_id": self.artifact_id,
            "is_transitive": self.is_transitive,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MavenMetadata":
        return cls(
            group_id=data.get("group_id", ""),
            artifact_id=data.get("artifact_id", ""),
            is_transitive=bool(data.get("is_transitive", False)),
        )


@dataclass
class Package:
    """A discovered or resolved dependency.

    Attributes:
        name: Package name. PyPI names are lowercased by resolution,
              Maven names keep the "groupId:artifactId" casing.
        version: Version string; empty means unpinned.
        purl_type: Package URL type (e.g., "pypi", "maven")
        locations: Manifest paths the package was found in
        plugins: Names of the plugins that produced or touched this entry
        metadata: Optional ecosystem-specific metadata
    """

    name: str
    version: str = ""
    purl_type: str = ""
    locations: List[str] = field(default_factory=list)
    plugins: List[str] = field(default_factory=list)
    metadata: Optional[MavenMetadata] = None

    @property
    def purl(self) -> str:
        """Package URL string for this package."""
        namespace = None
        name = self.name
        if self.purl_type == PURL_TYPE_MAVEN and ":" in self.name:
            namespace, name = self.name.split(":", 1)
        return PackageURL(
            type=self.purl_type or "generic",
            namespace=namespace,
            name=name,
            version=self.version or None,
        ).to_string()

    def add_plugin(self, plugin_name: str) -> bool:
        """Record a provenance tag once. Returns True if it was added."""
        if plugin_name in self.plugins:
            return False
        self.plugins.append(plugin_name)
        return True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "purl_type": self.purl_type,
            "purl": self.purl,
            "locations": list(self.locations),
            "plugins": list(self.plugins),
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Package":
        if not isinstance(data, dict) or not data.get("name"):
            raise ValueError(f"Invalid package entry: {data!r}")
        metadata = data.get("metadata")
        return cls(
            name=data["name"],
            version=data.get("version") or "",
            purl_type=data.get("purl_type", ""),
            locations=list(data.get("locations") or []),
            plugins=list(data.get("plugins") or []),
            metadata=MavenMetadata.from_dict(metadata) if metadata else None,
        )


@dataclass
class Inventory:
    """Ordered collection of packages produced by a scan."""

    packages: List[Package] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.packages)

    def to_dict(self) -> Dict[str, Any]:
        return {"packages": [pkg.to_dict() for pkg in self.packages]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Inventory":
        packages = data.get("packages") if isinstance(data, dict) else None
        if not isinstance(packages, list):
            raise ValueError("Inventory must contain a 'packages' list")
        return cls(packages=[Package.from_dict(p) for p in packages])


def load_inventory(path: str) -> Inventory:
    """
    Load an inventory from a JSON file.

    Raises:
        FileProcessingError: If the file is missing or malformed
    """
    inventory_path = Path(path)
    if not inventory_path.is_file():
        raise FileProcessingError(f"Inventory file not found: {path}")

    try:
        with inventory_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise FileProcessingError(f"Inventory file is not valid JSON: {e}") from e

    try:
        inventory = Inventory.from_dict(data)
    except ValueError as e:
        raise FileProcessingError(f"Invalid inventory file {path}: {e}") from e

    logger.debug(f"Loaded {len(inventory)} packages from {path}")
    return inventory


def save_inventory(inventory: Inventory, path: str) -> None:
    """
    Write an inventory to a JSON file.

    Raises:
        FileProcessingError: If the file cannot be written
    """
    try:
        with Path(path).open("w", encoding="utf-8") as f:
            json.dump(inventory.to_dict(), f, indent=2)
    except OSError as e:
        raise FileProcessingError(f"Failed to write inventory to {path}: {e}") from e
    logger.debug(f"Wrote {len(inventory)} packages to {path}")
