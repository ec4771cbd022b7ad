"""Group inventory packages by the manifest they were extracted from."""

from typing import Iterable

from ..inventory import Inventory
from .models import ManifestGroups, PackageWithIndex


def group_packages(inventory: Inventory, plugin_names: Iterable[str]) -> ManifestGroups:
    """
    Partition inventory packages by origin manifest.

    A package is eligible if any of its plugins is in plugin_names and it
    has at least one location. The first location is the manifest path.
    Within a manifest packages are keyed by name; when two entries share a
    name the later one wins.

    Args:
        inventory: Inventory to read (not modified)
        plugin_names: Extractor plugin names that qualify a package

    Returns:
        Mapping of manifest path -> package name -> PackageWithIndex
    """
    wanted = set(plugin_names)
    groups: ManifestGroups = {}

    for index, pkg in enumerate(inventory.packages):
        if not wanted.intersection(pkg.plugins):
            continue
        if not pkg.locations:
            continue
        path = pkg.locations[0]
        groups.setdefault(path, {})[pkg.name] = PackageWithIndex(pkg, index)

    return groups
