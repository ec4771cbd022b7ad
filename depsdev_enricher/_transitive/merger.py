"""Fold resolved packages back into the shared inventory.

Merging happens in two phases. plan_merge decides, without touching the
inventory, which entries get updated by index and which packages get
appended. apply_merge_plan then applies all index updates before any
append, so indices captured by the grouper stay valid.
"""

from dataclasses import dataclass, field
from typing import ContextManager, Dict, List, Optional, Tuple

from ..inventory import Inventory, Package
from ..logging_config import logger
from .ecosystems import Ecosystem
from .models import MergeResult, PackageWithIndex


@dataclass
class MergePlan:
    """Pending inventory changes for one manifest.

    Attributes:
        updates: (inventory index, resolved version) for direct dependencies
        retags: Inventory indices of earlier-appended entries to tag again
        appends: New packages to append to the inventory
    """

    updates: List[Tuple[int, str]] = field(default_factory=list)
    retags: List[int] = field(default_factory=list)
    appends: List[Package] = field(default_factory=list)


def _existing_entries(inventory: Inventory, path: str, ecosystem: Ecosystem) -> Dict[str, int]:
    """Index inventory entries of this manifest by dedup key."""
    existing: Dict[str, int] = {}
    for index, pkg in enumerate(inventory.packages):
        if pkg.purl_type != ecosystem.purl_type or not pkg.locations or pkg.locations[0] != path:
            continue
        existing.setdefault(ecosystem.dedup_key(pkg.name, pkg.version), index)
    return existing


def plan_merge(
    inventory: Inventory,
    path: str,
    group: Dict[str, PackageWithIndex],
    resolved: List[Package],
    ecosystem: Ecosystem,
) -> MergePlan:
    """
    Decide how resolved packages map onto the inventory.

    A resolved package whose normalized name matches a manifest entry is a
    direct dependency and updates that entry. One already present in the
    inventory for this manifest (from an earlier pass) is only re-tagged.
    Anything else is appended.
    """
    direct = {ecosystem.normalize_name(name): entry.index for name, entry in group.items()}
    existing = _existing_entries(inventory, path, ecosystem)
    plan = MergePlan()
    planned: set[str] = set()

    for pkg in resolved:
        index = direct.get(ecosystem.normalize_name(pkg.name))
        if index is not None:
            plan.updates.append((index, pkg.version))
            continue

        key = ecosystem.dedup_key(pkg.name, pkg.version)
        if key in planned:
            continue
        planned.add(key)

        if key in existing:
            plan.retags.append(existing[key])
        else:
            plan.appends.append(pkg)

    return plan


def apply_merge_plan(
    inventory: Inventory,
    plan: MergePlan,
    enricher_name: str,
    lock: Optional[ContextManager] = None,
) -> MergeResult:
    """
    Apply a merge plan to the inventory.

    Args:
        inventory: Inventory to mutate in place
        plan: Plan returned by plan_merge
        enricher_name: Provenance tag to record
        lock: Optional lock held while appending. DepsDevEnricher merges one
            manifest at a time on the calling thread and passes none; callers
            that merge into one inventory from several threads supply one.

    Returns:
        MergeResult with update and append counts
    """
    result = MergeResult()

    for index, version in plan.updates:
        pkg = inventory.packages[index]
        if pkg.version != version:
            logger.debug(f"Updating {pkg.name} version {pkg.version or '(unpinned)'} -> {version}")
        pkg.version = version
        pkg.add_plugin(enricher_name)
        result.updated += 1

    for index in plan.retags:
        inventory.packages[index].add_plugin(enricher_name)

    if plan.appends:
        if lock is not None:
            with lock:
                inventory.packages.extend(plan.appends)
        else:
            inventory.packages.extend(plan.appends)
        result.added = len(plan.appends)

    return result


def merge_resolved(
    inventory: Inventory,
    path: str,
    group: Dict[str, PackageWithIndex],
    resolved: List[Package],
    ecosystem: Ecosystem,
    lock: Optional[ContextManager] = None,
) -> MergeResult:
    """Plan and apply the merge of one manifest's resolved packages."""
    plan = plan_merge(inventory, path, group, resolved, ecosystem)
    return apply_merge_plan(inventory, plan, ecosystem.enricher_name, lock=lock)
