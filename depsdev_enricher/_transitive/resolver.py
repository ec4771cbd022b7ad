"""Resolve the transitive closure of one manifest group via deps.dev."""

from typing import Dict, List, Optional

from ..exceptions import DepsDevError, NoDependenciesResolvedError, OperationCancelledError
from ..inventory import Package
from ..logging_config import logger
from .cancellation import CancellationToken
from .client import DepsDevClient
from .ecosystems import Ecosystem
from .models import PackageWithIndex, Relation


class TransitiveResolver:
    """
    Resolves every pinned package in a manifest group against deps.dev.

    Nodes from all graphs in the group are deduplicated by normalized
    name and version, so a package reachable from several direct
    dependencies is emitted once. The queried package itself (the SELF
    node) is never emitted.
    """

    def __init__(self, ecosystem: Ecosystem, client: DepsDevClient) -> None:
        self.ecosystem = ecosystem
        self.client = client

    def resolve(
        self,
        path: str,
        group: Dict[str, PackageWithIndex],
        token: Optional[CancellationToken] = None,
    ) -> List[Package]:
        """
        Resolve transitive dependencies for all packages of one manifest.

        Args:
            path: Manifest path, recorded as the location of emitted packages
            group: Package name -> PackageWithIndex for this manifest
            token: Optional cancellation token

        Returns:
            Deduplicated resolved packages, in no particular order

        Raises:
            NoDependenciesResolvedError: If lookups were attempted but
                nothing was resolved
            OperationCancelledError: If the token fired
        """
        seen: set[str] = set()
        result: List[Package] = []
        attempted = 0

        for entry in group.values():
            pkg = entry.package
            if not pkg.version:
                # Cannot look up packages without a pinned version
                continue

            if token is not None:
                token.raise_if_cancelled()

            attempted += 1
            try:
                graph = self.client.get_dependencies(pkg.name, pkg.version, token=token)
            except OperationCancelledError:
                raise
            except DepsDevError as e:
                logger.warning(
                    f"deps.dev: failed to get {self.ecosystem.key} dependencies for {pkg.name}@{pkg.version}: {e}"
                )
                continue

            for node in graph.nodes:
                if node.relation is Relation.SELF:
                    continue

                name = self.ecosystem.normalize_name(node.version_key.name)
                version = node.version_key.version
                key = f"{name}@{version}"
                if key in seen:
                    continue
                seen.add(key)

                if node.errors:
                    logger.debug(f"deps.dev reported errors for {key}: {'; '.join(node.errors)}")

                result.append(
                    Package(
                        name=name,
                        version=version,
                        purl_type=self.ecosystem.purl_type,
                        locations=[path],
                        plugins=[self.ecosystem.enricher_name],
                        metadata=self.ecosystem.build_metadata(name, node.relation),
                    )
                )

        if attempted and not result:
            raise NoDependenciesResolvedError(f"no {self.ecosystem.key} dependencies resolved from deps.dev")

        logger.debug(f"Resolved {len(result)} packages for {path} from {attempted} lookups")
        return result
