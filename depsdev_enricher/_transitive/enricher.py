"""deps.dev transitive dependency enrichment orchestration."""

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional

from ..exceptions import NoDependenciesResolvedError, OperationCancelledError
from ..inventory import Inventory, Package
from ..logging_config import logger
from .cancellation import CancellationToken
from .client import DEPSDEV_BASE_URL, DepsDevClient
from .ecosystems import ECOSYSTEMS, MAVEN, PYPI, Ecosystem
from .grouper import group_packages
from .merger import merge_resolved
from .models import EnrichmentResult, ManifestResult, PackageWithIndex
from .protocol import Capabilities, Network
from .registry import EnricherRegistry
from .resolver import TransitiveResolver


class DepsDevEnricher:
    """
    Adds transitive dependencies from deps.dev to an inventory.

    For each manifest extracted by one of the ecosystem's extractors, every
    pinned package is looked up in deps.dev. Direct dependencies found in
    the graphs update their existing inventory entries; everything else is
    appended as a new entry located in the same manifest.

    Example:
        enricher = new_pypi_enricher()
        result = enricher.enrich(inventory)
        print(f"Added {result.added_count} transitive dependencies")
    """

    def __init__(self, ecosystem: Ecosystem, client: Optional[DepsDevClient] = None) -> None:
        self.ecosystem = ecosystem
        self.client = client or DepsDevClient(ecosystem.system)
        self.resolver = TransitiveResolver(ecosystem, self.client)

    @property
    def name(self) -> str:
        return self.ecosystem.enricher_name

    @property
    def version(self) -> int:
        return 0

    def requirements(self) -> Capabilities:
        return Capabilities(network=Network.ONLINE)

    def required_plugins(self) -> List[str]:
        return [self.ecosystem.required_plugin]

    def close(self) -> None:
        self.client.close()

    def enrich(
        self,
        inventory: Inventory,
        token: Optional[CancellationToken] = None,
        max_workers: int = 1,
    ) -> EnrichmentResult:
        """
        Enrich the inventory with transitive dependencies.

        Never raises: failed manifests are logged and reported in the
        result, and cancellation stops the pass after the last fully merged
        manifest.

        Args:
            inventory: Inventory to mutate in place
            token: Optional cancellation token
            max_workers: Number of manifests resolved concurrently

        Returns:
            EnrichmentResult with per-manifest outcomes
        """
        result = EnrichmentResult(enricher=self.name)
        groups = group_packages(inventory, self.ecosystem.extractor_names)
        if not groups:
            logger.debug(f"{self.name}: no manifests to enrich")
            return result

        logger.info(f"Resolving transitive {self.ecosystem.key} dependencies for {len(groups)} manifest(s)")

        if max_workers > 1 and len(groups) > 1:
            self._enrich_concurrently(inventory, groups, result, token, max_workers)
        else:
            for path, group in groups.items():
                try:
                    resolved = self.resolver.resolve(path, group, token=token)
                except OperationCancelledError:
                    logger.warning(f"deps.dev {self.ecosystem.key} resolution cancelled at {path}")
                    result.cancelled = True
                    break
                except NoDependenciesResolvedError as e:
                    self._record_failure(result, path, e)
                    continue
                except Exception as e:
                    self._record_failure(result, path, e, exc_info=True)
                    continue
                result.manifests.append(self._merge(inventory, path, group, resolved))

        logger.info(
            f"{self.name}: added {result.added_count} and updated {result.updated_count} packages "
            f"across {len(result.manifests)} manifest(s)"
        )
        return result

    def _enrich_concurrently(
        self,
        inventory: Inventory,
        groups: Dict[str, Dict[str, PackageWithIndex]],
        result: EnrichmentResult,
        token: Optional[CancellationToken],
        max_workers: int,
    ) -> None:
        """Resolve manifests in a thread pool and merge each one as it completes."""
        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="depsdev")
        try:
            pending: Dict[Future, str] = {
                executor.submit(self.resolver.resolve, path, group, token): path for path, group in groups.items()
            }
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    path = pending.pop(future)
                    try:
                        resolved = future.result()
                    except OperationCancelledError:
                        result.cancelled = True
                        continue
                    except NoDependenciesResolvedError as e:
                        self._record_failure(result, path, e)
                        continue
                    except Exception as e:
                        self._record_failure(result, path, e, exc_info=True)
                        continue
                    if result.cancelled:
                        continue
                    result.manifests.append(self._merge(inventory, path, groups[path], resolved))
                if result.cancelled:
                    logger.warning(f"deps.dev {self.ecosystem.key} resolution cancelled")
                    for future in pending:
                        future.cancel()
                    break
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def _merge(
        self,
        inventory: Inventory,
        path: str,
        group: Dict[str, PackageWithIndex],
        resolved: List[Package],
    ) -> ManifestResult:
        merged = merge_resolved(inventory, path, group, resolved, self.ecosystem)
        logger.debug(f"{path}: resolved {len(resolved)}, updated {merged.updated}, added {merged.added}")
        return ManifestResult(path=path, resolved_count=len(resolved), updated=merged.updated, added=merged.added)

    def _record_failure(
        self, result: EnrichmentResult, path: str, error: Exception, exc_info: bool = False
    ) -> None:
        logger.warning(f"deps.dev {self.ecosystem.key} resolution failed for {path}: {error}", exc_info=exc_info)
        result.manifests.append(ManifestResult(path=path, error=str(error)))


def new_pypi_enricher(base_url: str = DEPSDEV_BASE_URL, **client_kwargs) -> DepsDevEnricher:
    """Create an enricher for requirements.txt manifests."""
    return DepsDevEnricher(PYPI, DepsDevClient(PYPI.system, base_url=base_url, **client_kwargs))


def new_maven_enricher(base_url: str = DEPSDEV_BASE_URL, **client_kwargs) -> DepsDevEnricher:
    """Create an enricher for pom.xml manifests."""
    return DepsDevEnricher(MAVEN, DepsDevClient(MAVEN.system, base_url=base_url, **client_kwargs))


def create_default_registry(
    base_url: str = DEPSDEV_BASE_URL,
    ecosystems: Optional[List[str]] = None,
    timeout: Optional[float] = None,
) -> EnricherRegistry:
    """
    Create a registry with the deps.dev enrichers.

    Args:
        base_url: deps.dev API base URL
        ecosystems: Ecosystem keys to enable (default: all)
        timeout: Per-request timeout in seconds

    Returns:
        Configured EnricherRegistry
    """
    client_kwargs = {"timeout": timeout} if timeout is not None else {}
    registry = EnricherRegistry()
    for key in ecosystems or list(ECOSYSTEMS):
        ecosystem = ECOSYSTEMS[key]
        client = DepsDevClient(ecosystem.system, base_url=base_url, **client_kwargs)
        registry.register(DepsDevEnricher(ecosystem, client))
    return registry


def enrich_inventory(
    inventory: Inventory,
    base_url: str = DEPSDEV_BASE_URL,
    token: Optional[CancellationToken] = None,
) -> List[EnrichmentResult]:
    """
    Enrich an inventory with transitive dependencies for all ecosystems.

    This is the main public API.
    """
    registry = create_default_registry(base_url=base_url)
    try:
        return registry.enrich(inventory, token=token)
    finally:
        registry.close()
