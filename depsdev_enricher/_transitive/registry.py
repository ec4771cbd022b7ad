"""Registry for inventory enrichers."""

from typing import List, Optional

from ..inventory import Inventory
from ..logging_config import logger
from .cancellation import CancellationToken
from .models import EnrichmentResult
from .protocol import InventoryEnricher


class EnricherRegistry:
    """Registry for inventory enrichers.

    Enrichers run in registration order over the same inventory.

    Example:
        registry = EnricherRegistry()
        registry.register(new_pypi_enricher())
        results = registry.enrich(inventory)
    """

    def __init__(self) -> None:
        self._enrichers: List[InventoryEnricher] = []

    def register(self, enricher: InventoryEnricher) -> None:
        """
        Register an enricher.

        Args:
            enricher: Instance implementing the InventoryEnricher protocol.
        """
        self._enrichers.append(enricher)
        logger.debug(
            f"Registered enricher: {enricher.name} (requires {', '.join(enricher.required_plugins()) or 'nothing'})"
        )

    def get(self, name: str) -> Optional[InventoryEnricher]:
        """Get a registered enricher by name."""
        for enricher in self._enrichers:
            if enricher.name == name:
                return enricher
        return None

    def enrich(
        self,
        inventory: Inventory,
        token: Optional[CancellationToken] = None,
        max_workers: int = 1,
    ) -> List[EnrichmentResult]:
        """
        Run every registered enricher over the inventory.

        A failing enricher is logged and skipped; the rest still run.

        Returns:
            One EnrichmentResult per enricher that ran
        """
        results: List[EnrichmentResult] = []
        for enricher in self._enrichers:
            if token is not None and token.cancelled:
                logger.warning("Enrichment cancelled, skipping remaining enrichers")
                break
            try:
                results.append(enricher.enrich(inventory, token=token, max_workers=max_workers))
            except Exception as e:
                logger.warning(f"Enricher {enricher.name} failed: {e}", exc_info=True)
                results.append(EnrichmentResult(enricher=enricher.name))
        return results

    def close(self) -> None:
        """Release resources held by registered enrichers."""
        for enricher in self._enrichers:
            close = getattr(enricher, "close", None)
            if callable(close):
                close()

    @property
    def registered_enrichers(self) -> List[str]:
        """Get names of all registered enrichers."""
        return [e.name for e in self._enrichers]
