"""Protocol definition for inventory enrichers."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from ..inventory import Inventory
from .cancellation import CancellationToken
from .models import EnrichmentResult


class Network(str, Enum):
    """Network access an enricher needs."""

    OFFLINE = "offline"
    ONLINE = "online"


@dataclass(frozen=True)
class Capabilities:
    """Capabilities an enricher requires from its host."""

    network: Network = Network.OFFLINE


class InventoryEnricher(Protocol):
    """Protocol for inventory enrichment plugins.

    Enrichers run after extraction, receive exclusive access to the
    inventory for the duration of enrich(), and must leave it valid on
    every exit path. They are registered with EnricherRegistry.

    Example:
        class MyEnricher:
            name = "transitivedependency/example"
            version = 0

            def requirements(self) -> Capabilities:
                return Capabilities(network=Network.ONLINE)

            def required_plugins(self) -> list[str]:
                return ["python/requirements"]

            def enrich(self, inventory, token=None, max_workers=1) -> EnrichmentResult:
                ...
    """

    @property
    def name(self) -> str:
        """Unique name of this enricher, also used as its provenance tag."""
        ...

    @property
    def version(self) -> int:
        """Version of this enricher."""
        ...

    def requirements(self) -> Capabilities:
        """Capabilities required from the host (e.g., network access)."""
        ...

    def required_plugins(self) -> List[str]:
        """Names of plugins that must run before this enricher."""
        ...

    def enrich(
        self,
        inventory: Inventory,
        token: Optional[CancellationToken] = None,
        max_workers: int = 1,
    ) -> EnrichmentResult:
        """
        Enrich the inventory in place.

        Implementations should not raise: failures are logged and reported
        in the returned EnrichmentResult.
        """
        ...
