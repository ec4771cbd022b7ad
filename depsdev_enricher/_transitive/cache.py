"""Resolution cache for deps.dev dependency graphs."""

import threading
from typing import ContextManager, Dict, Optional

from .models import DependencyGraph


def make_cache_key(system: str, name: str, version: str) -> str:
    """Build the cache key for a package version."""
    return f"{system}/{name}@{version}"


class ResolutionCache:
    """
    Thread-safe mapping from package version to fetched dependency graph.

    Entries are never evicted. Every read and write happens under the lock,
    which may be injected (e.g., a mock lock in tests or a lock shared with
    other caches).

    Example:
        cache = ResolutionCache()
        key = make_cache_key("pypi", "requests", "2.31.0")
        if cache.get(key) is None:
            cache.put(key, graph)
    """

    def __init__(self, lock: Optional[ContextManager] = None) -> None:
        self._lock = lock if lock is not None else threading.Lock()
        self._entries: Dict[str, DependencyGraph] = {}

    def get(self, key: str) -> Optional[DependencyGraph]:
        """Return the cached graph for key, or None."""
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, graph: DependencyGraph) -> None:
        """Store a graph under key."""
        with self._lock:
            self._entries[key] = graph

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
