"""deps.dev REST client for pre-computed dependency graphs."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional
from urllib.parse import quote

import requests

from ..exceptions import DecodeError, NetworkError, OperationCancelledError, RemoteError
from ..http_client import create_session
from ..logging_config import logger
from .cache import ResolutionCache, make_cache_key
from .cancellation import CancellationToken
from .models import DependencyGraph

DEPSDEV_BASE_URL = "https://api.deps.dev"
DEFAULT_TIMEOUT = 30  # seconds - a full graph can take a while to serialize
CANCEL_POLL_INTERVAL = 0.05  # seconds between cancellation checks while a request is in flight

SYSTEM_PYPI = "pypi"
SYSTEM_MAVEN = "maven"


def _discard_response(future: Future) -> None:
    """Close the response of a request whose caller has already given up."""
    if not future.cancelled() and future.exception() is None:
        future.result().close()


class DepsDevClient:
    """
    Fetches pre-computed dependency graphs from the deps.dev REST API.

    One client serves one system (pypi, maven, ...). Successful responses
    are kept in a ResolutionCache for the lifetime of the client; failures
    are never cached. A client may be shared between threads.

    When a cancellation token is passed, the request runs on a helper
    thread so that cancel() returns control to the caller immediately; the
    abandoned request finishes (bounded by its timeout) in the background
    and its response is discarded.

    Example:
        with DepsDevClient("pypi") as client:
            graph = client.get_dependencies("requests", "2.31.0")
    """

    def __init__(
        self,
        system: str,
        base_url: str = DEPSDEV_BASE_URL,
        session: Optional[requests.Session] = None,
        cache: Optional[ResolutionCache] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.system = system
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else ResolutionCache()
        self._owns_session = session is None
        self._session = session
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def _get_session(self) -> requests.Session:
        """Get or create the requests session shared by all calling threads."""
        with self._lock:
            if self._session is None:
                self._session = create_session()
            return self._session

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(thread_name_prefix=f"depsdev-{self.system}-http")
            return self._executor

    def close(self) -> None:
        """Close the requests session if this client created it."""
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
            if self._session is not None and self._owns_session:
                self._session.close()
                self._session = None

    def __enter__(self) -> "DepsDevClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def build_url(self, name: str, version: str) -> str:
        """Build the :dependencies endpoint URL for a package version."""
        return (
            f"{self.base_url}/v3/systems/{self.system}/packages/{quote(name, safe='')}"
            f"/versions/{quote(version, safe='')}:dependencies"
        )

    def _send(self, url: str, timeout: float, token: Optional[CancellationToken]) -> requests.Response:
        """
        Issue the GET request.

        With a token, the request runs on the client's executor and the
        caller polls the token while it is in flight.

        Raises:
            OperationCancelledError: If the token fires while waiting
            requests.exceptions.RequestException: On transport failure
        """
        session = self._get_session()
        headers = {"Accept": "application/json"}
        if token is None:
            return session.get(url, headers=headers, timeout=timeout)

        future = self._get_executor().submit(session.get, url, headers=headers, timeout=timeout)
        while True:
            try:
                return future.result(timeout=CANCEL_POLL_INTERVAL)
            except FutureTimeoutError:
                if token.cancelled:
                    future.cancel()
                    future.add_done_callback(_discard_response)
                    raise OperationCancelledError(f"deps.dev request cancelled: {url}")

    def get_dependencies(
        self,
        name: str,
        version: str,
        token: Optional[CancellationToken] = None,
    ) -> DependencyGraph:
        """
        Fetch the dependency graph for a package version.

        This is a single HTTP GET that returns the full transitive tree.

        Args:
            name: Package name (Maven names are "groupId:artifactId")
            version: Exact package version
            token: Optional cancellation token for the surrounding pass

        Returns:
            The parsed DependencyGraph

        Raises:
            ValueError: If name or version is empty
            NetworkError: On transport failure, timeout or cancellation
            RemoteError: If deps.dev answers with a non-200 status
            DecodeError: If the response body is not a valid graph
        """
        if not name or not version:
            raise ValueError("name and version are required to query deps.dev")

        cache_key = make_cache_key(self.system, name, version)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit (deps.dev): {name}@{version}")
            return cached

        timeout = self.timeout
        if token is not None:
            token.raise_if_cancelled()
            remaining = token.remaining()
            if remaining is not None:
                if remaining <= 0:
                    raise OperationCancelledError(f"deadline passed before requesting {name}@{version}")
                timeout = min(timeout, remaining)

        url = self.build_url(name, version)
        logger.debug(f"Fetching deps.dev dependency graph for {name}@{version}: {url}")

        try:
            response = self._send(url, timeout, token)
        except requests.exceptions.Timeout as e:
            if token is not None and token.cancelled:
                raise OperationCancelledError(f"deps.dev request cancelled for {name}@{version}") from e
            raise NetworkError(f"deps.dev API request timed out for {name}@{version}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"deps.dev API request failed for {name}@{version}: {e}") from e

        if token is not None and token.cancelled:
            raise OperationCancelledError(f"deps.dev request cancelled for {name}@{version}")

        if response.status_code != 200:
            raise RemoteError(
                response.status_code,
                response.text,
                f"deps.dev API returned {response.status_code} for {name}@{version}: {response.text}",
            )

        try:
            graph = DependencyGraph.from_dict(response.json())
        except ValueError as e:
            raise DecodeError(f"failed to decode deps.dev response for {name}@{version}: {e}") from e

        self.cache.put(cache_key, graph)
        return graph


def new_pypi_client(base_url: str = DEPSDEV_BASE_URL, **kwargs) -> DepsDevClient:
    """Create a client for PyPI dependency graphs."""
    return DepsDevClient(SYSTEM_PYPI, base_url=base_url, **kwargs)


def new_maven_client(base_url: str = DEPSDEV_BASE_URL, **kwargs) -> DepsDevClient:
    """Create a client for Maven dependency graphs."""
    return DepsDevClient(SYSTEM_MAVEN, base_url=base_url, **kwargs)
