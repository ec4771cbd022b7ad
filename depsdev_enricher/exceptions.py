"""Custom exceptions for depsdev-enricher."""

from typing import Optional


class DepsDevEnricherError(Exception):
    """Base exception for all depsdev-enricher operations."""


class ConfigurationError(DepsDevEnricherError):
    """Raised when configuration validation fails."""


class FileProcessingError(DepsDevEnricherError):
    """Raised when inventory file operations fail."""


class DepsDevError(DepsDevEnricherError):
    """Base exception for failures talking to the deps.dev API."""


class NetworkError(DepsDevError):
    """Raised on transport failures: connection errors, timeouts, cancellation."""


class OperationCancelledError(NetworkError):
    """Raised when a cancellation token fires before or during a request."""


class RemoteError(DepsDevError):
    """Raised when deps.dev answers with a non-200 status."""

    def __init__(self, status_code: int, body: str = "", message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"deps.dev API returned {status_code}: {body}")


class DecodeError(DepsDevError):
    """Raised when a deps.dev response body is not a valid dependency graph."""


class NoDependenciesResolvedError(DepsDevEnricherError):
    """Raised when a manifest group had lookups but produced no packages."""
