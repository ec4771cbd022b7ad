"""Command line entry point for depsdev-enricher.

Reads a JSON package inventory, resolves transitive dependencies of every
requirements.txt / pom.xml manifest it references through deps.dev, and
writes the enriched inventory.

# Configuration
Every option can also be given as an environment variable:
- INVENTORY_FILE: Inventory JSON to enrich
- OUTPUT_FILE: Where to write the enriched inventory (default: overwrite input)
- DEPSDEV_BASE_URL: Override the deps.dev API base URL (default: https://api.deps.dev)
- DEPSDEV_TIMEOUT: Per-request timeout in seconds
- PASS_TIMEOUT: Overall deadline for the enrichment pass in seconds
- MAX_WORKERS: Manifests resolved concurrently
- ECOSYSTEMS: Comma-separated ecosystems to enable (pypi,maven)
- LOG_LEVEL / STRUCTURED_LOGS: Logging output
- SENTRY_DSN / TELEMETRY: Optional error reporting
"""

import os
import sys
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

import click
import sentry_sdk

from .. import __version__
from .._transitive import DEPSDEV_BASE_URL, ECOSYSTEMS, CancellationToken, create_default_registry
from .._transitive.client import DEFAULT_TIMEOUT
from ..console import console, print_resolution_summary
from ..exceptions import ConfigurationError, FileProcessingError
from ..inventory import load_inventory, save_inventory
from ..logging_config import logger, reconfigure_logging

LOCALHOST_PATTERNS = ["127.0.0.1", "localhost", "0.0.0.0"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass
class Config:
    """Configuration settings for an enrichment run."""

    inventory_file: str
    output_file: Optional[str] = None
    base_url: str = DEPSDEV_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    pass_timeout: Optional[float] = None
    max_workers: int = 1
    ecosystems: List[str] = field(default_factory=lambda: list(ECOSYSTEMS))
    log_level: str = "INFO"
    structured_logs: bool = False

    def validate(self) -> None:
        """
        Validate configuration settings.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.inventory_file:
            raise ConfigurationError("Inventory file is not defined")
        if self.timeout <= 0:
            raise ConfigurationError("Request timeout must be positive")
        if self.pass_timeout is not None and self.pass_timeout <= 0:
            raise ConfigurationError("Pass timeout must be positive")
        if self.max_workers < 1:
            raise ConfigurationError("MAX_WORKERS must be at least 1")
        if not self.ecosystems:
            raise ConfigurationError("At least one ecosystem must be enabled")
        unknown = [e for e in self.ecosystems if e not in ECOSYSTEMS]
        if unknown:
            raise ConfigurationError(
                f"Unknown ecosystem(s): {', '.join(unknown)}. Supported: {', '.join(sorted(ECOSYSTEMS))}"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.log_level}")

        self._validate_base_url()

    def _validate_base_url(self) -> None:
        """
        Validate and normalize the deps.dev base URL.

        Raises:
            ConfigurationError: If URL format is invalid
        """
        try:
            parsed = urlparse(self.base_url)
        except ValueError as e:
            raise ConfigurationError(f"Invalid deps.dev base URL format: {e}")

        if not parsed.scheme or parsed.scheme not in ("http", "https"):
            raise ConfigurationError("deps.dev base URL must start with http:// or https://")

        if not parsed.netloc:
            raise ConfigurationError("deps.dev base URL must include a valid hostname")

        # Security warning for HTTP on non-localhost
        if parsed.scheme == "http" and not any(localhost in parsed.netloc for localhost in LOCALHOST_PATTERNS):
            logger.warning("Using HTTP (not HTTPS) for deps.dev communication - consider using HTTPS")

        if self.base_url.endswith("/"):
            self.base_url = self.base_url.rstrip("/")


def evaluate_boolean(value: str) -> bool:
    """
    Evaluate string values as boolean.

    Args:
        value: String value to evaluate

    Returns:
        Boolean result
    """
    return value.lower() in ["true", "yes", "yeah", "1"]


def parse_ecosystems(value: Optional[str]) -> List[str]:
    """Parse a comma-separated ecosystem list; empty means all."""
    if not value:
        return list(ECOSYSTEMS)
    return [part.strip().lower() for part in value.split(",") if part.strip()]


def build_config(
    inventory_file: Optional[str],
    output_file: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    pass_timeout: Optional[float] = None,
    max_workers: Optional[int] = None,
    ecosystems: Optional[str] = None,
    log_level: Optional[str] = None,
    structured_logs: bool = False,
) -> Config:
    """
    Build and validate a Config from CLI values.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = Config(
        inventory_file=inventory_file or "",
        output_file=output_file or None,
        base_url=base_url or DEPSDEV_BASE_URL,
        timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
        pass_timeout=pass_timeout,
        max_workers=max_workers if max_workers is not None else 1,
        ecosystems=parse_ecosystems(ecosystems),
        log_level=(log_level or "INFO").upper(),
        structured_logs=structured_logs,
    )
    config.validate()
    return config


def initialize_sentry() -> None:
    """Initialize Sentry for error tracking when a DSN is configured."""
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn or not evaluate_boolean(os.getenv("TELEMETRY", "true")):
        return

    def before_send(event, hint):
        """Don't send configuration or input file errors - these are user errors."""
        if "exc_info" in hint:
            exc_type, exc_value, tb = hint["exc_info"]
            if isinstance(exc_value, (ConfigurationError, FileProcessingError)):
                return None
        return event

    sentry_sdk.init(
        dsn=sentry_dsn,
        release=f"depsdev-enricher@{__version__}",
        traces_sample_rate=0.0,
        before_send=before_send,
    )


def run_enrichment(config: Config) -> int:
    """
    Enrich the configured inventory file.

    Returns:
        Number of packages added to the inventory

    Raises:
        FileProcessingError: If the inventory cannot be read or written
    """
    inventory = load_inventory(config.inventory_file)
    original_count = len(inventory)
    logger.info(f"Loaded {original_count} packages from {config.inventory_file}")

    token = CancellationToken(timeout=config.pass_timeout)
    registry = create_default_registry(base_url=config.base_url, ecosystems=config.ecosystems, timeout=config.timeout)
    try:
        results = registry.enrich(inventory, token=token, max_workers=config.max_workers)
    finally:
        registry.close()

    print_resolution_summary(results)

    output_file = config.output_file or config.inventory_file
    save_inventory(inventory, output_file)
    logger.info(f"Wrote {len(inventory)} packages to {output_file}")
    return len(inventory) - original_count


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", "-V", message="depsdev-enricher %(version)s")
@click.argument("inventory_file", required=False, envvar="INVENTORY_FILE")
@click.option("-o", "--output-file", envvar="OUTPUT_FILE", help="Write the enriched inventory here.")
@click.option("--base-url", envvar="DEPSDEV_BASE_URL", help="deps.dev API base URL.")
@click.option("--timeout", envvar="DEPSDEV_TIMEOUT", type=float, help="Per-request timeout in seconds.")
@click.option("--pass-timeout", envvar="PASS_TIMEOUT", type=float, help="Deadline for the whole pass in seconds.")
@click.option("--max-workers", envvar="MAX_WORKERS", type=int, help="Manifests resolved concurrently.")
@click.option("--ecosystems", envvar="ECOSYSTEMS", help="Comma-separated ecosystems (pypi,maven).")
@click.option("--log-level", envvar="LOG_LEVEL", help="DEBUG, INFO, WARNING or ERROR.")
@click.option(
    "--structured-logs/--no-structured-logs",
    envvar="STRUCTURED_LOGS",
    default=False,
    help="Emit JSON log lines.",
)
def cli(
    inventory_file: Optional[str],
    output_file: Optional[str],
    base_url: Optional[str],
    timeout: Optional[float],
    pass_timeout: Optional[float],
    max_workers: Optional[int],
    ecosystems: Optional[str],
    log_level: Optional[str],
    structured_logs: bool,
) -> None:
    """Resolve transitive dependencies of an inventory through deps.dev."""
    if not inventory_file:
        click.echo(click.get_current_context().get_help())
        return

    try:
        config = build_config(
            inventory_file=inventory_file,
            output_file=output_file,
            base_url=base_url,
            timeout=timeout,
            pass_timeout=pass_timeout,
            max_workers=max_workers,
            ecosystems=ecosystems,
            log_level=log_level,
            structured_logs=structured_logs,
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    reconfigure_logging(level=config.log_level, structured=config.structured_logs)
    initialize_sentry()

    try:
        run_enrichment(config)
    except FileProcessingError as e:
        logger.error(str(e))
        console.print(f"[error]✗ {e}[/error]")
        sys.exit(1)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
