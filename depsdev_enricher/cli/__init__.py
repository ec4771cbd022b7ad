"""CLI module for depsdev-enricher.

It supports both CLI arguments and environment variables for configuration.
"""

from .main import (
    Config,
    build_config,
    cli,
    evaluate_boolean,
    main,
    parse_ecosystems,
    run_enrichment,
)

__all__ = [
    "cli",
    "main",
    "Config",
    "build_config",
    "run_enrichment",
    "evaluate_boolean",
    "parse_ecosystems",
]
