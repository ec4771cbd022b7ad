"""Rich console utilities for depsdev-enricher."""

import os
from typing import List

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from ._transitive.models import EnrichmentResult

IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
    }
)

# Shared console instance
console = Console(
    theme=custom_theme,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
)


def build_resolution_table(results: List[EnrichmentResult]) -> Table:
    """Build a per-manifest summary table for enrichment results."""
    table = Table(title="Transitive Dependency Resolution", show_header=True, header_style="bold")
    table.add_column("Enricher", style="cyan")
    table.add_column("Manifest")
    table.add_column("Resolved", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Added", justify="right")
    table.add_column("Status")

    for result in results:
        for manifest in result.manifests:
            status = "[success]ok[/success]" if manifest.succeeded else f"[warning]{manifest.error}[/warning]"
            table.add_row(
                result.enricher,
                manifest.path,
                str(manifest.resolved_count),
                str(manifest.updated),
                str(manifest.added),
                status,
            )
        if result.cancelled:
            table.add_row(result.enricher, "-", "-", "-", "-", "[error]cancelled[/error]")

    return table


def print_resolution_summary(results: List[EnrichmentResult]) -> None:
    """Print the enrichment summary, or a notice if nothing was enriched."""
    if not any(r.manifests or r.cancelled for r in results):
        console.print("[info]No manifests eligible for transitive resolution[/info]")
        return

    console.print(build_resolution_table(results))
    added = sum(r.added_count for r in results)
    updated = sum(r.updated_count for r in results)
    failed = sum(r.failed_count for r in results)
    console.print(f"[success]✓ Added {added}, updated {updated} packages[/success]")
    if failed:
        console.print(f"[warning]⚠ {failed} manifest(s) could not be resolved[/warning]")
