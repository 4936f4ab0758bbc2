"""Dataset-health reporting rendered with rich."""
from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..journeys.metadata import Journey

TIER_STYLES = {"high": "green", "medium": "yellow", "low": "red"}


def _percent(count: int, total: int) -> str:
    return f"{count / total * 100:.1f}%" if total else "-"


def render_dataset_report(metadata: Mapping[str, Any], console: Optional[Console] = None) -> Console:
    """Print example totals, quality tiers and context-type counts."""

    console = console or Console()
    total = int(metadata.get("totalExamples", 0))
    console.print()
    console.print(f"[bold cyan]Training examples:[/bold cyan] {total}")

    tiers = Table(title="Quality Distribution", show_header=True, header_style="bold cyan", border_style="cyan")
    tiers.add_column("Tier", style="cyan", width=8)
    tiers.add_column("Examples", justify="right", width=9)
    tiers.add_column("Share", justify="right", width=7)
    for tier, count in metadata.get("qualityDistribution", {}).items():
        style = TIER_STYLES.get(tier, "white")
        tiers.add_row(f"[{style}]{tier}[/{style}]", str(count), _percent(count, total))
    console.print(tiers)

    contexts = Table(title="Context Coverage", show_header=True, header_style="bold cyan", border_style="cyan")
    contexts.add_column("Context", style="cyan", width=10)
    contexts.add_column("Examples", justify="right", width=9)
    contexts.add_column("Share", justify="right", width=7)
    for name, count in metadata.get("contextTypes", {}).items():
        contexts.add_row(name, str(count), _percent(count, total))
    console.print(contexts)
    console.print()
    return console


def render_journey_table(journeys: Sequence[Journey], console: Optional[Console] = None) -> Console:
    """List each journey's type, goal, origin and length."""

    console = console or Console()
    if not journeys:
        console.print("[dim]No journeys detected.[/dim]")
        return console

    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 1))
    table.add_column("#", style="cyan", width=3)
    table.add_column("Type", width=28)
    table.add_column("Goal", width=28)
    table.add_column("Origin", width=8)
    table.add_column("Steps", justify="right", width=5)
    for number, journey in enumerate(journeys, start=1):
        goal = (journey.goal[:25] + "...") if len(journey.goal) > 28 else journey.goal
        table.add_row(str(number), journey.journey_type, goal, journey.origin.value, str(len(journey)))
    console.print(table)
    return console


__all__ = ["render_dataset_report", "render_journey_table"]
