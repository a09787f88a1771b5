"""Classify the form controls of a saved HTML page."""
from __future__ import annotations

import json
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fieldscope.detection import ConfidenceBand

from ._shared import build_detector, read_document, store_option

console = Console()

_BAND_STYLES = {
    ConfidenceBand.HIGH: "green",
    ConfidenceBand.MEDIUM: "yellow",
    ConfidenceBand.LOW: "red",
    ConfidenceBand.NONE: "dim",
}


@click.command(name="classify")
@click.argument("page", type=click.Path(exists=True, dir_okay=False))
@click.option("--url", help="URL the page was saved from (used as page context)")
@click.option("--details", is_flag=True, help="Show per-strategy scores for each control")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON")
@store_option
def classify_command(page: str, url: Optional[str], details: bool, as_json: bool, store_path: Optional[str]):
    """
    Detect the semantic field type of every control in PAGE.

    Examples:

      fieldscope classify checkout.html

      fieldscope classify signup.html --url https://example.com/join --details
    """
    detector = build_detector(store_path)
    document = read_document(page, url)
    scanned = detector.scan_page(document)

    if as_json:
        payload = []
        for entry in scanned:
            item = {"selector": entry.selector, "result": entry.result.to_dict() if entry.result else None}
            if details:
                item["details"] = detector.details(entry.signals).to_dict()
            payload.append(item)
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(Panel(f"[bold cyan]Field detection: {page}[/bold cyan]", border_style="cyan"))

    table = Table(show_header=True, header_style="bold cyan", border_style="cyan")
    table.add_column("Selector", style="white")
    table.add_column("Field type", style="yellow")
    table.add_column("Score", justify="right")
    table.add_column("Confidence")
    table.add_column("Learned", justify="center")

    for entry in scanned:
        result = entry.result
        if result is None:
            table.add_row(entry.selector, "[dim]-[/dim]", "", "[dim]none[/dim]", "")
            continue
        style = _BAND_STYLES[result.confidence]
        table.add_row(
            entry.selector,
            result.field_type.value,
            f"{result.score:.0f}",
            f"[{style}]{result.confidence.value}[/{style}]",
            "✓" if result.is_learned else "",
        )
    console.print(table)

    if details:
        for entry in scanned:
            _print_breakdown(detector, entry)


def _print_breakdown(detector, entry) -> None:
    breakdown = detector.details(entry.signals).breakdown
    table = Table(title=entry.selector, border_style="blue")
    table.add_column("Field type", style="cyan")
    for column in ("Exact", "Fuzzy", "Shape", "Context", "Adjust", "Total"):
        table.add_column(column, justify="right")
    for field_type, parts in breakdown.items():
        if parts.total <= 0 and parts.adjustment == 0:
            continue
        table.add_row(
            field_type.value,
            f"{parts.exact:.0f}",
            f"{parts.fuzzy:.0f}",
            f"{parts.shape:.0f}",
            f"{parts.contextual:.0f}",
            f"{parts.adjustment:+.0f}",
            f"{parts.total:.0f}",
        )
    console.print(table)
