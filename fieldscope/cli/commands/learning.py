"""Commands that manage user corrections and pattern induction."""
from __future__ import annotations

import asyncio
import datetime as _dt
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from fieldscope.detection import FieldType
from fieldscope.errors import PersistenceError, UnknownFieldTypeError

from ._shared import build_detector, read_document, store_option

console = Console()


def _parse_type(value: str) -> FieldType:
    try:
        return FieldType.parse(value)
    except UnknownFieldTypeError as exc:
        choices = ", ".join(member.value for member in FieldType)
        raise click.BadParameter(f"{exc}. Choose one of: {choices}") from exc


@click.command(name="correct")
@click.argument("page", type=click.Path(exists=True, dir_okay=False))
@click.argument("selector")
@click.argument("corrected_type")
@click.option("--detected", "detected_type", help="Type the detector chose (defaults to its current answer)")
@click.option("--url", help="URL the page was saved from")
@store_option
def correct_command(
    page: str,
    selector: str,
    corrected_type: str,
    detected_type: Optional[str],
    url: Optional[str],
    store_path: Optional[str],
):
    """
    Record that the control matching SELECTOR in PAGE is CORRECTED_TYPE.

    Example:

      fieldscope correct signup.html "#org" company
    """
    corrected = _parse_type(corrected_type)
    detector = build_detector(store_path)
    document = read_document(page, url)
    element = document.select_one(selector)
    if element is None:
        raise click.ClickException(f"No element matches {selector!r}")

    if detected_type:
        detected = _parse_type(detected_type)
    else:
        result = detector.detect_field_type(element, document)
        detected = result.field_type if result else FieldType.UNKNOWN

    try:
        record = asyncio.run(detector.record_user_correction(element, document, detected, corrected))
    except PersistenceError as exc:
        raise click.ClickException(str(exc)) from exc

    console.print(
        f"[green]Recorded[/green] {detected.value} -> [bold]{corrected.value}[/bold] "
        f"for [cyan]{record.signature}[/cyan]"
    )


@click.command(name="corrections")
@click.option("--limit", "-n", type=int, default=50, help="Number of corrections to show")
@store_option
def corrections_command(limit: int, store_path: Optional[str]):
    """List stored corrections, newest first."""
    detector = build_detector(store_path)
    records = sorted(detector.corrections.corrections().values(), key=lambda record: record.timestamp, reverse=True)

    table = Table(
        title=f"Corrections ({len(records)} stored, {len(detector.corrections.history)} in history)",
        show_header=True,
        header_style="bold cyan",
        border_style="cyan",
    )
    table.add_column("Signature", style="cyan")
    table.add_column("Detected", style="red")
    table.add_column("Corrected", style="green")
    table.add_column("Rejected", style="dim")
    table.add_column("When")

    for record in records[:limit]:
        when = _dt.datetime.fromtimestamp(record.timestamp / 1000, tz=_dt.timezone.utc)
        table.add_row(
            record.signature,
            record.detected_type.value,
            record.corrected_type.value,
            ", ".join(field_type.value for field_type in record.rejected_types),
            when.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@click.command(name="retrain")
@store_option
def retrain_command(store_path: Optional[str]):
    """Induce fuzzy patterns from the stored correction history."""
    detector = build_detector(store_path)
    try:
        asyncio.run(detector.retrain_model())
    except PersistenceError as exc:
        raise click.ClickException(str(exc)) from exc

    induced = detector.patterns.all_induced_words()
    if not induced:
        console.print("[yellow]No recurring corrections yet; nothing induced.[/yellow]")
        return

    table = Table(title="Induced patterns", border_style="magenta")
    table.add_column("Field type", style="cyan")
    table.add_column("Word", style="yellow")
    for field_type, words in induced.items():
        for word in words:
            table.add_row(field_type.value, word)
    console.print(table)
