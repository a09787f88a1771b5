"""Helpers shared by the CLI commands."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import click

from fieldscope.config import Settings, get_settings
from fieldscope.detection import FieldDetector, HtmlDocument
from fieldscope.utils import JsonFileStore


def build_detector(store_path: Optional[str] = None, settings: Optional[Settings] = None) -> FieldDetector:
    """Create a detector bound to the JSON learning store and load it."""

    settings = settings or get_settings()
    path = Path(store_path) if store_path else settings.resolved_store_path()
    detector = FieldDetector.from_settings(settings, store=JsonFileStore(path))
    asyncio.run(detector.load())
    return detector


def read_document(page: str, url: Optional[str]) -> HtmlDocument:
    path = Path(page)
    try:
        html = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise click.ClickException(f"Cannot read {page}: {exc}") from exc
    return HtmlDocument.from_html(html, url=url or path.resolve().as_uri())


store_option = click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False),
    help="Learning store JSON file (defaults to FIELDSCOPE_STORE_PATH)",
)
