"""Queue CLI commands - thin wrappers over QueueStore."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from reel_relay.constants import Source
from reel_relay.errors import StoreError
from reel_relay.queue.store import QueueStore

from ..core.console import console, print_error, print_success, print_warning
from .display import show_added, show_next_item, show_queue_table

_DB_HELP = "Queue database (defaults to $DB_PATH)"


def _open_store(db: Path) -> QueueStore:
    try:
        return QueueStore(db)
    except StoreError as e:
        print_error(str(e))
        raise typer.Exit(1)


def init_db(
    db: Path = typer.Argument(..., envvar="DB_PATH", help=_DB_HELP),
) -> None:
    """Create the queue database and schema (safe to re-run)."""
    store = _open_store(db)
    store.close()
    print_success(f"Queue database ready: {db}")


def add(
    urls: List[str] = typer.Argument(..., help="TikTok or Twitter/X URLs"),
    db: Path = typer.Option(..., "--db", envvar="DB_PATH", help=_DB_HELP),
    source: Optional[Source] = typer.Option(None, "--source", "-s", help="Source (detected from URL if omitted)"),
    preset: Optional[str] = typer.Option(None, "--preset", "-p", help="raw, logo_only or caption_top (default by source)"),
    caption_strategy: str = typer.Option("default", "--caption-strategy", help="default, custom or from_source"),
    caption: str = typer.Option("", "--caption", "-c", help="Custom caption (with --caption-strategy custom)"),
    no_logo: bool = typer.Option(False, "--no-logo", help="Render without the brand logo"),
) -> None:
    """Add videos to the queue. All URLs are added or none are."""
    items = [
        {
            "url": url,
            "source": source.value if source else None,
            "format_preset": preset,
            "caption_strategy": caption_strategy,
            "caption_custom": caption,
            "logo": not no_logo,
        }
        for url in urls
    ]

    with _open_store(db) as store:
        try:
            ids = store.insert_many(items)
        except StoreError as e:
            print_error(str(e))
            raise typer.Exit(1)

    show_added(console, ids)


def queue(
    db: Path = typer.Option(..., "--db", envvar="DB_PATH", help=_DB_HELP),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Rows to show"),
) -> None:
    """Show recent queue items, totals and the next item to post."""
    with _open_store(db) as store:
        try:
            items = store.list_recent(limit)
            counts = store.counts()
            next_item = store.select_next()
        except StoreError as e:
            print_error(str(e))
            raise typer.Exit(1)

    show_queue_table(console, items, counts)
    show_next_item(console, next_item)


def remove(
    item_id: int = typer.Argument(..., help="Queue item ID"),
    db: Path = typer.Option(..., "--db", envvar="DB_PATH", help=_DB_HELP),
) -> None:
    """Delete a queue item."""
    with _open_store(db) as store:
        try:
            deleted = store.delete_one(item_id)
        except StoreError as e:
            print_error(str(e))
            raise typer.Exit(1)

    if deleted == 0:
        print_warning(f"Item {item_id} not found")
        raise typer.Exit(1)
    print_success(f"Removed item {item_id}")
