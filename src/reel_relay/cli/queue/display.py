"""Display functions for queue commands - pure functions for Rich output."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from reel_relay.queue.models import QueueItem


def _status(item: QueueItem) -> tuple[str, str]:
    if item.posted:
        return "posted", "green"
    if item.downloaded:
        return "downloaded", "cyan"
    return "pending", "yellow"


def _shorten(text: str, width: int) -> str:
    return text[:width] + ("..." if len(text) > width else "")


def show_queue_table(console: Console, items: list[QueueItem], counts: dict[str, int]) -> None:
    """Display recent queue items and totals."""
    if not items:
        console.print("[yellow]Queue is empty.[/yellow]")
        console.print("\n[dim]Add videos first:[/dim]")
        console.print("  [cyan]reel-relay add <url> --db <path>[/cyan]")
        return

    table = Table(title="Media Queue")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    table.add_column("Source", style="cyan")
    table.add_column("Preset", style="magenta")
    table.add_column("Caption", style="white")
    table.add_column("Logo", style="dim")
    table.add_column("URL", style="white")
    table.add_column("Created", style="dim")

    for item in items:
        status, style = _status(item)
        caption = item.caption_strategy.value
        if item.caption_custom:
            caption += f": {escape(_shorten(item.caption_custom, 20))}"
        table.add_row(
            str(item.id),
            f"[{style}]{status}[/{style}]",
            item.source.value,
            item.format_preset.value,
            caption,
            "yes" if item.logo_requested else "no",
            _shorten(item.url, 45),
            item.created_at.strftime("%Y-%m-%d %H:%M") if item.created_at else "",
        )

    console.print(table)

    console.print(f"\n[bold]Total:[/] {counts['total']} items")
    console.print(f"  Pending: [yellow]{counts['pending']}[/yellow]")
    console.print(f"  Downloaded: [cyan]{counts['downloaded']}[/cyan]")
    console.print(f"  Posted: [green]{counts['posted']}[/green]")


def show_next_item(console: Console, item: Optional[QueueItem]) -> None:
    """Display the item the next run will pick."""
    if item is None:
        console.print("\n[dim]Nothing left to post.[/dim]")
        return
    console.print(
        f"\n[bold]Next up:[/bold] #{item.id} {item.source.value} "
        f"[magenta]{item.format_preset.value}[/magenta] {item.url}"
    )


def show_added(console: Console, ids: list[int]) -> None:
    """Display the result of an insert."""
    console.print(Panel(
        f"[bold green]Added {len(ids)} item(s): {', '.join(f'#{i}' for i in ids)}[/bold green]",
        border_style="green",
    ))
