"""Display functions for the run command."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from reel_relay.constants import RunOutcome
from reel_relay.pipeline.results import RunResult


def show_run_result(console: Console, account: str, result: RunResult) -> None:
    """Display the outcome of one pipeline run."""
    if result.outcome == RunOutcome.EMPTY:
        console.print(f"[yellow]{escape(f'[{account}]')} No unprocessed media found.[/yellow]")
        return

    if result.outcome == RunOutcome.SUCCESS:
        console.print(Panel(
            f"[bold green]Item #{result.item_id} published[/bold green]\n"
            f"Media ID: {result.media_id}",
            title=escape(f"[{account}]"),
            border_style="green",
        ))
        return

    item = f"Item #{result.item_id}" if result.item_id is not None else "Run"
    body = (
        f"[bold red]{item} failed during {result.stage.value}[/bold red]\n"
        f"{escape(result.reason or '')}"
    )
    if result.hint:
        body += f"\n[dim]{escape(result.hint)}[/dim]"
    console.print(Panel(
        body,
        title=escape(f"[{account}]"),
        border_style="red",
    ))
