"""Rich console singleton for CLI output."""

import sys

from rich.console import Console
from rich.markup import escape

# Windows cp1252 consoles can't draw Unicode box characters
_safe_box = sys.platform == "win32"

console = Console(safe_box=_safe_box)


def print_error(message: str, details: dict | None = None) -> None:
    """Print an error message.

    Args:
        message: Error message
        details: Optional details dict
    """
    console.print(f"[red]Error: {escape(message)}[/red]")
    if details:
        for key, value in details.items():
            console.print(f"  [dim]{key}:[/dim] [yellow]{value}[/yellow]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]Warning: {escape(message)}[/yellow]")


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def print_info(message: str) -> None:
    console.print(f"[cyan]{message}[/cyan]")
