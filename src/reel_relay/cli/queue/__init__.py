"""Queue feature - media queue management commands."""

from .commands import add, init_db, queue, remove
from .display import show_added, show_next_item, show_queue_table

__all__ = [
    "add",
    "init_db",
    "queue",
    "remove",
    "show_added",
    "show_next_item",
    "show_queue_table",
]
