"""Media queue: models and SQLite store."""

from .models import NewQueueItem, QueueItem, detect_source
from .store import QueueStore

__all__ = [
    "NewQueueItem",
    "QueueItem",
    "QueueStore",
    "detect_source",
]
