"""Command line interface.

- core/: Shared console helpers
- run/: One pipeline pass
- queue/: Queue database management

Usage:
    reel-relay run --env-file accounts/myaccount.env
    reel-relay add https://x.com/user/status/123 --db queue.db
"""

from .app import app, main

__all__ = ["app", "main"]
