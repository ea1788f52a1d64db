"""Run feature - single pipeline pass."""

from .commands import run
from .display import show_run_result

__all__ = ["run", "show_run_result"]
