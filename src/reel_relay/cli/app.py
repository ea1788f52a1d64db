"""Typer app configuration and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.logging import RichHandler

from reel_relay.constants import LOG_INSTAGRAM_API, LOG_PIPELINE, get_logs_dir

from .core.console import console

# Load environment variables from .env file
load_dotenv()

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"

# Loggers that write the pipeline log; the first also goes to the console
_PIPELINE_LOGGERS = ["reel_relay", "video.transcode"]

app = typer.Typer(
    name="reel-relay",
    help="Repost TikTok and Twitter/X videos as Instagram Reels",
    add_completion=False,
)


def register_commands() -> None:
    """Register all commands from feature modules."""
    from .run.commands import run

    app.command(name="run")(run)

    from .queue.commands import add, init_db, queue, remove

    app.command(name="init-db")(init_db)
    app.command(name="add")(add)
    app.command(name="queue")(queue)
    app.command(name="remove")(remove)


def _file_handler(path: Path) -> logging.FileHandler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    return handler


def _replace_handlers(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    for old in logger.handlers:
        if old not in handlers:
            old.close()
    logger.handlers = handlers


def setup_logging(log_dir: Path | None = None, verbose: bool = False) -> None:
    """Configure logging for CLI.

    - Suppresses console output from libraries
    - Pipeline and transcode logs go to reel_relay.log, pipeline also to console
    - Instagram API calls go to instagram_api.log only
    """
    log_dir = log_dir or get_logs_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.CRITICAL)

    for logger_name in ["httpx", "httpcore", "asyncio"]:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.WARNING)
        logger.propagate = False

    pipeline_file = _file_handler(log_dir / LOG_PIPELINE)
    for logger_name in _PIPELINE_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        _replace_handlers(logger, [pipeline_file])

    console_handler = RichHandler(console=console, show_path=False, markup=False)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger("reel_relay").addHandler(console_handler)

    instagram_logger = logging.getLogger("instagram_api")
    instagram_logger.setLevel(logging.DEBUG)
    instagram_logger.propagate = False
    _replace_handlers(instagram_logger, [_file_handler(log_dir / LOG_INSTAGRAM_API)])


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output on the console"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", envvar="LOG_DIR", help="Log directory (default ./logs)"),
) -> None:
    setup_logging(log_dir, verbose=verbose)


# Register all commands
register_commands()


def main() -> None:
    """CLI entry point."""
    app()
