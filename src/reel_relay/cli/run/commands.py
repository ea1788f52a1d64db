"""Run command - one pipeline pass for one account."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from reel_relay.config import RunSettings
from reel_relay.errors import ConfigurationError
from reel_relay.pipeline.orchestrator import PipelineRunner

from ..core.console import console, print_error
from .display import show_run_result


def run(
    env_file: Optional[Path] = typer.Option(
        None, "--env-file", "-e", exists=True, dir_okay=False, help="Account .env file to load"
    ),
    db: Optional[Path] = typer.Option(None, "--db", help="Queue database (overrides $DB_PATH)"),
    account: Optional[str] = typer.Option(None, "--account", "-a", help="Account name (overrides $ACCOUNT_NAME)"),
) -> None:
    """Publish the next queued video.

    Exit codes: 0 published, 99 queue empty, 1 failed.
    """
    if env_file is not None:
        load_dotenv(env_file, override=True)

    try:
        settings = RunSettings.load(db_path=db, account_name=account)
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    runner = PipelineRunner(settings)
    result = asyncio.run(runner.run_once())

    show_run_result(console, settings.account_name, result)
    raise typer.Exit(result.exit_code)
