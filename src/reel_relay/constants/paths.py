"""Directory names and file naming conventions."""

import re
from pathlib import Path
from typing import Final

DOWNLOADS_DIR_NAME: Final[str] = "downloads"
"""Local artifact directory. Also the URL path prefix the file server exposes."""

LOGS_DIR_NAME: Final[str] = "logs"

TRANSCODED_PREFIX: Final[str] = "transcoded_"
"""Prefix of the rendered file next to its original."""

SOURCE_CAPTION_SUFFIX: Final[str] = ".caption.txt"
"""Sidecar holding the source caption of a downloaded video."""

LOG_PIPELINE: Final[str] = "reel_relay.log"
LOG_INSTAGRAM_API: Final[str] = "instagram_api.log"


def get_logs_dir(base_dir: Path | None = None) -> Path:
    """Get the logs directory, creating it if needed.

    Args:
        base_dir: Base directory (defaults to cwd).

    Returns:
        Path to logs directory.
    """
    logs_dir = (base_dir or Path.cwd()) / LOGS_DIR_NAME
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def artifact_basename(account: str, item_id: int) -> str:
    """Base filename (no extension) for an item's download.

    Unique per account so several accounts can share one downloads folder.
    """
    safe_account = re.sub(r"[^A-Za-z0-9._-]", "_", account)
    return f"{safe_account}_media_{item_id}"


def source_caption_path(video_path: Path) -> Path:
    """Sidecar path for the source caption of ``video_path``."""
    return video_path.with_name(video_path.stem + SOURCE_CAPTION_SUFFIX)
