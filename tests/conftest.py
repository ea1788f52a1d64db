"""Shared test fixtures and configuration.

Provides a throwaway queue database, run settings pointing at tmp_path,
and fake subprocess/process helpers for the ffmpeg and yt-dlp drivers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from reel_relay.config import RunSettings
from reel_relay.queue.store import QueueStore

_SETTINGS_ENV = [
    "DB_PATH",
    "ACCOUNT_NAME",
    "IG_ACCESS_TOKEN",
    "IG_USER_ID",
    "PUBLIC_BASE_URL",
    "CLOUDFLARE_PUBLIC_URL",
    "CAPTION",
    "LOGO_PATH",
    "DOWNLOADS_DIR",
    "GRAPH_API_VERSION",
    "POLL_MAX_ATTEMPTS",
    "POLL_INTERVAL_SECONDS",
    "CLAIM_LEASE_SECONDS",
    "FFMPEG_PATH",
    "FFPROBE_PATH",
    "YTDLP_PATH",
    "LOG_DIR",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every setting the app reads from the environment."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "queue.db"


@pytest.fixture
def store(db_path: Path):
    """Open queue store on a fresh database."""
    queue_store = QueueStore(db_path)
    yield queue_store
    queue_store.close()


@pytest.fixture
def downloads_dir(tmp_path: Path) -> Path:
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest.fixture
def settings(clean_env, db_path: Path, downloads_dir: Path) -> RunSettings:
    """Valid settings for account 'acct' with no polling delay."""
    return RunSettings(
        db_path=db_path,
        account_name="acct",
        ig_access_token="secret-token",
        ig_user_id="1789",
        public_base_url="https://cdn.example.com",
        caption="Default caption",
        downloads_dir=downloads_dir,
        poll_max_attempts=3,
        poll_interval_seconds=0,
    )


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b""):
        self.returncode = returncode
        self._stdout = stdout
        self._stderr = stderr
        self.killed = False

    async def communicate(self) -> tuple[bytes, bytes]:
        return self._stdout, self._stderr

    def kill(self) -> None:
        self.killed = True

    async def wait(self) -> int:
        return self.returncode


@pytest.fixture
def fake_process():
    """Factory for FakeProcess instances."""
    def _make(**kwargs: Any) -> FakeProcess:
        return FakeProcess(**kwargs)

    return _make
