"""Data models for Instagram Reel publishing."""

from dataclasses import dataclass
from datetime import datetime

from reel_relay.constants import (
    CONTAINER_GRACE_SECONDS,
    CONTAINER_POLL_INTERVAL_SECONDS,
    CONTAINER_POLL_MAX_ATTEMPTS,
    GRAPH_API_VERSION,
    InstagramPostStatus,
)


@dataclass
class InstagramConfig:
    """Graph API credentials and polling budget for one account."""
    instagram_user_id: str
    access_token: str

    # API settings
    api_version: str = GRAPH_API_VERSION
    grace_seconds: float = CONTAINER_GRACE_SECONDS
    poll_max_attempts: int = CONTAINER_POLL_MAX_ATTEMPTS
    poll_interval_seconds: float = CONTAINER_POLL_INTERVAL_SECONDS

    def __repr__(self) -> str:
        return (
            f"InstagramConfig(instagram_user_id={self.instagram_user_id!r}, "
            f"access_token='***', api_version={self.api_version!r})"
        )


@dataclass
class InstagramProgress:
    """Where a Reel publish currently is, reported to the progress callback."""
    status: InstagramPostStatus = InstagramPostStatus.PENDING
    current_step: str = "Initializing..."
    progress_percent: float = 0.0

    container_id: str | None = None
    poll_attempts: int = 0

    error: str | None = None


@dataclass
class InstagramPublishResult:
    """A published Reel."""
    media_id: str
    container_id: str
    video_url: str
    poll_attempts: int = 0
    published_at: datetime | None = None
