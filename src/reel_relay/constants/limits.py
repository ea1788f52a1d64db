"""Limits, timeouts and polling budgets.

Values here bound every wait inside a single pipeline run. Nothing in the
core loops without one of these caps.
"""

from typing import Final

# =============================================================================
# INSTAGRAM
# =============================================================================

INSTAGRAM_CAPTION_MAX_LENGTH: Final[int] = 2200
"""Graph API caption limit."""

GRAPH_API_VERSION: Final[str] = "v19.0"
"""Graph API version used for container calls."""

GRAPH_API_BASE_URL: Final[str] = "https://graph.facebook.com"

CONTAINER_GRACE_SECONDS: Final[float] = 10.0
"""Wait after container creation before the first status poll."""

CONTAINER_POLL_MAX_ATTEMPTS: Final[int] = 10
"""Status checks before a container counts as timed out."""

CONTAINER_POLL_INTERVAL_SECONDS: Final[float] = 5.0
"""Sleep between status checks."""


# =============================================================================
# TIMEOUTS
# =============================================================================

TIMEOUT_HTTP: Final[float] = 60.0
"""Per-request timeout for Graph API calls."""

TIMEOUT_VIDEO_DOWNLOAD: Final[float] = 300.0
"""Timeout for streaming a source video to disk."""

TIMEOUT_VIDEO_PROBE: Final[float] = 30.0
"""Timeout for ffprobe."""

TIMEOUT_VIDEO_RENDER: Final[float] = 900.0
"""Timeout for one ffmpeg transcode."""

TIMEOUT_YTDLP: Final[float] = 600.0
"""Timeout for a yt-dlp metadata or download call."""


# =============================================================================
# RETRY / QUEUE
# =============================================================================

FETCH_MAX_ATTEMPTS: Final[int] = 3
"""Attempts for the TikTok metadata lookup on transient HTTP failures."""

CLAIM_LEASE_SECONDS: Final[int] = 3600
"""A claimed row becomes claimable again after this many seconds."""

EXIT_CODE_SUCCESS: Final[int] = 0
EXIT_CODE_FAILURE: Final[int] = 1
EXIT_CODE_EMPTY_QUEUE: Final[int] = 99
