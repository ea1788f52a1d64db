"""Global constants package for Reel Relay.

PACKAGE STRUCTURE:
-----------------
- video.py    : Canvas size, layout defaults, encoding contract
- limits.py   : Graph API settings, polling budget, timeouts, exit codes
- status.py   : Enums for queue fields, pipeline stages, container states
- paths.py    : Directory names and artifact naming helpers

USAGE:
------
    from reel_relay.constants import CANVAS_WIDTH, FormatPreset
"""

from .video import (
    CANVAS_WIDTH,
    CANVAS_HEIGHT,
    CANVAS_ASPECT_RATIO,
    ASPECT_TOLERANCE,
    BACKGROUND_COLOR,
    TOP_STRIP_DEFAULT,
    CAPTION_GAP_DEFAULT,
    CAPTION_FONT_FAMILY,
    CAPTION_FONT_SIZE,
    LOGO_WIDTH,
    LOGO_TOP,
    LOGO_VIDEO_WIDTH,
    LOGO_VIDEO_SHIFT,
    SPEED_FACTOR,
    MAX_OUTPUT_SECONDS,
    VIDEO_CODEC,
    VIDEO_PROFILE,
    VIDEO_LEVEL,
    VIDEO_PIXEL_FORMAT,
    VIDEO_ENCODER_PRESET,
    GOP_SIZE,
    VIDEO_BITRATE,
    VIDEO_MAXRATE,
    VIDEO_BUFSIZE,
    AUDIO_CODEC,
    AUDIO_BITRATE,
    AUDIO_SAMPLE_RATE,
    AUDIO_CHANNELS,
)

from .limits import (
    INSTAGRAM_CAPTION_MAX_LENGTH,
    GRAPH_API_VERSION,
    GRAPH_API_BASE_URL,
    CONTAINER_GRACE_SECONDS,
    CONTAINER_POLL_MAX_ATTEMPTS,
    CONTAINER_POLL_INTERVAL_SECONDS,
    TIMEOUT_HTTP,
    TIMEOUT_VIDEO_DOWNLOAD,
    TIMEOUT_VIDEO_PROBE,
    TIMEOUT_VIDEO_RENDER,
    TIMEOUT_YTDLP,
    FETCH_MAX_ATTEMPTS,
    CLAIM_LEASE_SECONDS,
    EXIT_CODE_SUCCESS,
    EXIT_CODE_FAILURE,
    EXIT_CODE_EMPTY_QUEUE,
)

from .status import (
    Source,
    CaptionStrategy,
    FormatPreset,
    RunStage,
    RunOutcome,
    ContainerStatus,
    InstagramPostStatus,
)

from .paths import (
    DOWNLOADS_DIR_NAME,
    LOGS_DIR_NAME,
    TRANSCODED_PREFIX,
    SOURCE_CAPTION_SUFFIX,
    LOG_PIPELINE,
    LOG_INSTAGRAM_API,
    get_logs_dir,
    artifact_basename,
    source_caption_path,
)


__all__ = [
    # Video
    "CANVAS_WIDTH",
    "CANVAS_HEIGHT",
    "CANVAS_ASPECT_RATIO",
    "ASPECT_TOLERANCE",
    "BACKGROUND_COLOR",
    "TOP_STRIP_DEFAULT",
    "CAPTION_GAP_DEFAULT",
    "CAPTION_FONT_FAMILY",
    "CAPTION_FONT_SIZE",
    "LOGO_WIDTH",
    "LOGO_TOP",
    "LOGO_VIDEO_WIDTH",
    "LOGO_VIDEO_SHIFT",
    "SPEED_FACTOR",
    "MAX_OUTPUT_SECONDS",
    "VIDEO_CODEC",
    "VIDEO_PROFILE",
    "VIDEO_LEVEL",
    "VIDEO_PIXEL_FORMAT",
    "VIDEO_ENCODER_PRESET",
    "GOP_SIZE",
    "VIDEO_BITRATE",
    "VIDEO_MAXRATE",
    "VIDEO_BUFSIZE",
    "AUDIO_CODEC",
    "AUDIO_BITRATE",
    "AUDIO_SAMPLE_RATE",
    "AUDIO_CHANNELS",
    # Limits
    "INSTAGRAM_CAPTION_MAX_LENGTH",
    "GRAPH_API_VERSION",
    "GRAPH_API_BASE_URL",
    "CONTAINER_GRACE_SECONDS",
    "CONTAINER_POLL_MAX_ATTEMPTS",
    "CONTAINER_POLL_INTERVAL_SECONDS",
    "TIMEOUT_HTTP",
    "TIMEOUT_VIDEO_DOWNLOAD",
    "TIMEOUT_VIDEO_PROBE",
    "TIMEOUT_VIDEO_RENDER",
    "TIMEOUT_YTDLP",
    "FETCH_MAX_ATTEMPTS",
    "CLAIM_LEASE_SECONDS",
    "EXIT_CODE_SUCCESS",
    "EXIT_CODE_FAILURE",
    "EXIT_CODE_EMPTY_QUEUE",
    # Status
    "Source",
    "CaptionStrategy",
    "FormatPreset",
    "RunStage",
    "RunOutcome",
    "ContainerStatus",
    "InstagramPostStatus",
    # Paths
    "DOWNLOADS_DIR_NAME",
    "LOGS_DIR_NAME",
    "TRANSCODED_PREFIX",
    "SOURCE_CAPTION_SUFFIX",
    "LOG_PIPELINE",
    "LOG_INSTAGRAM_API",
    "get_logs_dir",
    "artifact_basename",
    "source_caption_path",
]
