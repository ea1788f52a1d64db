"""Video-related constants for Reel Relay.

This module contains all constants related to rendering including:
- Canvas resolution and aspect ratio
- Layout defaults for the top strip, logo and caption blocks
- The fixed encoding contract shared by every preset

Every preset renders into the same output contract. Instagram's Reels
ingestion is strict about format, so nothing downstream branches per item.
"""

from typing import Final

# =============================================================================
# CANVAS
# =============================================================================

CANVAS_WIDTH: Final[int] = 1080
"""Output canvas width in pixels."""

CANVAS_HEIGHT: Final[int] = 1920
"""Output canvas height in pixels. 9:16 with 1080 width."""

CANVAS_ASPECT_RATIO: Final[float] = 9 / 16
"""Canvas aspect as decimal (0.5625)."""

ASPECT_TOLERANCE: Final[float] = 0.01
"""Absolute tolerance when deciding a source is already 9:16."""

BACKGROUND_COLOR: Final[str] = "white"
"""Fill color for letterbox padding and the background layer."""


# =============================================================================
# LAYOUT
# =============================================================================

TOP_STRIP_DEFAULT: Final[int] = 240
"""Pixels reserved at the top of the canvas for the caption block."""

CAPTION_GAP_DEFAULT: Final[int] = 12
"""Space between the bottom of the caption block and the placed video."""

CAPTION_FONT_FAMILY: Final[str] = "DejaVu Sans"
"""Default caption font family."""

CAPTION_FONT_SIZE: Final[int] = 48
"""Default caption font size in ASS units (PlayRes equals canvas)."""

LOGO_WIDTH: Final[int] = 700
"""Logo is scaled to this width, height follows aspect."""

LOGO_TOP: Final[int] = 120
"""Y offset of the logo from the top of the canvas."""

LOGO_VIDEO_WIDTH: Final[int] = 820
"""Source video width in the logo preset."""

LOGO_VIDEO_SHIFT: Final[int] = 80
"""Downward shift of the centered video in the logo preset."""


# =============================================================================
# ENCODING CONTRACT
# =============================================================================

SPEED_FACTOR: Final[float] = 1.05
"""Playback speed-up applied to video (setpts) and audio (atempo)."""

MAX_OUTPUT_SECONDS: Final[int] = 89
"""Hard duration cap. Anything past it is not encoded."""

VIDEO_CODEC: Final[str] = "libx264"
VIDEO_PROFILE: Final[str] = "high"
VIDEO_LEVEL: Final[str] = "4.0"
VIDEO_PIXEL_FORMAT: Final[str] = "yuv420p"
VIDEO_ENCODER_PRESET: Final[str] = "fast"

GOP_SIZE: Final[int] = 48
"""Keyframe interval in frames. Scene-cut keyframes are disabled."""

VIDEO_BITRATE: Final[str] = "2M"
VIDEO_MAXRATE: Final[str] = "2M"
VIDEO_BUFSIZE: Final[str] = "4M"

AUDIO_CODEC: Final[str] = "aac"
AUDIO_BITRATE: Final[str] = "128k"
AUDIO_SAMPLE_RATE: Final[int] = 44100
AUDIO_CHANNELS: Final[int] = 2
