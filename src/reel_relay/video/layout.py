"""Placement of a source video on the vertical canvas.

Pure functions, no I/O. The transcoder and the caption renderer both read
the same LayoutResult so the caption always sits just above the video.
"""

import math
from dataclasses import dataclass

from reel_relay.constants import (
    ASPECT_TOLERANCE,
    CANVAS_ASPECT_RATIO,
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    TOP_STRIP_DEFAULT,
)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (builtin round() is banker's)."""
    return int(math.floor(value + 0.5))


def is_vertical_916(width: int, height: int) -> bool:
    """True when width/height is within tolerance of 9:16."""
    if width <= 0 or height <= 0:
        return False
    return abs(width / height - CANVAS_ASPECT_RATIO) < ASPECT_TOLERANCE


@dataclass(frozen=True)
class LayoutResult:
    """Where the scaled video lands on the canvas."""

    video_width: int
    video_height: int
    x: int
    y: int
    canvas_width: int = CANVAS_WIDTH
    canvas_height: int = CANVAS_HEIGHT
    top_strip: int = TOP_STRIP_DEFAULT
    is_916: bool = False

    @property
    def available_height(self) -> int:
        return self.canvas_height - self.top_strip


def compute_layout(
    src_width: int,
    src_height: int,
    top_strip: int = TOP_STRIP_DEFAULT,
    canvas_width: int = CANVAS_WIDTH,
    canvas_height: int = CANVAS_HEIGHT,
) -> LayoutResult:
    """Fit the source into the area below the top strip.

    The video is scaled to fit (never cropped) and centered horizontally.
    Vertical 9:16 sources sit flush under the strip; anything else is placed
    a third of the way down the leftover space, which leaves room for the
    caption without pushing the video to the bottom edge.

    Args:
        src_width: Source width in pixels.
        src_height: Source height in pixels.
        top_strip: Height reserved at the top of the canvas.
        canvas_width: Output width.
        canvas_height: Output height.

    Returns:
        LayoutResult.

    Raises:
        ValueError: Non-positive source dimensions or a strip taller than the canvas.
    """
    if src_width <= 0 or src_height <= 0:
        raise ValueError(f"Invalid source dimensions: {src_width}x{src_height}")
    if not 0 <= top_strip < canvas_height:
        raise ValueError(f"Top strip {top_strip} does not fit canvas height {canvas_height}")

    available_width = canvas_width
    available_height = canvas_height - top_strip
    vertical = is_vertical_916(src_width, src_height)

    scale = min(available_width / src_width, available_height / src_height)
    video_width = round_half_up(src_width * scale)
    video_height = round_half_up(src_height * scale)

    x = round_half_up((canvas_width - video_width) / 2)
    if vertical:
        y = top_strip
    else:
        y = top_strip + round_half_up((available_height - video_height) / 3)

    return LayoutResult(
        video_width=video_width,
        video_height=video_height,
        x=x,
        y=y,
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        top_strip=top_strip,
        is_916=vertical,
    )
