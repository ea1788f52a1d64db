"""Configuration for rendering a queue item."""

from typing import Optional

from pydantic import BaseModel, Field

from reel_relay.constants import (
    CAPTION_FONT_FAMILY,
    CAPTION_FONT_SIZE,
    CAPTION_GAP_DEFAULT,
    TIMEOUT_VIDEO_PROBE,
    TIMEOUT_VIDEO_RENDER,
    TOP_STRIP_DEFAULT,
    CaptionStrategy,
)


class CaptionInputs(BaseModel):
    """Everything needed to resolve an item's caption."""

    strategy: CaptionStrategy = CaptionStrategy.DEFAULT
    custom: str = ""
    source_text: str = ""
    fallback: str = ""


class TranscodeOptions(BaseModel):
    """Tunables for the ffmpeg driver."""

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    font_family: str = CAPTION_FONT_FAMILY
    font_size: int = Field(default=CAPTION_FONT_SIZE, ge=1)
    top_strip: int = Field(default=TOP_STRIP_DEFAULT, ge=0)
    caption_gap: int = Field(default=CAPTION_GAP_DEFAULT, ge=0)
    probe_timeout: float = TIMEOUT_VIDEO_PROBE
    render_timeout: float = TIMEOUT_VIDEO_RENDER
    temp_dir: Optional[str] = None  # ASS files; system temp when unset
