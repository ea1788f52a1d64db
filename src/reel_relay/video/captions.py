"""Caption text resolution and the ASS overlay drawn above the video.

The caption lives in the top strip: its block ends a small gap above the
placed video, and its left/right margins match the video's letterboxing.
"""

import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from reel_relay.constants import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CAPTION_FONT_FAMILY,
    CAPTION_FONT_SIZE,
    CAPTION_GAP_DEFAULT,
    CaptionStrategy,
)
from reel_relay.video.layout import LayoutResult, round_half_up

_BLANK_LINES = re.compile(r"\n{2,}")

_STYLE_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
    "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, "
    "ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, "
    "MarginL, MarginR, MarginV, Encoding"
)
_EVENT_FORMAT = (
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"
)


def resolve_caption_text(
    strategy: Union[CaptionStrategy, str],
    custom: Optional[str],
    source_text: Optional[str],
    fallback: Optional[str],
) -> str:
    """Pick the caption for an item.

    Empty custom or source text falls back to ``fallback``. Result may be "".
    """
    fallback_text = (fallback or "").strip()
    strategy = CaptionStrategy(strategy)
    if strategy == CaptionStrategy.CUSTOM:
        return (custom or "").strip() or fallback_text
    if strategy == CaptionStrategy.FROM_SOURCE:
        return (source_text or "").strip() or fallback_text
    return fallback_text


def normalize_caption_text(text: Optional[str]) -> str:
    """Drop carriage returns, collapse blank lines, trim."""
    cleaned = (text or "").replace("\r", "")
    return _BLANK_LINES.sub("\n", cleaned).strip()


@dataclass(frozen=True)
class CaptionSpec:
    """A caption block ready to render as an ASS subtitle document."""

    text: str
    font_family: str = CAPTION_FONT_FAMILY
    font_size: int = CAPTION_FONT_SIZE
    margin_v: int = 0
    margin_lr: int = 0
    canvas_width: int = CANVAS_WIDTH
    canvas_height: int = CANVAS_HEIGHT

    def to_ass(self) -> str:
        """Render the ASS document.

        Black text, bottom-center alignment, shown for the whole clip. With
        bottom alignment, ``margin_v`` is the distance from the canvas bottom
        to the last caption line.
        """
        ass_text = self.text.replace("\n", "\\N")
        lines = [
            "[Script Info]",
            "ScriptType: v4.00+",
            f"PlayResX: {self.canvas_width}",
            f"PlayResY: {self.canvas_height}",
            "ScaledBorderAndShadow: yes",
            "",
            "[V4+ Styles]",
            _STYLE_FORMAT,
            (
                f"Style: Caption,{self.font_family},{self.font_size},"
                "&H00000000,&H00000000,&H00000000,&H00FFFFFF,"
                "0,0,0,0,100,100,0,0,1,0,0,2,"
                f"{self.margin_lr},{self.margin_lr},{self.margin_v},0"
            ),
            "",
            "[Events]",
            _EVENT_FORMAT,
            f"Dialogue: 0,0:00:00.00,9:59:59.00,Caption,,0,0,0,,{ass_text}",
            "",
        ]
        return "\n".join(lines)


def build_caption_block(
    text: Optional[str],
    layout: LayoutResult,
    font_family: str = CAPTION_FONT_FAMILY,
    font_size: int = CAPTION_FONT_SIZE,
    gap: int = CAPTION_GAP_DEFAULT,
) -> CaptionSpec:
    """Size a caption block so it never overlaps the placed video.

    Args:
        text: Resolved caption text.
        layout: Video placement from compute_layout().
        font_family: Font name passed to libass.
        font_size: Font size in canvas pixels.
        gap: Space between the caption block and the video top.

    Returns:
        CaptionSpec.
    """
    bottom_of_caption = layout.y - gap
    margin_v = max(0, layout.canvas_height - bottom_of_caption)
    margin_lr = max(0, round_half_up((layout.canvas_width - layout.video_width) / 2))
    return CaptionSpec(
        text=normalize_caption_text(text),
        font_family=font_family,
        font_size=font_size,
        margin_v=margin_v,
        margin_lr=margin_lr,
        canvas_width=layout.canvas_width,
        canvas_height=layout.canvas_height,
    )


def write_ass_file(spec: CaptionSpec, directory: Optional[Path] = None) -> Path:
    """Write the caption to a temporary ``.ass`` file. Caller deletes it."""
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        prefix="caption_",
        suffix=".ass",
        dir=str(directory) if directory else None,
        delete=False,
    ) as f:
        f.write(spec.to_ass())
        return Path(f.name)
