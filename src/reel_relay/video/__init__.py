"""Video layout, caption overlay and ffmpeg rendering."""

from .captions import (
    CaptionSpec,
    build_caption_block,
    resolve_caption_text,
    write_ass_file,
)
from .config import CaptionInputs, TranscodeOptions
from .layout import LayoutResult, compute_layout, is_vertical_916
from .transcoder import Transcoder, build_command

__all__ = [
    "CaptionInputs",
    "CaptionSpec",
    "LayoutResult",
    "TranscodeOptions",
    "Transcoder",
    "build_caption_block",
    "build_command",
    "compute_layout",
    "is_vertical_916",
    "resolve_caption_text",
    "write_ass_file",
]
