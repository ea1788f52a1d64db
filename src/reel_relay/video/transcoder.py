"""ffmpeg driver that renders a source clip onto the 1080x1920 canvas.

Each preset is a declarative filter graph; build_command() turns a preset
plus a layout into the full ffmpeg argv, and Transcoder runs it.

Every preset shares one output contract: 1.05x speed-up, H.264 high@4.0,
AAC stereo, fixed GOP, 2 Mbps, capped at 89 seconds.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Union

from reel_relay.constants import (
    AUDIO_BITRATE,
    AUDIO_CHANNELS,
    AUDIO_CODEC,
    AUDIO_SAMPLE_RATE,
    BACKGROUND_COLOR,
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    GOP_SIZE,
    LOGO_TOP,
    LOGO_VIDEO_SHIFT,
    LOGO_VIDEO_WIDTH,
    LOGO_WIDTH,
    MAX_OUTPUT_SECONDS,
    SPEED_FACTOR,
    VIDEO_BITRATE,
    VIDEO_BUFSIZE,
    VIDEO_CODEC,
    VIDEO_ENCODER_PRESET,
    VIDEO_LEVEL,
    VIDEO_MAXRATE,
    VIDEO_PIXEL_FORMAT,
    VIDEO_PROFILE,
    FormatPreset,
)
from reel_relay.errors import ConfigurationError, TranscodeError
from reel_relay.video.captions import (
    build_caption_block,
    resolve_caption_text,
    write_ass_file,
)
from reel_relay.video.config import CaptionInputs, TranscodeOptions
from reel_relay.video.layout import LayoutResult, compute_layout

logger = logging.getLogger("video.transcode")

PathLike = Union[str, Path]


def escape_filter_path(path: PathLike) -> str:
    """Make a file path safe inside an ffmpeg filter argument."""
    return str(path).replace("\\", "/").replace("'", "\\'")


def parse_preset(preset: Union[FormatPreset, str]) -> FormatPreset:
    """Parse a preset name, raising ConfigurationError when unknown."""
    try:
        return FormatPreset.parse(preset)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def _speed_filter() -> str:
    return f"setpts=PTS/{SPEED_FACTOR}"


def _scale_filter(layout: LayoutResult) -> str:
    return (
        f"scale={layout.video_width}:{layout.video_height}"
        ":force_original_aspect_ratio=decrease"
    )


def _background_filter(width: int, height: int) -> str:
    return f"color={BACKGROUND_COLOR}:s={width}x{height}:d=1[bg]"


def build_filter_args(
    preset: FormatPreset,
    layout: LayoutResult,
    ass_path: Optional[PathLike] = None,
) -> list[str]:
    """Filter and stream-mapping arguments for a preset."""
    width, height = layout.canvas_width, layout.canvas_height

    if preset == FormatPreset.RAW:
        vf = (
            f"{_scale_filter(layout)},"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color={BACKGROUND_COLOR},"
            f"{_speed_filter()}"
        )
        return ["-vf", vf, "-map", "0:v", "-map", "0:a?"]

    if preset == FormatPreset.CAPTION_TOP:
        if ass_path is None:
            raise ValueError("caption_top needs a caption file")
        graph = ";".join([
            _background_filter(width, height),
            f"[bg]subtitles={escape_filter_path(ass_path)}[bgcap]",
            f"[0:v]{_scale_filter(layout)},{_speed_filter()}[vid]",
            f"[bgcap][vid]overlay={layout.x}:{layout.y}[final]",
        ])
        return ["-filter_complex", graph, "-map", "[final]", "-map", "0:a?"]

    if preset == FormatPreset.LOGO_ONLY:
        graph = ";".join([
            _background_filter(width, height),
            f"[1:v]scale={LOGO_WIDTH}:-1[logo]",
            f"[bg][logo]overlay=x=(main_w-overlay_w)/2:y={LOGO_TOP}[bgWithLogo]",
            f"[0:v]scale={LOGO_VIDEO_WIDTH}:-2[resized]",
            f"[resized]{_speed_filter()}[spedupv]",
            (
                "[bgWithLogo][spedupv]overlay=(main_w-overlay_w)/2:"
                f"(main_h-overlay_h)/2+{LOGO_VIDEO_SHIFT}[final]"
            ),
        ])
        return ["-filter_complex", graph, "-map", "[final]", "-map", "0:a?"]

    raise ValueError(f"Unhandled preset: {preset}")


def output_args() -> list[str]:
    """Encoding options shared by every preset."""
    return [
        "-af", f"atempo={SPEED_FACTOR}",
        "-c:v", VIDEO_CODEC,
        "-profile:v", VIDEO_PROFILE,
        "-level", VIDEO_LEVEL,
        "-pix_fmt", VIDEO_PIXEL_FORMAT,
        "-preset", VIDEO_ENCODER_PRESET,
        "-movflags", "+faststart",
        "-g", str(GOP_SIZE),
        "-keyint_min", str(GOP_SIZE),
        "-sc_threshold", "0",
        "-b:v", VIDEO_BITRATE,
        "-maxrate", VIDEO_MAXRATE,
        "-bufsize", VIDEO_BUFSIZE,
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
        "-ar", str(AUDIO_SAMPLE_RATE),
        "-ac", str(AUDIO_CHANNELS),
        "-t", str(MAX_OUTPUT_SECONDS),
    ]


def build_command(
    input_path: PathLike,
    output_path: PathLike,
    preset: Union[FormatPreset, str],
    layout: LayoutResult,
    ass_path: Optional[PathLike] = None,
    logo_path: Optional[PathLike] = None,
    ffmpeg_path: str = "ffmpeg",
) -> list[str]:
    """Full ffmpeg argv for one render. Pure; touches no files.

    Args:
        input_path: Source clip (input 0).
        output_path: Rendered file.
        preset: Preset name or enum.
        layout: Placement from compute_layout().
        ass_path: Caption file, required for caption_top.
        logo_path: Logo image (input 1), required for logo_only.
        ffmpeg_path: ffmpeg executable.

    Raises:
        ConfigurationError: Unknown preset, or logo_only without a logo.
    """
    preset = parse_preset(preset)
    cmd = [ffmpeg_path, "-y", "-hide_banner", "-loglevel", "error", "-i", str(input_path)]
    if preset == FormatPreset.LOGO_ONLY:
        if logo_path is None:
            raise ConfigurationError("Preset 'logo_only' requires a valid logo path")
        cmd.extend(["-i", str(logo_path)])
    cmd.extend(build_filter_args(preset, layout, ass_path))
    cmd.extend(output_args())
    cmd.append(str(output_path))
    return cmd


class Transcoder:
    """Renders queue items with ffmpeg.

    Args:
        options: Binary paths, caption font, timeouts.
    """

    def __init__(self, options: Optional[TranscodeOptions] = None):
        self.options = options or TranscodeOptions()

    async def probe_dimensions(self, input_path: PathLike) -> tuple[int, int]:
        """Width and height of the first video stream, (0, 0) when unknown."""
        cmd = [
            self.options.ffprobe_path,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_streams",
            "-of", "json",
            str(input_path),
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, _ = await asyncio.wait_for(
                process.communicate(), timeout=self.options.probe_timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"PROBE_FAIL | {input_path} | {type(e).__name__}: {e}")
            return 0, 0

        if process.returncode != 0:
            logger.warning(f"PROBE_FAIL | {input_path} | returncode={process.returncode}")
            return 0, 0

        try:
            streams = json.loads(stdout.decode("utf-8", errors="replace")).get("streams") or []
            stream = streams[0]
            return int(stream.get("width") or 0), int(stream.get("height") or 0)
        except (ValueError, IndexError, AttributeError, TypeError):
            logger.warning(f"PROBE_FAIL | {input_path} | unreadable ffprobe output")
            return 0, 0

    async def transcode(
        self,
        input_path: PathLike,
        output_path: PathLike,
        preset: Union[FormatPreset, str],
        logo_path: Optional[PathLike] = None,
        caption_inputs: Optional[CaptionInputs] = None,
        logo_requested: bool = True,
    ) -> Path:
        """Render ``input_path`` into ``output_path``.

        Args:
            input_path: Downloaded source clip.
            output_path: Destination, overwritten if present.
            preset: Preset name or enum.
            logo_path: Brand logo for logo_only.
            caption_inputs: Caption resolution inputs for caption_top.
            logo_requested: Item-level logo flag.

        Returns:
            Path to the rendered file.

        Raises:
            ConfigurationError: Unknown preset, missing logo, missing ffmpeg.
            TranscodeError: ffmpeg failed or timed out.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        preset = parse_preset(preset)

        logo: Optional[Path] = None
        if preset == FormatPreset.LOGO_ONLY:
            logo = Path(logo_path) if logo_path else None
            if not logo_requested or logo is None or not logo.is_file():
                raise ConfigurationError(
                    f"Preset 'logo_only' requires a valid logo path (got {logo_path!r}, "
                    f"logo requested: {logo_requested})"
                )

        if not input_path.is_file():
            raise TranscodeError(f"Input video not found: {input_path}")

        width, height = await self.probe_dimensions(input_path)
        layout = compute_layout(
            width or CANVAS_WIDTH,
            height or CANVAS_HEIGHT,
            top_strip=self.options.top_strip,
        )
        logger.info(
            f"LAYOUT | {input_path.name} | src={width}x{height} | "
            f"video={layout.video_width}x{layout.video_height} at "
            f"({layout.x},{layout.y}) | 916={layout.is_916}"
        )

        ass_path: Optional[Path] = None
        try:
            if preset == FormatPreset.CAPTION_TOP:
                inputs = caption_inputs or CaptionInputs()
                text = resolve_caption_text(
                    inputs.strategy, inputs.custom, inputs.source_text, inputs.fallback
                )
                spec = build_caption_block(
                    text,
                    layout,
                    font_family=self.options.font_family,
                    font_size=self.options.font_size,
                    gap=self.options.caption_gap,
                )
                temp_dir = Path(self.options.temp_dir) if self.options.temp_dir else None
                ass_path = write_ass_file(spec, temp_dir)

            cmd = build_command(
                input_path,
                output_path,
                preset,
                layout,
                ass_path=ass_path,
                logo_path=logo,
                ffmpeg_path=self.options.ffmpeg_path,
            )
            await self._run_ffmpeg(cmd, output_path)
        finally:
            if ass_path is not None:
                ass_path.unlink(missing_ok=True)

        logger.info(f"TRANSCODED | {preset.value} | {output_path.name}")
        return output_path

    async def _run_ffmpeg(self, cmd: list[str], output_path: Path) -> None:
        """Run ffmpeg, deleting partial output on any failure."""
        logger.info(f"FFMPEG_CMD | {' '.join(cmd[:15])}...")
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ConfigurationError(f"ffmpeg not found: {cmd[0]}") from e
        except OSError as e:
            output_path.unlink(missing_ok=True)
            raise TranscodeError(f"Could not start ffmpeg: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.options.render_timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            output_path.unlink(missing_ok=True)
            raise TranscodeError(
                f"FFmpeg timed out after {self.options.render_timeout:.0f}s"
            ) from e

        if process.returncode != 0:
            error_msg = stderr.decode("utf-8", errors="replace")
            error_tail = error_msg[-1000:] if len(error_msg) > 1000 else error_msg
            if not error_tail.strip():
                error_tail = "(stderr was empty)"
            logger.error(f"FFmpeg failed: {error_tail}")
            output_path.unlink(missing_ok=True)
            raise TranscodeError(
                f"FFmpeg failed (returncode={process.returncode}): {error_tail}"
            )

        if not output_path.is_file():
            raise TranscodeError("FFmpeg did not produce output file")
