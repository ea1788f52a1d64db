"""Tests for caption resolution and the ASS overlay."""

from pathlib import Path

import pytest

from reel_relay.constants import CaptionStrategy
from reel_relay.video.captions import (
    CaptionSpec,
    build_caption_block,
    normalize_caption_text,
    resolve_caption_text,
    write_ass_file,
)
from reel_relay.video.layout import compute_layout


class TestResolveCaptionText:
    """Strategy-based caption selection."""

    def test_custom_trimmed(self):
        assert resolve_caption_text("custom", "  hi  ", "src", "fallback") == "hi"

    def test_custom_empty_falls_back(self):
        assert resolve_caption_text("custom", "", "src", "fallback") == "fallback"
        assert resolve_caption_text("custom", None, "src", " fallback ") == "fallback"

    def test_from_source(self):
        assert resolve_caption_text("from_source", "", "tweet text", "fallback") == "tweet text"

    def test_from_source_empty_falls_back(self):
        assert resolve_caption_text(CaptionStrategy.FROM_SOURCE, "x", "   ", "fallback") == "fallback"

    def test_default_ignores_item_text(self):
        assert resolve_caption_text(CaptionStrategy.DEFAULT, "custom", "src", " fallback ") == "fallback"

    def test_everything_empty(self):
        assert resolve_caption_text("default", None, None, None) == ""

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            resolve_caption_text("shouting", "", "", "")


class TestNormalizeCaptionText:
    """Line handling before encoding."""

    def test_collapses_blank_lines(self):
        assert normalize_caption_text("line one\r\n\r\n\r\nline two\n") == "line one\nline two"

    def test_none(self):
        assert normalize_caption_text(None) == ""


class TestBuildCaptionBlock:
    """Margins derived from the layout."""

    def test_landscape_margins(self):
        layout = compute_layout(1280, 720, top_strip=240)
        spec = build_caption_block("Hello", layout)

        # 1920 - (597 - 12)
        assert spec.margin_v == 1335
        assert spec.margin_lr == 0
        assert spec.font_family == "DejaVu Sans"
        assert spec.font_size == 48

    def test_vertical_margins(self):
        layout = compute_layout(1080, 1920, top_strip=240)
        spec = build_caption_block("Hello", layout)

        assert spec.margin_v == 1920 - (240 - 12)
        assert spec.margin_lr == 68

    def test_custom_font_and_gap(self):
        layout = compute_layout(1080, 1920, top_strip=240)
        spec = build_caption_block("Hello", layout, font_family="Arial", font_size=60, gap=20)

        assert spec.margin_v == 1920 - 220
        assert (spec.font_family, spec.font_size) == ("Arial", 60)

    def test_text_normalized(self):
        layout = compute_layout(1280, 720)
        spec = build_caption_block("  a\r\n\n\nb  ", layout)
        assert spec.text == "a\nb"


class TestToAss:
    """ASS document rendering."""

    def test_document(self):
        spec = CaptionSpec(text="first\nsecond", margin_v=1335, margin_lr=10)
        lines = spec.to_ass().split("\n")

        assert lines[0] == "[Script Info]"
        assert "ScriptType: v4.00+" in lines
        assert "PlayResX: 1080" in lines
        assert "PlayResY: 1920" in lines
        assert "ScaledBorderAndShadow: yes" in lines
        assert (
            "Style: Caption,DejaVu Sans,48,&H00000000,&H00000000,&H00000000,"
            "&H00FFFFFF,0,0,0,0,100,100,0,0,1,0,0,2,10,10,1335,0"
        ) in lines
        assert "Dialogue: 0,0:00:00.00,9:59:59.00,Caption,,0,0,0,,first\\Nsecond" in lines

    def test_sections_in_order(self):
        ass = CaptionSpec(text="x").to_ass()
        assert ass.index("[Script Info]") < ass.index("[V4+ Styles]") < ass.index("[Events]")

    def test_empty_text(self):
        ass = CaptionSpec(text="").to_ass()
        assert "Dialogue: 0,0:00:00.00,9:59:59.00,Caption,,0,0,0,," in ass


class TestWriteAssFile:
    """Temp file output."""

    def test_writes_utf8_file(self, tmp_path: Path):
        spec = CaptionSpec(text="Olá mundo")
        path = write_ass_file(spec, tmp_path)

        assert path.parent == tmp_path
        assert path.suffix == ".ass"
        assert path.read_text(encoding="utf-8") == spec.to_ass()

    def test_unique_names(self, tmp_path: Path):
        spec = CaptionSpec(text="x")
        assert write_ass_file(spec, tmp_path) != write_ass_file(spec, tmp_path)
