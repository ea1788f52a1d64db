"""Data models for the media queue.

Closed value sets (source, caption strategy, preset) are validated here,
once, when rows enter or leave the database. Everything downstream works
with the enums.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator

from reel_relay.constants import CaptionStrategy, FormatPreset, Source


def detect_source(url: str) -> Optional[Source]:
    """Detect the source platform from a URL host.

    Args:
        url: Media URL.

    Returns:
        Source, or None if the host is not recognized.
    """
    try:
        host = (urlparse(url.strip()).hostname or "").lower()
    except ValueError:
        return None
    if host.startswith("www."):
        host = host[4:]
    if host == "tiktok.com" or host.endswith(".tiktok.com"):
        return Source.TIKTOK
    if host in ("twitter.com", "x.com") or host.endswith((".twitter.com", ".x.com")):
        return Source.TWITTER
    return None


class QueueItem(BaseModel):
    """One row of ``media_queue``."""

    id: int
    source: Source
    url: str
    caption_strategy: CaptionStrategy = CaptionStrategy.DEFAULT
    caption_custom: str = ""
    filename: Optional[str] = None
    downloaded: bool = False
    posted: bool = False
    logo_requested: bool = True
    format_preset: FormatPreset = FormatPreset.CAPTION_TOP
    created_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None

    @field_validator("format_preset", mode="before")
    @classmethod
    def _parse_preset(cls, value: Any) -> FormatPreset:
        return FormatPreset.parse(value)

    @field_validator("caption_custom", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return value or ""

    @field_validator("logo_requested", mode="before")
    @classmethod
    def _legacy_logo(cls, value: Any) -> bool:
        # NULL predates the column default; those rows always rendered the logo
        if value is None:
            return True
        return bool(value)

    @classmethod
    def from_row(cls, row: Any) -> "QueueItem":
        """Build an item from a ``sqlite3.Row``."""
        data = dict(row)
        data["logo_requested"] = data.pop("logo", True)
        return cls(**data)


class NewQueueItem(BaseModel):
    """Validated payload for inserting a queue item.

    Fills the same defaults the bulk importer always applied:
    - source detected from the URL host when omitted
    - unknown caption strategies fall back to ``default``
    - logo on unless explicitly disabled
    - preset chosen by source when blank
    """

    url: str = Field(min_length=1)
    source: Source
    caption_strategy: CaptionStrategy = CaptionStrategy.DEFAULT
    caption_custom: str = ""
    logo_requested: bool = True
    format_preset: FormatPreset

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        url = data.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ValueError("Each item must have a url")
        data["url"] = url.strip()

        if "logo" in data and "logo_requested" not in data:
            data["logo_requested"] = data.pop("logo")

        if not data.get("source"):
            detected = detect_source(data["url"])
            if detected is None:
                raise ValueError(f"Could not detect source for url: {data['url']}")
            data["source"] = detected

        strategy = data.get("caption_strategy")
        if strategy not in {s.value for s in CaptionStrategy} and not isinstance(
            strategy, CaptionStrategy
        ):
            data["caption_strategy"] = CaptionStrategy.DEFAULT

        if not isinstance(data.get("caption_custom"), str):
            data["caption_custom"] = ""

        if data.get("logo_requested") is None:
            data["logo_requested"] = True

        preset = data.get("format_preset")
        if preset is None or (isinstance(preset, str) and not preset.strip()):
            data["format_preset"] = Source(data["source"]).default_preset
        return data

    @field_validator("format_preset", mode="before")
    @classmethod
    def _parse_preset(cls, value: Any) -> FormatPreset:
        return FormatPreset.parse(value)
