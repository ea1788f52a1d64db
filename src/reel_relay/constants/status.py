"""Status enums and closed value sets for Reel Relay.

This module contains the enums shared across the queue, the renderer and
the pipeline:
- Queue item fields (source, caption strategy, format preset)
- Pipeline stages and run outcomes
- Instagram container states

Stored values are the lowercase strings used in the ``media_queue`` table.
Add new values at the END to keep existing databases readable.
"""

from __future__ import annotations

from enum import Enum


# =============================================================================
# QUEUE ITEM FIELDS
# =============================================================================

class Source(str, Enum):
    """Platform a queue item is fetched from."""

    TIKTOK = "tiktok"
    TWITTER = "twitter"

    @property
    def default_preset(self) -> "FormatPreset":
        """Preset used when an item is created without one."""
        if self is Source.TIKTOK:
            return FormatPreset.LOGO_ONLY
        return FormatPreset.CAPTION_TOP


class CaptionStrategy(str, Enum):
    """Where the caption text of an item comes from."""

    DEFAULT = "default"
    """Account-wide fallback caption."""

    CUSTOM = "custom"
    """The item's own ``caption_custom`` text."""

    FROM_SOURCE = "from_source"
    """Text pulled from the source post (e.g. tweet text)."""


class FormatPreset(str, Enum):
    """Layout/overlay strategy applied during rendering."""

    RAW = "raw"
    """Scale-to-fit on a white canvas, no overlay."""

    LOGO_ONLY = "logo_only"
    """Brand logo near the top, video centered below it."""

    CAPTION_TOP = "caption_top"
    """Caption block in the top strip, video placed under it."""

    @classmethod
    def parse(cls, value: "FormatPreset | str") -> "FormatPreset":
        """Parse a preset name, tolerating case and surrounding whitespace.

        Raises:
            ValueError: If the name is not a known preset.
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        # Older databases stored this combined value; the logo part never rendered.
        if name == "caption_top+logo":
            return cls.CAPTION_TOP
        try:
            return cls(name)
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown preset: {value!r}. Allowed: {allowed}") from None


# =============================================================================
# PIPELINE
# =============================================================================

class RunStage(str, Enum):
    """Stage of a single pipeline run.

    Workflow:
        IDLE -> FETCHING -> FETCHED -> TRANSCODING -> TRANSCODED
             -> PUBLISHING -> DONE
    Any stage can end the run as FAILED.
    """

    IDLE = "idle"
    FETCHING = "fetching"
    FETCHED = "fetched"
    TRANSCODING = "transcoding"
    TRANSCODED = "transcoded"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


class RunOutcome(str, Enum):
    """Outcome of one pipeline run, reported to the scheduler."""

    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"


# =============================================================================
# INSTAGRAM
# =============================================================================

class ContainerStatus(str, Enum):
    """``status_code`` values of a Graph API media container."""

    IN_PROGRESS = "IN_PROGRESS"
    FINISHED = "FINISHED"
    ERROR = "ERROR"
    EXPIRED = "EXPIRED"
    PUBLISHED = "PUBLISHED"


class InstagramPostStatus(str, Enum):
    """Progress states reported while publishing."""

    PENDING = "pending"
    CREATING_CONTAINER = "creating_container"
    PROCESSING = "processing"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"
