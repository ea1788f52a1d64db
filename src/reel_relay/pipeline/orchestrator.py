"""Drives one queue item from source URL to published Reel.

Stages run strictly in order and each is awaited before the next:

    claim -> fetch -> mark downloaded -> transcode -> resolve caption
          -> publish -> mark posted -> cleanup

Any RelayError stops the run where it happened. The item keeps whatever
progress was recorded (a downloaded-but-unposted item is picked first next
time) and its lease is always released.
"""

import logging
from pathlib import Path
from typing import Any, MutableMapping, Optional

from reel_relay.config import RunSettings
from reel_relay.constants import (
    DOWNLOADS_DIR_NAME,
    TRANSCODED_PREFIX,
    RunStage,
    artifact_basename,
    source_caption_path,
)
from reel_relay.errors import FetchError, RelayError, StoreError
from reel_relay.fetch.downloader import MediaDownloader, TikTokDownloader, TwitterDownloader
from reel_relay.instagram.client import InstagramAPIError, InstagramClient
from reel_relay.instagram.models import InstagramProgress
from reel_relay.queue.models import QueueItem
from reel_relay.queue.store import QueueStore
from reel_relay.video.captions import resolve_caption_text
from reel_relay.video.config import CaptionInputs
from reel_relay.video.transcoder import Transcoder

from .results import RunResult

_logger = logging.getLogger("reel_relay.pipeline")


class AccountLogger(logging.LoggerAdapter):
    """Prefixes every line with the account name."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['account']}] {msg}", kwargs


class PipelineRunner:
    """Processes at most one queue item per run_once() call.

    Collaborators are built from settings unless injected.

    Args:
        settings: Validated run settings.
        store: Queue store (opened from settings.db_path when omitted).
        downloader: Source downloader.
        transcoder: ffmpeg driver.
        publisher: Instagram client.
    """

    def __init__(
        self,
        settings: RunSettings,
        store: Optional[QueueStore] = None,
        downloader: Optional[MediaDownloader] = None,
        transcoder: Optional[Transcoder] = None,
        publisher: Optional[InstagramClient] = None,
    ):
        self.settings = settings
        self.downloads_dir = Path(settings.downloads_dir)
        self._store = store
        self._owns_store = store is None
        self.downloader = downloader or MediaDownloader(
            self.downloads_dir,
            tiktok=TikTokDownloader(self.downloads_dir),
            twitter=TwitterDownloader(self.downloads_dir, ytdlp_path=settings.ytdlp_path),
        )
        self.transcoder = transcoder or Transcoder(settings.transcode_options())
        self.publisher = publisher or InstagramClient(
            settings.instagram_config(), progress_callback=self._on_publish_progress
        )
        self.log = AccountLogger(_logger, {"account": settings.account_name})
        self.stage = RunStage.IDLE

    @property
    def store(self) -> QueueStore:
        if self._store is None:
            if self.settings.db_path is None:
                raise StoreError("No queue database configured (DB_PATH)")
            self._store = QueueStore(self.settings.db_path)
        return self._store

    def close(self) -> None:
        if self._owns_store and self._store is not None:
            self._store.close()
            self._store = None

    def public_url(self, filename: str) -> str:
        """URL under which Instagram fetches a rendered file."""
        return f"{self.settings.public_base_url}/{DOWNLOADS_DIR_NAME}/{filename}"

    async def run_once(self) -> RunResult:
        """Claim the next item and take it as far as it goes.

        Returns:
            RunResult: success, empty (no unposted item left), or failed with
            the stage and reason. An unposted item held by another run's lease
            is a failure, not an empty queue.
        """
        self.stage = RunStage.IDLE
        try:
            item = self.store.claim_next(self.settings.claim_lease_seconds)
        except StoreError as e:
            self.log.error(f"Error fetching unprocessed media: {e}")
            self.close()
            return RunResult.failed(RunStage.IDLE, str(e))

        if item is None:
            return self._nothing_claimed()

        self.log.info(
            f"Processing item {item.id} | {item.source.value} | {item.format_preset.value} | {item.url}"
        )
        try:
            return await self._process(item)
        except RelayError as e:
            self.log.error(f"Item {item.id} failed during {self.stage.value}: {e}")
            hint = e.hint if isinstance(e, InstagramAPIError) else None
            return RunResult.failed(self.stage, str(e), item_id=item.id, hint=hint)
        except Exception as e:
            self.log.exception(f"Item {item.id} failed unexpectedly during {self.stage.value}")
            return RunResult.failed(self.stage, f"{type(e).__name__}: {e}", item_id=item.id)
        finally:
            try:
                self.store.release(item.id)
            except StoreError as e:
                self.log.warning(f"Could not release lease on item {item.id}: {e}")
            self.close()

    def _nothing_claimed(self) -> RunResult:
        """Tell an empty queue apart from one whose next item is leased."""
        try:
            pending = self.store.select_next()
        except StoreError as e:
            self.log.error(f"Error fetching unprocessed media: {e}")
            return RunResult.failed(RunStage.IDLE, str(e))
        finally:
            self.close()

        if pending is not None:
            reason = f"item {pending.id} is leased by another run"
            self.log.warning(f"Nothing claimed: {reason}")
            return RunResult.failed(RunStage.IDLE, reason)

        self.log.info("No unprocessed media found.")
        return RunResult.empty()

    async def _process(self, item: QueueItem) -> RunResult:
        self.stage = RunStage.FETCHING
        video_path, source_caption = await self._fetch(item)

        self.store.mark_downloaded(item.id, video_path.name)
        self.stage = RunStage.FETCHED
        self.log.info(f"Media {item.id} marked as downloaded.")

        self.stage = RunStage.TRANSCODING
        transcoded_path = video_path.with_name(f"{TRANSCODED_PREFIX}{video_path.name}")
        caption_inputs = CaptionInputs(
            strategy=item.caption_strategy,
            custom=item.caption_custom,
            source_text=source_caption,
            fallback=self.settings.caption,
        )
        await self.transcoder.transcode(
            video_path,
            transcoded_path,
            item.format_preset,
            logo_path=self.settings.logo_path if item.logo_requested else None,
            caption_inputs=caption_inputs,
            logo_requested=item.logo_requested,
        )
        self.stage = RunStage.TRANSCODED

        caption = resolve_caption_text(
            caption_inputs.strategy,
            caption_inputs.custom,
            caption_inputs.source_text,
            caption_inputs.fallback,
        )

        self.stage = RunStage.PUBLISHING
        video_url = self.public_url(transcoded_path.name)
        self.log.info(f"Publishing {video_url}")
        result = await self.publisher.publish_reel(video_url, caption)
        self.log.info(f"Instagram upload complete. Media ID: {result.media_id}")

        current = self.store.get(item.id)
        if current is None or not current.downloaded:
            raise StoreError(f"Refusing to mark item {item.id} posted before it was downloaded")
        self.store.mark_posted(item.id)
        self.log.info(f"Media {item.id} marked as posted.")

        self._cleanup(video_path, transcoded_path, source_caption_path(video_path))
        self.stage = RunStage.DONE
        return RunResult.success(item.id, media_id=result.media_id)

    async def _fetch(self, item: QueueItem) -> tuple[Path, str]:
        """Download the item, or reuse a file kept from an earlier run."""
        if item.downloaded and item.filename:
            existing = self.downloads_dir / item.filename
            if existing.is_file():
                sidecar = source_caption_path(existing)
                caption = sidecar.read_text(encoding="utf-8") if sidecar.is_file() else ""
                self.log.info(f"Reusing downloaded file {existing.name}")
                return existing, caption
            self.log.info(f"Downloaded file {item.filename} is gone, fetching again")

        basename = artifact_basename(self.settings.account_name, item.id)
        download = await self.downloader.download(item.source, item.url, basename)
        video_path = Path(download.video_path)
        if not video_path.is_file():
            raise FetchError(f"Downloaded file not found at expected path: {video_path}")

        if download.caption:
            try:
                source_caption_path(video_path).write_text(download.caption, encoding="utf-8")
            except OSError as e:
                self.log.warning(f"Could not save source caption: {e}")
        self.log.info(f"Saved: {video_path}")
        return video_path, download.caption

    async def _on_publish_progress(self, progress: InstagramProgress) -> None:
        self.log.info(f"Instagram: {progress.current_step} ({progress.progress_percent:.0f}%)")

    def _cleanup(self, *paths: Path) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                self.log.warning(f"Could not delete {path.name}: {e}")
