"""Tests for PipelineRunner.run_once().

Downloader and transcoder are fakes that write files; the publisher is the
real InstagramClient over an httpx.MockTransport.
"""

from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from reel_relay.constants import RunOutcome, RunStage
from reel_relay.errors import FetchError, TranscodeError
from reel_relay.fetch import DownloadResult
from reel_relay.instagram import InstagramClient, InstagramPublishResult
from reel_relay.pipeline import PipelineRunner, RunResult

TIKTOK_URL = "https://www.tiktok.com/@someone/video/7300000000000000000"
TWEET_URL = "https://x.com/someone/status/1700000000000000000"


class FakeDownloader:
    def __init__(self, downloads_dir: Path, caption: str = "source caption", error=None):
        self.downloads_dir = downloads_dir
        self.caption = caption
        self.error = error
        self.calls = []

    async def download(self, source, url, basename):
        self.calls.append((source, url, basename))
        if self.error:
            raise self.error
        path = self.downloads_dir / f"{basename}.mp4"
        path.write_bytes(b"original")
        return DownloadResult(video_path=path, caption=self.caption)


class FakeTranscoder:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def transcode(self, input_path, output_path, preset, logo_path=None,
                        caption_inputs=None, logo_requested=True):
        self.calls.append({
            "input": Path(input_path),
            "output": Path(output_path),
            "preset": preset,
            "logo_path": logo_path,
            "caption_inputs": caption_inputs,
        })
        if self.error:
            raise self.error
        Path(output_path).write_bytes(b"rendered")
        return Path(output_path)


class FakeGraphAPI:
    def __init__(self, container_status="FINISHED"):
        self.container_status = container_status
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/media"):
            return httpx.Response(200, json={"id": "container-1"})
        if request.url.path.endswith("/media_publish"):
            return httpx.Response(200, json={"id": "media-9"})
        return httpx.Response(200, json={"status_code": self.container_status, "status": ""})

    @property
    def published(self) -> bool:
        return any(r.url.path.endswith("/media_publish") for r in self.requests)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("reel_relay.instagram.client.asyncio.sleep", AsyncMock())


@pytest.fixture
def graph():
    return FakeGraphAPI()


@pytest.fixture
def downloader(downloads_dir):
    return FakeDownloader(downloads_dir)


@pytest.fixture
def transcoder():
    return FakeTranscoder()


def make_runner(settings, store, downloader, transcoder, graph):
    publisher = InstagramClient(
        settings.instagram_config(), transport=httpx.MockTransport(graph.handler)
    )
    return PipelineRunner(
        settings,
        store=store,
        downloader=downloader,
        transcoder=transcoder,
        publisher=publisher,
    )


class TestRunOnce:
    """Happy path and empty queue."""

    @pytest.mark.asyncio
    async def test_success(self, settings, store, downloader, transcoder, graph, downloads_dir):
        item_id = store.insert_one({"url": TWEET_URL})
        runner = make_runner(settings, store, downloader, transcoder, graph)

        result = await runner.run_once()

        assert result == RunResult.success(item_id, media_id="media-9")
        assert result.exit_code == 0

        item = store.get(item_id)
        assert item.downloaded is True
        assert item.posted is True
        assert item.filename == "acct_media_1.mp4"
        assert item.claimed_at is None

        create = graph.requests[0].url.params
        assert create["video_url"] == "https://cdn.example.com/downloads/transcoded_acct_media_1.mp4"
        assert create["caption"] == "Default caption"
        assert list(downloads_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_caption_from_source(self, settings, store, downloader, transcoder, graph):
        store.insert_one({"url": TWEET_URL, "caption_strategy": "from_source"})
        await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert transcoder.calls[0]["caption_inputs"].source_text == "source caption"
        assert graph.requests[0].url.params["caption"] == "source caption"

    @pytest.mark.asyncio
    async def test_logo_passed_only_when_requested(
        self, settings, store, downloader, transcoder, graph, tmp_path
    ):
        settings.logo_path = tmp_path / "logo.png"
        store.insert_many([{"url": TIKTOK_URL}, {"url": TIKTOK_URL + "2", "logo": False}])
        runner = make_runner(settings, store, downloader, transcoder, graph)

        await runner.run_once()
        await runner.run_once()

        assert transcoder.calls[0]["logo_path"] == tmp_path / "logo.png"
        assert transcoder.calls[1]["logo_path"] is None

    @pytest.mark.asyncio
    async def test_empty_queue(self, settings, store, downloader, transcoder, graph):
        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.outcome == RunOutcome.EMPTY
        assert result.exit_code == 99
        assert downloader.calls == []
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_posted_items_ignored(self, settings, store, downloader, transcoder, graph):
        item_id = store.insert_one({"url": TWEET_URL})
        store.mark_downloaded(item_id, "acct_media_1.mp4")
        store.mark_posted(item_id)

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()
        assert result.exit_code == 99

    @pytest.mark.asyncio
    async def test_leased_item_is_not_an_empty_queue(self, settings, store, downloader, transcoder, graph):
        item_id = store.insert_one({"url": TWEET_URL})
        store.claim_next(600)

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.outcome == RunOutcome.FAILED
        assert result.exit_code == 1
        assert result.stage == RunStage.IDLE
        assert result.reason == f"item {item_id} is leased by another run"
        assert downloader.calls == []
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_killed_run_leaves_lease(self, settings, store, downloader, transcoder, graph):
        # A run that died after download never released its lease
        item_id = store.insert_one({"url": TWEET_URL})
        store.claim_next(600)
        store.mark_downloaded(item_id, "acct_media_1.mp4")

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.exit_code == 1
        assert result.exit_code != 99
        assert "leased" in result.reason
        assert store.get(item_id).posted is False

    @pytest.mark.asyncio
    async def test_expired_lease_reclaimed(self, settings, store, downloader, transcoder, graph):
        item_id = store.insert_one({"url": TWEET_URL})
        store.claim_next(600)
        settings.claim_lease_seconds = 0

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result == RunResult.success(item_id, media_id="media-9")

    @pytest.mark.asyncio
    async def test_reuses_existing_download(
        self, settings, store, downloader, transcoder, graph, downloads_dir
    ):
        item_id = store.insert_one({"url": TWEET_URL, "caption_strategy": "from_source"})
        store.mark_downloaded(item_id, "acct_media_1.mp4")
        (downloads_dir / "acct_media_1.mp4").write_bytes(b"kept")
        (downloads_dir / "acct_media_1.caption.txt").write_text("kept caption", encoding="utf-8")

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.ok
        assert downloader.calls == []
        assert graph.requests[0].url.params["caption"] == "kept caption"
        assert list(downloads_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_downloads_again_when_file_gone(
        self, settings, store, downloader, transcoder, graph
    ):
        item_id = store.insert_one({"url": TWEET_URL})
        store.mark_downloaded(item_id, "acct_media_1.mp4")

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.ok
        assert len(downloader.calls) == 1


class TestFailures:
    """Failures stop the run and keep recorded progress."""

    @pytest.mark.asyncio
    async def test_poll_timeout(self, settings, store, downloader, transcoder, downloads_dir):
        graph = FakeGraphAPI(container_status="IN_PROGRESS")
        item_id = store.insert_one({"url": TWEET_URL})

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.outcome == RunOutcome.FAILED
        assert result.exit_code == 1
        assert result.stage == RunStage.PUBLISHING
        assert result.item_id == item_id
        assert not graph.published
        status_checks = [r for r in graph.requests if r.method == "GET"]
        assert len(status_checks) == 3

        item = store.get(item_id)
        assert item.downloaded is True
        assert item.posted is False
        assert item.claimed_at is None
        assert (downloads_dir / "acct_media_1.mp4").exists()

    @pytest.mark.asyncio
    async def test_retry_after_publish_failure(self, settings, store, downloader, transcoder):
        item_id = store.insert_one({"url": TWEET_URL})
        await make_runner(
            settings, store, downloader, transcoder, FakeGraphAPI("IN_PROGRESS")
        ).run_once()

        graph = FakeGraphAPI()
        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.ok
        assert len(downloader.calls) == 1
        assert store.get(item_id).posted is True

    @pytest.mark.asyncio
    async def test_fetch_failure(self, settings, store, transcoder, graph, downloads_dir):
        downloader = FakeDownloader(downloads_dir, error=FetchError("tikwm is down"))
        item_id = store.insert_one({"url": TIKTOK_URL})

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.stage == RunStage.FETCHING
        assert result.reason == "tikwm is down"
        assert store.get(item_id).downloaded is False
        assert transcoder.calls == []

    @pytest.mark.asyncio
    async def test_transcode_failure(self, settings, store, downloader, graph):
        transcoder = FakeTranscoder(error=TranscodeError("FFmpeg failed"))
        item_id = store.insert_one({"url": TWEET_URL})

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.stage == RunStage.TRANSCODING
        assert store.get(item_id).downloaded is True
        assert store.get(item_id).posted is False
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, settings, store, downloader, graph):
        transcoder = FakeTranscoder(error=RuntimeError("boom"))
        item_id = store.insert_one({"url": TWEET_URL})

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.outcome == RunOutcome.FAILED
        assert result.reason == "RuntimeError: boom"
        assert store.get(item_id).claimed_at is None

    @pytest.mark.asyncio
    async def test_downloader_returns_missing_file(self, settings, store, transcoder, graph, downloads_dir):
        class GhostDownloader:
            async def download(self, source, url, basename):
                return DownloadResult(video_path=downloads_dir / "ghost.mp4")

        store.insert_one({"url": TWEET_URL})
        result = await make_runner(settings, store, GhostDownloader(), transcoder, graph).run_once()

        assert result.stage == RunStage.FETCHING
        assert "not found" in result.reason

    @pytest.mark.asyncio
    async def test_row_reset_during_publish_not_marked_posted(
        self, settings, store, downloader, transcoder
    ):
        item_id = store.insert_one({"url": TWEET_URL})

        class ResettingPublisher:
            async def publish_reel(self, video_url, caption):
                with store.conn:
                    store.conn.execute(
                        "UPDATE media_queue SET downloaded = 0 WHERE id = ?", (item_id,)
                    )
                return InstagramPublishResult(
                    media_id="media-9", container_id="container-1", video_url=video_url
                )

        runner = PipelineRunner(
            settings,
            store=store,
            downloader=downloader,
            transcoder=transcoder,
            publisher=ResettingPublisher(),
        )
        result = await runner.run_once()

        assert result.outcome == RunOutcome.FAILED
        assert result.stage == RunStage.PUBLISHING
        assert "before it was downloaded" in result.reason
        assert store.get(item_id).posted is False

    @pytest.mark.asyncio
    async def test_publish_error_carries_hint(self, settings, store, downloader, transcoder):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "Invalid OAuth access token", "code": 190}})

        graph = FakeGraphAPI()
        graph.handler = handler
        store.insert_one({"url": TWEET_URL})

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()

        assert result.stage == RunStage.PUBLISHING
        assert result.reason == "Invalid OAuth access token"
        assert "IG_ACCESS_TOKEN" in result.hint

    @pytest.mark.asyncio
    async def test_other_failures_have_no_hint(self, settings, store, transcoder, graph, downloads_dir):
        downloader = FakeDownloader(downloads_dir, error=FetchError("tikwm is down"))
        store.insert_one({"url": TIKTOK_URL})

        result = await make_runner(settings, store, downloader, transcoder, graph).run_once()
        assert result.hint is None


class TestRunnerHelpers:
    def test_public_url(self, settings, store):
        runner = PipelineRunner(settings, store=store)
        assert runner.public_url("transcoded_acct_media_7.mp4") == (
            "https://cdn.example.com/downloads/transcoded_acct_media_7.mp4"
        )

    def test_owned_store_closed(self, settings):
        runner = PipelineRunner(settings)
        assert runner.store.counts()["total"] == 0
        runner.close()
        assert runner._store is None

    @pytest.mark.asyncio
    async def test_publish_progress_logged(
        self, settings, store, downloader, transcoder, graph, monkeypatch
    ):
        store.insert_one({"url": TWEET_URL})
        runner = PipelineRunner(settings, store=store, downloader=downloader, transcoder=transcoder)
        runner.publisher._transport = httpx.MockTransport(graph.handler)
        messages = []
        monkeypatch.setattr(runner.log, "info", lambda msg, *args, **kwargs: messages.append(msg))

        result = await runner.run_once()

        assert result.ok
        assert "Instagram: Creating Reel container on Instagram... (10%)" in messages
        assert "Instagram: Reel published successfully! (100%)" in messages
