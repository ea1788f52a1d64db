"""Tests for the reel-relay CLI commands."""

import pytest
from typer.testing import CliRunner

from reel_relay.cli import app
from reel_relay.cli.core.console import console
from reel_relay.constants import RunStage
from reel_relay.pipeline.results import RunResult
from reel_relay.queue.store import QueueStore

runner = CliRunner()

TIKTOK_URL = "https://www.tiktok.com/@someone/video/7300000000000000000"
TWEET_URL = "https://x.com/someone/status/1700000000000000000"


@pytest.fixture
def invoke(clean_env, monkeypatch, tmp_path):
    """Invoke the app with logs kept under tmp_path."""
    # Wide enough that long error messages are not wrapped mid-phrase
    monkeypatch.setattr(console, "width", 400)

    def _invoke(*args: str):
        return runner.invoke(app, ["--log-dir", str(tmp_path / "logs"), *args])

    return _invoke


@pytest.fixture
def account_env(clean_env, db_path):
    clean_env.setenv("DB_PATH", str(db_path))
    clean_env.setenv("IG_ACCESS_TOKEN", "secret-token")
    clean_env.setenv("IG_USER_ID", "1789")
    clean_env.setenv("PUBLIC_BASE_URL", "https://cdn.example.com")
    return clean_env


class TestQueueCommands:
    """init-db, add, queue, remove."""

    def test_init_db(self, invoke, db_path):
        result = invoke("init-db", str(db_path))

        assert result.exit_code == 0
        assert "Queue database ready" in result.output
        assert db_path.exists()

    def test_init_db_from_env(self, invoke, clean_env, db_path):
        clean_env.setenv("DB_PATH", str(db_path))
        result = invoke("init-db")

        assert result.exit_code == 0
        assert db_path.exists()

    def test_add(self, invoke, db_path):
        result = invoke("add", TIKTOK_URL, TWEET_URL, "--db", str(db_path))

        assert result.exit_code == 0
        assert "Added 2 item(s)" in result.output
        with QueueStore(db_path) as store:
            first, second = store.list_recent()[::-1]
        assert first.source.value == "tiktok"
        assert first.format_preset.value == "logo_only"
        assert second.source.value == "twitter"
        assert second.format_preset.value == "caption_top"

    def test_add_with_options(self, invoke, db_path):
        result = invoke(
            "add", TWEET_URL,
            "--db", str(db_path),
            "--preset", "raw",
            "--caption-strategy", "custom",
            "--caption", "My caption",
            "--no-logo",
        )

        assert result.exit_code == 0
        with QueueStore(db_path) as store:
            item = store.get(1)
        assert item.format_preset.value == "raw"
        assert item.caption_strategy.value == "custom"
        assert item.caption_custom == "My caption"
        assert item.logo_requested is False

    def test_add_explicit_source(self, invoke, db_path):
        result = invoke("add", "https://cdn.example.org/clip", "--db", str(db_path), "--source", "twitter")

        assert result.exit_code == 0
        with QueueStore(db_path) as store:
            assert store.get(1).source.value == "twitter"

    def test_add_rejects_whole_batch(self, invoke, db_path):
        result = invoke("add", TIKTOK_URL, "https://example.com/video.mp4", "--db", str(db_path))

        assert result.exit_code == 1
        assert "Could not detect source" in result.output
        with QueueStore(db_path) as store:
            assert store.counts()["total"] == 0

    def test_add_unknown_preset(self, invoke, db_path):
        result = invoke("add", TIKTOK_URL, "--db", str(db_path), "--preset", "sepia")

        assert result.exit_code == 1
        assert "Unknown preset" in result.output

    def test_queue_empty(self, invoke, db_path):
        result = invoke("queue", "--db", str(db_path))

        assert result.exit_code == 0
        assert "Queue is empty." in result.output
        assert "Nothing left to post." in result.output

    def test_queue_lists_items(self, invoke, db_path):
        invoke("add", TIKTOK_URL, "--db", str(db_path))
        result = invoke("queue", "--db", str(db_path))

        assert result.exit_code == 0
        assert "Media Queue" in result.output
        assert "Next up:" in result.output
        assert "Pending: 1" in result.output

    def test_remove(self, invoke, db_path):
        invoke("add", TIKTOK_URL, "--db", str(db_path))
        result = invoke("remove", "1", "--db", str(db_path))

        assert result.exit_code == 0
        assert "Removed item 1" in result.output
        with QueueStore(db_path) as store:
            assert store.get(1) is None

    def test_remove_missing(self, invoke, db_path):
        invoke("init-db", str(db_path))
        result = invoke("remove", "42", "--db", str(db_path))

        assert result.exit_code == 1
        assert "Item 42 not found" in result.output


class FakeRunner:
    """Stands in for PipelineRunner inside the run command."""

    result = RunResult.empty()
    settings = None

    def __init__(self, settings):
        FakeRunner.settings = settings

    async def run_once(self):
        return self.result


class TestRunCommand:
    """run exit codes."""

    def test_missing_settings(self, invoke):
        result = invoke("run")

        assert result.exit_code == 1
        assert "Missing required environment variables" in result.output
        assert "IG_ACCESS_TOKEN" in result.output

    def test_empty_queue_exit_code(self, invoke, account_env, monkeypatch):
        monkeypatch.setattr("reel_relay.cli.run.commands.PipelineRunner", FakeRunner)
        monkeypatch.setattr(FakeRunner, "result", RunResult.empty())

        result = invoke("run", "--account", "brand")

        assert result.exit_code == 99
        assert "No unprocessed media found." in result.output
        assert FakeRunner.settings.account_name == "brand"

    def test_success_exit_code(self, invoke, account_env, monkeypatch):
        monkeypatch.setattr("reel_relay.cli.run.commands.PipelineRunner", FakeRunner)
        monkeypatch.setattr(FakeRunner, "result", RunResult.success(3, media_id="media-9"))

        result = invoke("run")

        assert result.exit_code == 0
        assert "published" in result.output

    def test_failure_shows_hint(self, invoke, account_env, monkeypatch):
        monkeypatch.setattr("reel_relay.cli.run.commands.PipelineRunner", FakeRunner)
        monkeypatch.setattr(FakeRunner, "result", RunResult.failed(
            RunStage.PUBLISHING,
            "Invalid OAuth access token",
            item_id=4,
            hint="The access token is invalid or expired. Update IG_ACCESS_TOKEN.",
        ))

        result = invoke("run")

        assert result.exit_code == 1
        assert "Item #4 failed during publishing" in result.output
        assert "Update IG_ACCESS_TOKEN." in result.output

    def test_leased_item_exit_code(self, invoke, account_env, monkeypatch):
        monkeypatch.setattr("reel_relay.cli.run.commands.PipelineRunner", FakeRunner)
        monkeypatch.setattr(
            FakeRunner, "result", RunResult.failed(RunStage.IDLE, "item 2 is leased by another run")
        )

        result = invoke("run")

        assert result.exit_code == 1
        assert "item 2 is leased by another run" in result.output

    def test_env_file(self, invoke, clean_env, monkeypatch, tmp_path, db_path):
        env_file = tmp_path / "brand.env"
        env_file.write_text(
            f"DB_PATH={db_path}\n"
            "IG_ACCESS_TOKEN=file-token\n"
            "IG_USER_ID=555\n"
            "PUBLIC_BASE_URL=https://files.example.com\n"
            "ACCOUNT_NAME=brand\n"
        )
        # Registered with monkeypatch so the values loaded below are undone
        for name in ["DB_PATH", "IG_ACCESS_TOKEN", "IG_USER_ID", "PUBLIC_BASE_URL", "ACCOUNT_NAME"]:
            clean_env.setenv(name, "placeholder")
        monkeypatch.setattr("reel_relay.cli.run.commands.PipelineRunner", FakeRunner)
        monkeypatch.setattr(FakeRunner, "result", RunResult.empty())

        result = invoke("run", "--env-file", str(env_file))

        assert result.exit_code == 99
        assert FakeRunner.settings.ig_user_id == "555"
        assert FakeRunner.settings.account_name == "brand"
