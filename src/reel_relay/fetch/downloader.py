"""Source video downloaders.

TikTok clips are resolved through the tikwm API and streamed with httpx.
Twitter/X clips go through the yt-dlp binary. Both write
``<downloads_dir>/<basename>.<ext>`` and return the source caption.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urljoin, urlparse, urlunparse

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from reel_relay.constants import (
    FETCH_MAX_ATTEMPTS,
    SOURCE_CAPTION_SUFFIX,
    TIMEOUT_HTTP,
    TIMEOUT_VIDEO_DOWNLOAD,
    TIMEOUT_YTDLP,
    Source,
)
from reel_relay.errors import ConfigurationError, FetchError

logger = logging.getLogger("reel_relay.pipeline")

TIKWM_API_URL = "https://tikwm.com/api/"

_VIDEO_SUFFIXES = (".mp4", ".mov", ".webm", ".mkv", ".m4v")


@dataclass
class DownloadResult:
    """A downloaded clip and the caption its source carried."""

    video_path: Path
    caption: str = ""


def _is_transient(exc: BaseException) -> bool:
    """Network hiccups and 5xx responses are worth another try."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def normalize_twitter_url(url: str) -> str:
    """Rewrite x.com links to twitter.com, which yt-dlp resolves more reliably."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return url.replace("://x.com/", "://twitter.com/")
    host = (parsed.hostname or "").lower()
    if host in ("x.com", "www.x.com"):
        netloc = parsed.netloc.lower().replace("x.com", "twitter.com", 1)
        return urlunparse(parsed._replace(netloc=netloc))
    return url


def caption_from_title(title: Optional[str]) -> str:
    """yt-dlp titles tweets as '<author> - <text>'; keep the text."""
    full = (title or "").strip()
    _, sep, text = full.partition(" - ")
    return text.strip() if sep else full


def find_downloaded_file(directory: Path, basename: str) -> Optional[Path]:
    """Locate ``<basename>.<ext>`` written by yt-dlp, preferring mp4."""
    candidates = sorted(
        p for p in directory.glob(f"{basename}.*")
        if p.is_file()
        and not p.name.endswith(SOURCE_CAPTION_SUFFIX)
        and not p.name.endswith(".part")
    )
    for path in candidates:
        if path.suffix.lower() == ".mp4":
            return path
    for path in candidates:
        if path.suffix.lower() in _VIDEO_SUFFIXES:
            return path
    return candidates[0] if candidates else None


class BaseDownloader(ABC):
    """Downloads one clip from a source platform."""

    def __init__(self, downloads_dir: Union[str, Path]):
        self.downloads_dir = Path(downloads_dir)

    @abstractmethod
    async def download(self, url: str, basename: str) -> DownloadResult:
        """Download ``url`` into the downloads directory.

        Args:
            url: Source URL.
            basename: Output filename without extension.

        Raises:
            FetchError: Source unavailable or returned nothing usable.
        """
        pass


class TikTokDownloader(BaseDownloader):
    """TikTok downloads through the tikwm resolver."""

    def __init__(
        self,
        downloads_dir: Union[str, Path],
        api_url: str = TIKWM_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(downloads_dir)
        self.api_url = api_url
        self._transport = transport

    @retry(
        stop=stop_after_attempt(FETCH_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def _fetch_metadata(self, client: httpx.AsyncClient, url: str) -> dict:
        response = await client.get(self.api_url, params={"url": url, "hd": 1})
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise FetchError(f"Unexpected tikwm response: {payload!r}")
        return payload

    async def download(self, url: str, basename: str) -> DownloadResult:
        self.downloads_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.downloads_dir / f"{basename}.mp4"

        async with httpx.AsyncClient(
            timeout=TIMEOUT_HTTP,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                payload = await self._fetch_metadata(client, url)
            except (httpx.HTTPError, ValueError) as e:
                raise FetchError(f"TikTok lookup failed for {url}: {e}") from e

            data = payload.get("data") or {}
            play_url = data.get("play") if isinstance(data, dict) else None
            if not play_url:
                message = payload.get("msg") or "no play URL in response"
                raise FetchError(f"TikTok lookup failed for {url}: {message}")
            play_url = urljoin(self.api_url, play_url)
            caption = str(data.get("title") or "").strip()

            logger.info(f"Downloading TikTok clip -> {output_path.name}")
            try:
                async with client.stream(
                    "GET", play_url, timeout=TIMEOUT_VIDEO_DOWNLOAD
                ) as response:
                    response.raise_for_status()
                    with open(output_path, "wb") as f:
                        async for chunk in response.aiter_bytes(8192):
                            f.write(chunk)
            except (httpx.HTTPError, OSError) as e:
                output_path.unlink(missing_ok=True)
                raise FetchError(f"TikTok download failed for {url}: {e}") from e

        if output_path.stat().st_size == 0:
            output_path.unlink(missing_ok=True)
            raise FetchError(f"TikTok download for {url} was empty")

        return DownloadResult(video_path=output_path, caption=caption)


class TwitterDownloader(BaseDownloader):
    """Twitter/X downloads through yt-dlp."""

    def __init__(
        self,
        downloads_dir: Union[str, Path],
        ytdlp_path: str = "yt-dlp",
        timeout: float = TIMEOUT_YTDLP,
    ):
        super().__init__(downloads_dir)
        self.ytdlp_path = ytdlp_path
        self.timeout = timeout

    async def _run_ytdlp(self, args: list[str]) -> str:
        cmd = [self.ytdlp_path, *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ConfigurationError(f"yt-dlp not found: {self.ytdlp_path}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise FetchError(f"yt-dlp timed out after {self.timeout:.0f}s") from e

        if process.returncode != 0:
            error_msg = stderr.decode("utf-8", errors="replace") or stdout.decode("utf-8", errors="replace")
            error_tail = error_msg[-1000:] if len(error_msg) > 1000 else error_msg
            raise FetchError(f"yt-dlp exited with {process.returncode}: {error_tail.strip()}")
        return stdout.decode("utf-8", errors="replace")

    async def download(self, url: str, basename: str) -> DownloadResult:
        self.downloads_dir.mkdir(parents=True, exist_ok=True)
        url = normalize_twitter_url(url)

        raw_meta = await self._run_ytdlp(["-J", "--no-playlist", "--no-warnings", url])
        try:
            meta = json.loads(raw_meta)
        except ValueError:
            logger.warning(f"yt-dlp metadata for {url} was not JSON, continuing without caption")
            meta = {}
        caption = caption_from_title(meta.get("title") if isinstance(meta, dict) else None)

        template = str(self.downloads_dir / f"{basename}.%(ext)s")
        logger.info(f"yt-dlp downloading: {url}")
        await self._run_ytdlp([
            "-o", template,
            "--merge-output-format", "mp4",
            "--no-playlist",
            "--no-warnings",
            url,
        ])

        video_path = find_downloaded_file(self.downloads_dir, basename)
        if video_path is None:
            raise FetchError("yt-dlp finished but output not found")
        return DownloadResult(video_path=video_path, caption=caption)


class MediaDownloader:
    """Dispatches a queue item's URL to the downloader for its source."""

    def __init__(
        self,
        downloads_dir: Union[str, Path],
        tiktok: Optional[BaseDownloader] = None,
        twitter: Optional[BaseDownloader] = None,
    ):
        self.downloads_dir = Path(downloads_dir)
        self._downloaders: dict[Source, BaseDownloader] = {
            Source.TIKTOK: tiktok or TikTokDownloader(self.downloads_dir),
            Source.TWITTER: twitter or TwitterDownloader(self.downloads_dir),
        }

    async def download(self, source: Union[Source, str], url: str, basename: str) -> DownloadResult:
        try:
            downloader = self._downloaders[Source(source)]
        except (ValueError, KeyError) as e:
            raise FetchError(f"Unknown media source: {source}") from e
        return await downloader.download(url, basename)
