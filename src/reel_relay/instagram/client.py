"""Instagram Graph API client for publishing Reels."""

import asyncio
import logging
import re
import unicodedata
from datetime import datetime
from typing import Awaitable, Callable

import httpx

from reel_relay.constants import (
    GRAPH_API_BASE_URL,
    INSTAGRAM_CAPTION_MAX_LENGTH,
    TIMEOUT_HTTP,
    ContainerStatus,
    InstagramPostStatus,
)
from reel_relay.errors import PublishError, PublishTimeoutError

from .models import InstagramConfig, InstagramProgress, InstagramPublishResult

# File-only logger, handlers attached by cli.app.setup_logging()
_api_logger = logging.getLogger("instagram_api")
_api_logger.propagate = False

_CHAR_REPLACEMENTS = {
    "\N{NO-BREAK SPACE}": " ",
    "\N{ZERO WIDTH SPACE}": "",
    "\N{ZERO WIDTH NON-JOINER}": "",
    "\N{ZERO WIDTH NO-BREAK SPACE}": "",  # BOM
    "\N{SOFT HYPHEN}": "",
    "\N{LINE SEPARATOR}": "\n",
    "\N{PARAGRAPH SEPARATOR}": "\n",
}


def _sanitize_caption(caption: str | None) -> str:
    """Clean a caption for the Graph API.

    NFC-normalizes, drops control characters other than newline and tab,
    and truncates to the caption limit. Emojis are kept.
    """
    if not caption:
        return ""

    caption = unicodedata.normalize('NFC', caption)
    for old, new in _CHAR_REPLACEMENTS.items():
        caption = caption.replace(old, new)

    cleaned = []
    for char in caption:
        if char in '\n\t':
            cleaned.append(char)
        elif unicodedata.category(char) == 'Cc':
            continue
        else:
            cleaned.append(char)

    return ''.join(cleaned).strip()[:INSTAGRAM_CAPTION_MAX_LENGTH]


class InstagramAPIError(PublishError):
    """Error payload, transport failure or unreadable response from the Graph API.

    ``hint`` tells the operator what to do about a known error code.
    """

    def __init__(
        self,
        message: str,
        error_code: int | None = None,
        error_subcode: int | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.error_subcode = error_subcode
        self.status_code = status_code
        self.hint = error_hint(error_code, error_subcode)


# Graph API error codes seen when publishing Reels
_ERROR_HINTS = {
    4: "App rate limit reached. Later runs will retry the item.",
    9: "App rate limit reached. Later runs will retry the item.",
    10: "The app lacks publishing permission. Check the Instagram app setup.",
    17: "Too many requests for this account. Later runs will retry the item.",
    100: "A request parameter was rejected. Check IG_USER_ID and the video URL.",
    190: "The access token is invalid or expired. Update IG_ACCESS_TOKEN.",
    2207001: "Unsupported media. Reels must be H.264/AAC MP4.",
    2207004: "Instagram could not fetch the video. Check that PUBLIC_BASE_URL serves the downloads folder.",
    2207026: "Instagram was still processing the video. Later runs will retry the item.",
    2207032: "Instagram failed to process the upload. This is usually temporary.",
    2207076: "The video is too short or too long for a Reel.",
}

# Checked before the main code
_SUBCODE_HINTS = {
    2207069: "The account hit Instagram's daily posting limit, which resets at midnight UTC.",
}


def error_hint(error_code: int | None, error_subcode: int | None = None) -> str | None:
    """Operator guidance for a Graph API error, None when the code is unknown."""
    if error_subcode in _SUBCODE_HINTS:
        return _SUBCODE_HINTS[error_subcode]
    return _ERROR_HINTS.get(error_code)


class InstagramClient:
    """Instagram Graph API client for publishing Reels.

    Container-based publishing workflow:
    1. Create a REELS container pointing at a public video URL
    2. Poll the container until Instagram finishes processing it
    3. Publish the container

    API Reference:
    https://developers.facebook.com/docs/instagram-platform/instagram-graph-api/content-publishing
    """

    def __init__(
        self,
        config: InstagramConfig,
        progress_callback: Callable[[InstagramProgress], Awaitable[None]] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Instagram client.

        Args:
            config: Instagram API configuration
            progress_callback: Async callback for progress updates
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.config = config
        self.progress_callback = progress_callback
        self.base_url = f"{GRAPH_API_BASE_URL}/{config.api_version}"
        self._transport = transport

        self._progress = InstagramProgress()
        self._api_call_count = 0

    async def _report_progress(
        self,
        status: InstagramPostStatus,
        step: str,
        percent: float = 0.0,
    ) -> None:
        """Update and report progress."""
        self._progress.status = status
        self._progress.current_step = step
        self._progress.progress_percent = percent
        if self.progress_callback:
            await self.progress_callback(self._progress)

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
    ) -> dict:
        """Make a request to the Instagram Graph API.

        Args:
            method: HTTP method (GET, POST)
            endpoint: API endpoint (without base URL)
            params: Query parameters

        Returns:
            JSON response as dict

        Raises:
            InstagramAPIError: Error payload, transport failure or non-JSON body
        """
        self._api_call_count += 1
        url = f"{self.base_url}/{endpoint}"

        if params is None:
            params = {}
        params["access_token"] = self.config.access_token

        # Log the API call (without token)
        log_params = {k: v for k, v in params.items() if k != "access_token"}
        _api_logger.info(f"API CALL #{self._api_call_count} | {method} {endpoint} | params: {log_params}")

        try:
            async with httpx.AsyncClient(timeout=TIMEOUT_HTTP, transport=self._transport) as client:
                if method.upper() == "GET":
                    response = await client.get(url, params=params)
                elif method.upper() == "POST":
                    response = await client.post(url, params=params)
                else:
                    raise ValueError(f"Unsupported HTTP method: {method}")
        except httpx.HTTPError as e:
            _api_logger.error(f"API CALL #{self._api_call_count} | TRANSPORT ERROR: {type(e).__name__}")
            raise InstagramAPIError(f"Request to Graph API failed: {type(e).__name__}") from e

        try:
            result = response.json()
        except ValueError as e:
            _api_logger.error(
                f"API CALL #{self._api_call_count} | NON-JSON RESPONSE (HTTP {response.status_code})"
            )
            raise InstagramAPIError(
                f"Graph API returned a non-JSON response (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

        if not isinstance(result, dict):
            raise InstagramAPIError(
                f"Unexpected Graph API response: {result!r}",
                status_code=response.status_code,
            )

        if "error" in result:
            _api_logger.error(f"API CALL #{self._api_call_count} | ERROR: {result['error']}")
            error = result["error"] if isinstance(result["error"], dict) else {}
            error_code = error.get("code")
            error_subcode = error.get("error_subcode")
            raise InstagramAPIError(
                message=error.get("message", "Unknown API error"),
                error_code=error_code,
                error_subcode=error_subcode,
                status_code=response.status_code,
            )

        if response.status_code >= 400:
            _api_logger.error(f"API CALL #{self._api_call_count} | HTTP {response.status_code}")
            raise InstagramAPIError(
                f"Graph API returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        _api_logger.info(f"API CALL #{self._api_call_count} | SUCCESS: {list(result.keys())}")
        return result

    @staticmethod
    def _require_id(result: dict, what: str) -> str:
        media_id = result.get("id")
        if not media_id:
            raise InstagramAPIError(f"{what} response has no id: {result!r}")
        return str(media_id)

    async def create_reel_container(self, video_url: str, caption: str) -> str:
        """Create a Reel container for publishing.

        Args:
            video_url: Public URL of the rendered MP4
            caption: Post caption, sanitized and truncated here

        Returns:
            Container ID (creation_id)
        """
        endpoint = f"{self.config.instagram_user_id}/media"
        params = {
            "media_type": "REELS",
            "video_url": video_url,
            "caption": _sanitize_caption(caption),
        }

        result = await self._make_request("POST", endpoint, params=params)
        return self._require_id(result, "Container creation")

    async def check_container_status(self, container_id: str) -> dict:
        """Check if a container is ready for publishing.

        Returns:
            Dict with status_code and status fields
        """
        params = {"fields": "status_code,status"}
        return await self._make_request("GET", container_id, params=params)

    async def wait_for_container(
        self,
        container_id: str,
        max_attempts: int | None = None,
        interval_seconds: float | None = None,
    ) -> int:
        """Poll a container until it is ready for publishing.

        Args:
            container_id: The container ID to wait for
            max_attempts: Status checks before giving up
            interval_seconds: Sleep between status checks

        Returns:
            Number of status checks made.

        Raises:
            InstagramAPIError: Container processing failed or expired
            PublishTimeoutError: Still processing after max_attempts checks
        """
        if max_attempts is None:
            max_attempts = self.config.poll_max_attempts
        if interval_seconds is None:
            interval_seconds = self.config.poll_interval_seconds

        for attempt in range(1, max_attempts + 1):
            status = await self.check_container_status(container_id)
            status_code = str(status.get("status_code") or "").upper()
            self._progress.poll_attempts = attempt
            _api_logger.info(f"Container {container_id} status {status_code or '?'} (check {attempt}/{max_attempts})")

            if status_code == ContainerStatus.FINISHED:
                return attempt
            if status_code == ContainerStatus.ERROR:
                status_msg = status.get("status") or "Unknown error"
                error_code = None
                match = re.search(r"error code (\d+)", status_msg, re.IGNORECASE)
                if match:
                    error_code = int(match.group(1))
                raise InstagramAPIError(
                    f"Container processing failed: {status_msg}",
                    error_code=error_code,
                )
            if status_code == ContainerStatus.EXPIRED:
                raise InstagramAPIError("Container expired before publishing")

            # No sleep after the final check

            if attempt < max_attempts:
                await asyncio.sleep(interval_seconds)

        raise PublishTimeoutError(
            f"Container {container_id} not ready after {max_attempts} status checks"
        )

    async def publish_container(self, creation_id: str) -> str:
        """Publish a container to Instagram.

        Returns:
            Media ID of the published Reel
        """
        endpoint = f"{self.config.instagram_user_id}/media_publish"
        params = {"creation_id": creation_id}

        result = await self._make_request("POST", endpoint, params=params)
        return self._require_id(result, "Publish")

    async def publish_reel(self, video_url: str, caption: str) -> InstagramPublishResult:
        """Publish a Reel to Instagram.

        Complete workflow:
        1. Create Reel container with video URL
        2. Grace period, then poll until processing finishes
        3. Publish the container

        Nothing is retried here; a failed run is picked up again by the next
        scheduled run.

        Returns:
            InstagramPublishResult for the published Reel

        Raises:
            PublishError: Any step failed (InstagramAPIError, PublishTimeoutError)
        """
        _api_logger.info(f"=== NEW SESSION === Instagram User ID: {self.config.instagram_user_id}")
        self._progress = InstagramProgress()

        try:
            await self._report_progress(
                InstagramPostStatus.CREATING_CONTAINER,
                "Creating Reel container on Instagram...",
                10.0,
            )
            container_id = await self.create_reel_container(video_url, caption)
            self._progress.container_id = container_id
            _api_logger.info(f"Reel container created: {container_id}")

            await self._report_progress(
                InstagramPostStatus.PROCESSING,
                "Waiting for Instagram to process video...",
                30.0,
            )
            await asyncio.sleep(self.config.grace_seconds)
            attempts = await self.wait_for_container(container_id)

            await self._report_progress(
                InstagramPostStatus.PUBLISHING,
                "Publishing Reel...",
                80.0,
            )
            media_id = await self.publish_container(container_id)
            _api_logger.info(f"Reel published! Media ID: {media_id}")
        except PublishError as e:
            self._progress.error = str(e)
            await self._report_progress(InstagramPostStatus.FAILED, f"Failed: {e}", self._progress.progress_percent)
            _api_logger.error(f"=== SESSION FAILED === {type(e).__name__}: {e}")
            raise

        await self._report_progress(
            InstagramPostStatus.PUBLISHED,
            "Reel published successfully!",
            100.0,
        )
        _api_logger.info(f"=== SESSION COMPLETE === Total API calls: {self._api_call_count}")

        return InstagramPublishResult(
            media_id=media_id,
            container_id=container_id,
            video_url=video_url,
            poll_attempts=attempts,
            published_at=datetime.now(),
        )
