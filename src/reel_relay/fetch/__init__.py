"""Source platform downloaders."""

from .downloader import (
    BaseDownloader,
    DownloadResult,
    MediaDownloader,
    TikTokDownloader,
    TwitterDownloader,
    caption_from_title,
    find_downloaded_file,
    normalize_twitter_url,
)

__all__ = [
    "BaseDownloader",
    "DownloadResult",
    "MediaDownloader",
    "TikTokDownloader",
    "TwitterDownloader",
    "caption_from_title",
    "find_downloaded_file",
    "normalize_twitter_url",
]
