"""Reel Relay - repost short-form videos as Instagram Reels.

Fetches TikTok/Twitter videos listed in a per-account SQLite queue, reframes
them onto a 1080x1920 canvas with ffmpeg, and publishes them through the
Instagram Graph API.
"""

__version__ = "0.1.0"
