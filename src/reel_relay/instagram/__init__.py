"""Instagram Reel publishing via the Graph API."""

from .client import InstagramAPIError, InstagramClient, error_hint
from .models import InstagramConfig, InstagramProgress, InstagramPublishResult

__all__ = [
    "InstagramAPIError",
    "InstagramClient",
    "InstagramConfig",
    "InstagramProgress",
    "InstagramPublishResult",
    "error_hint",
]
