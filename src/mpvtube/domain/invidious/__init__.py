"""Invidious video API client."""

from .client import InvidiousClient, extract_media_id, format_length
from .exceptions import (
    APIRateLimitError,
    InvalidMediaURLError,
    InvidiousError,
    VideoUnavailableError,
)
from .models import MediaItem, PlaylistData, VideoData

__all__ = [
    "InvidiousClient",
    "extract_media_id",
    "format_length",
    "InvidiousError",
    "InvalidMediaURLError",
    "APIRateLimitError",
    "VideoUnavailableError",
    "MediaItem",
    "PlaylistData",
    "VideoData",
]
