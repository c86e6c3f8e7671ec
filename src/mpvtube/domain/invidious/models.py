"""
Video API domain models.

The playback core treats these as opaque data; only the fields it displays
or passes to mpv are modelled.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

MediaKind = Literal["video", "playlist", "channel"]


@dataclass(frozen=True)
class VideoData:
    """Metadata for a single video."""

    video_id: str
    title: str
    author: str = ""
    length_seconds: int = 0
    live_now: bool = False
    view_count: int = 0
    like_count: int = 0
    sub_count_text: str = ""
    published_text: str = ""
    description: str = ""
    hls_url: str = ""
    adaptive_formats: list[dict[str, Any]] = field(default_factory=list)
    format_streams: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "VideoData":
        return cls(
            video_id=data.get("videoId", ""),
            title=data.get("title", ""),
            author=data.get("author", ""),
            length_seconds=int(data.get("lengthSeconds") or 0),
            live_now=bool(data.get("liveNow", False)),
            view_count=int(data.get("viewCount") or 0),
            like_count=int(data.get("likeCount") or 0),
            sub_count_text=data.get("subCountText", ""),
            published_text=data.get("publishedText", ""),
            description=data.get("description", ""),
            hls_url=data.get("hlsUrl") or "",
            adaptive_formats=list(data.get("adaptiveFormats") or []),
            format_streams=list(data.get("formatStreams") or []),
        )


@dataclass(frozen=True)
class PlaylistData:
    """A playlist: its title and the ordered IDs of its videos."""

    playlist_id: str
    title: str
    video_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PlaylistData":
        videos = data.get("videos") or []
        return cls(
            playlist_id=data.get("playlistId", ""),
            title=data.get("title", ""),
            video_ids=[v["videoId"] for v in videos if v.get("videoId")],
        )


@dataclass(frozen=True)
class MediaItem:
    """A selectable entry (search result, URL input) to add to the queue."""

    kind: MediaKind
    title: str
    video_id: Optional[str] = None
    playlist_id: Optional[str] = None
