"""
Invidious API client.

Fetches video and playlist metadata from an instance and builds the stream
URLs handed to mpv. Every URL carries a metadata query (id, title, length,
mediatype) so playlists saved from the queue can be replayed later.
"""

import re
import time
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urljoin, urlsplit

import requests
from loguru import logger

from .exceptions import (
    APIRateLimitError,
    InvalidMediaURLError,
    InvidiousError,
    VideoUnavailableError,
)
from .models import MediaKind, PlaylistData, VideoData

DEFAULT_TIMEOUT = 30

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")
PLAYLIST_PREFIXES = ("PL", "OLAK5uy_", "UU", "LL", "FL", "RD")


def format_length(seconds: int) -> str:
    """Format a video length for the metadata query (M:SS or H:MM:SS)."""
    hours, rest = divmod(max(int(seconds), 0), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def extract_media_id(text: str) -> tuple[str, MediaKind]:
    """Extract a video or playlist ID from a URL or a bare ID.

    Args:
        text: YouTube/Invidious URL (watch, youtu.be, playlist) or raw ID

    Returns:
        (id, "video" | "playlist")

    Raises:
        InvalidMediaURLError: If no ID can be found
    """
    text = text.strip()
    if not text:
        raise InvalidMediaURLError("Empty media URL")

    if "://" not in text:
        if VIDEO_ID_PATTERN.match(text):
            return text, "video"
        if text.startswith(PLAYLIST_PREFIXES):
            return text, "playlist"
        raise InvalidMediaURLError(f"Not a video or playlist ID: {text}")

    parts = urlsplit(text)
    query = parse_qs(parts.query)

    # A watch URL inside a playlist plays the video
    if "v" in query:
        return query["v"][0], "video"
    if "list" in query:
        return query["list"][0], "playlist"

    segments = [s for s in parts.path.split("/") if s]
    if parts.netloc.endswith("youtu.be") and segments:
        return segments[0], "video"
    if len(segments) >= 2 and segments[0] in ("shorts", "live", "embed"):
        return segments[1], "video"

    raise InvalidMediaURLError(f"Not a video or playlist URL: {text}")


class InvidiousClient:
    """Minimal client for one Invidious instance."""

    def __init__(self, instance: str, timeout: int = DEFAULT_TIMEOUT):
        if "://" not in instance:
            instance = "https://" + instance
        self.instance = instance.rstrip("/")
        self.timeout = timeout
        self.http = requests.Session()

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> requests.Response:
        url = f"{self.instance}{path}"
        try:
            response = self.http.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise InvidiousError(f"Request to {url} failed: {e}") from e

        if response.status_code == 429:
            raise APIRateLimitError("Rate-limit exceeded")
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise InvidiousError(f"{url} returned HTTP {response.status_code}") from e
        return response

    def _get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            data = self._get(path, params).json()
        except ValueError as e:
            raise InvidiousError(f"Invalid JSON from {path}") from e
        if not isinstance(data, dict):
            raise InvidiousError(f"Unexpected response from {path}")
        if data.get("error"):
            raise InvidiousError(str(data["error"]))
        return data

    def video(self, video_id: str, audio: bool) -> tuple[VideoData, list[str]]:
        """Fetch a video and the stream URLs to play it.

        Returns:
            (video, urls): one URL, or a video URL followed by its audio URL

        Raises:
            APIRateLimitError: If the instance rate-limits the request
            VideoUnavailableError: If no suitable stream exists
        """
        data = self._get_json(f"/api/v1/videos/{video_id}")
        video = VideoData.from_api(data)
        if not video.video_id:
            video = VideoData.from_api({**data, "videoId": video_id})

        urls = self.stream_urls(video, audio)
        logger.debug(f"Resolved {len(urls)} stream(s) for {video_id}")
        return video, urls

    def stream_urls(self, video: VideoData, audio: bool) -> list[str]:
        if video.live_now:
            if not video.hls_url:
                raise VideoUnavailableError(f"No live stream for {video.title}")
            urls = [urljoin(self.instance + "/", video.hls_url)]
        elif audio:
            best = self._best_format(video.adaptive_formats, "audio/", "bitrate")
            if best is None:
                raise VideoUnavailableError(f"No audio stream for {video.title}")
            urls = [self._latest_version(video.video_id, best)]
        elif video.format_streams:
            best = self._best_format(video.format_streams, "video/", "resolution")
            urls = [self._latest_version(video.video_id, best or video.format_streams[-1])]
        else:
            best_video = self._best_format(video.adaptive_formats, "video/", "resolution")
            best_audio = self._best_format(video.adaptive_formats, "audio/", "bitrate")
            if best_video is None or best_audio is None:
                raise VideoUnavailableError(f"No video stream for {video.title}")
            urls = [
                self._latest_version(video.video_id, best_video),
                self._latest_version(video.video_id, best_audio),
            ]

        separator = "&" if "?" in urls[0] else "?"
        urls[0] += separator + urlencode(self._metadata(video, audio))
        return urls

    def _metadata(self, video: VideoData, audio: bool) -> dict[str, str]:
        length = "Live" if video.live_now else format_length(video.length_seconds)
        return {
            "id": video.video_id,
            "title": video.title,
            "length": length,
            "mediatype": "Audio" if audio else "Video",
        }

    def _latest_version(self, video_id: str, fmt: dict[str, Any]) -> str:
        query = urlencode({"id": video_id, "itag": fmt.get("itag", ""), "local": "true"})
        return f"{self.instance}/latest_version?{query}"

    @staticmethod
    def _best_format(
        formats: list[dict[str, Any]], mime_prefix: str, rank_by: str
    ) -> Optional[dict[str, Any]]:
        candidates = [f for f in formats if str(f.get("type", "")).startswith(mime_prefix)]
        if not candidates:
            return None

        def rank(fmt: dict[str, Any]) -> int:
            digits = re.match(r"\d+", str(fmt.get(rank_by) or "0"))
            return int(digits.group()) if digits else 0

        return max(candidates, key=rank)

    def playlist(self, playlist_id: str) -> PlaylistData:
        data = self._get_json(f"/api/v1/playlists/{playlist_id}")
        playlist = PlaylistData.from_api(data)
        if not playlist.playlist_id:
            playlist = PlaylistData.from_api({**data, "playlistId": playlist_id})
        return playlist

    def thumbnail(self, video_id: str) -> bytes:
        return self._get(f"/vi/{video_id}/mqdefault.jpg").content

    def check_live_url(self, uri: str, audio: bool) -> tuple[str, bool]:
        """Report the video ID of a live stream URL and whether it expired.

        The expiry is read from an "expire" query field or an "/expire/<ts>/"
        path segment. A URL without a readable expiry counts as expired.
        """
        parts = urlsplit(uri)
        query = parse_qs(parts.query)
        video_id = query.get("id", [""])[0]

        expiry = query.get("expire", [""])[0]
        if not expiry:
            segments = parts.path.split("/")
            if "expire" in segments:
                index = segments.index("expire")
                if index + 1 < len(segments):
                    expiry = segments[index + 1]

        try:
            expires_at = int(expiry)
        except ValueError:
            expires_at = 0

        return video_id, time.time() > expires_at
