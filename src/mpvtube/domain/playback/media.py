"""
Adding API media to the mpv queue.

MediaLoader resolves videos and playlists through a VideoSource, remembers
their metadata in a VideoStore for the info panel, and appends the streams
through controls.load_file. Add-media requests go through the limiter.
"""

import threading
from typing import Callable, Optional, Protocol

from loguru import logger

from ..invidious.exceptions import APIRateLimitError, InvidiousError
from ..invidious.models import MediaItem, PlaylistData, VideoData
from . import controls
from .errors import LoadFailed, PlayerError, RateLimitExceeded
from .limiter import AddMediaLimiter
from .session import MpvSession


class VideoSource(Protocol):
    """Where video metadata and stream URLs come from."""

    def video(self, video_id: str, audio: bool) -> tuple[VideoData, list[str]]:
        ...

    def playlist(self, playlist_id: str) -> PlaylistData:
        ...

    def thumbnail(self, video_id: str) -> bytes:
        ...

    def check_live_url(self, uri: str, audio: bool) -> tuple[str, bool]:
        ...


class VideoStore:
    """Video metadata by ID, shared between loaders and the info panel."""

    def __init__(self):
        self._videos: dict[str, VideoData] = {}
        self._lock = threading.Lock()

    def get(self, video_id: str) -> Optional[VideoData]:
        with self._lock:
            return self._videos.get(video_id)

    def set(self, video_id: str, video: VideoData) -> None:
        with self._lock:
            self._videos[video_id] = video

    def __contains__(self, video_id: str) -> bool:
        with self._lock:
            return video_id in self._videos

    def __len__(self) -> int:
        with self._lock:
            return len(self._videos)


class MediaLoader:
    def __init__(
        self,
        session: MpvSession,
        source: VideoSource,
        limiter: AddMediaLimiter,
        store: Optional[VideoStore] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self.session = session
        self.source = source
        self.limiter = limiter
        self.store = store if store is not None else VideoStore()
        self.on_error = on_error

    def _fetch_video(self, video_id: str, audio: bool) -> tuple[VideoData, list[str]]:
        try:
            return self.source.video(video_id, audio)
        except APIRateLimitError as e:
            raise RateLimitExceeded() from e
        except InvidiousError as e:
            raise LoadFailed(video_id, e) from e

    def load_video(self, video_id: str, audio: bool) -> str:
        """Fetch one video and append it to the queue.

        Returns:
            The video title

        Raises:
            RateLimitExceeded: If the API rate-limited the fetch
            LoadFailed: If the fetch or the loadfile failed
        """
        video, urls = self._fetch_video(video_id, audio)
        self.store.set(video.video_id, video)

        # Only live audio needs the video track disabled; other audio URLs are audio-only
        controls.load_file(
            self.session,
            video.title,
            video.length_seconds,
            audio and video.live_now,
            *urls,
        )
        logger.info(f"Queued {video.title} ({video.video_id})")
        return video.title

    def load_playlist(self, playlist_id: str, audio: bool) -> str:
        """Fetch a playlist and append its videos in order.

        Videos that fail to load are skipped.

        Returns:
            The playlist title

        Raises:
            RateLimitExceeded: If the API rate-limited the playlist fetch
            LoadFailed: If the playlist cannot be fetched
        """
        try:
            playlist = self.source.playlist(playlist_id)
        except APIRateLimitError as e:
            raise RateLimitExceeded() from e
        except InvidiousError as e:
            raise LoadFailed(playlist_id, e) from e

        loaded = 0
        for video_id in playlist.video_ids:
            if self.session.exited():
                break
            try:
                self.load_video(video_id, audio)
                loaded += 1
            except PlayerError as e:
                logger.warning(f"Skipping {video_id} from playlist {playlist_id}: {e}")

        logger.info(f"Queued {loaded}/{len(playlist.video_ids)} videos from {playlist.title}")
        return playlist.title

    def load_selected(self, item: MediaItem, audio: bool, current: bool = False) -> str:
        """Add a selected video or playlist, holding an add-media slot.

        Args:
            item: Selected entry
            audio: Load audio-only streams
            current: Play a video right away instead of just queueing it

        Returns:
            The title of what was added

        Raises:
            RateLimitExceeded: If the API rate-limited the request
            LoadFailed: If loading failed
        """
        with self.limiter:
            if item.kind == "video" and item.video_id:
                title = self.load_video(item.video_id, audio)
                if current:
                    controls.queue_play_latest(self.session)
                return title

            if item.kind == "playlist" and item.playlist_id:
                return self.load_playlist(item.playlist_id, audio)

        raise LoadFailed(item.title)

    def renew_live_url(self, uri: str, audio: bool) -> bool:
        """Re-queue a live stream whose URL has expired.

        An expired URL is never loaded as is, even when fetching a fresh one
        fails; the failure goes to on_error.

        Returns:
            True if the URL had expired
        """
        video_id, expired = self.source.check_live_url(uri, audio)
        if not expired:
            return False

        try:
            if not video_id:
                raise LoadFailed(uri)
            self.load_video(video_id, audio)
        except PlayerError as e:
            logger.warning(f"Unable to renew live URL for {video_id or uri}: {e}")
            if self.on_error is not None:
                self.on_error(f"Player: Unable to renew live URL for video {video_id}")
        return True
