"""
Player UI state.

Owns the shown/hidden state of the player, turns mpv notifications into
messages, and renders the info panel for the playing entry. Playback status
lines come from the progress supervisor, which calls render() on every
refresh.
"""

import os
import threading
from typing import Optional

from loguru import logger

from ..domain.invidious.exceptions import InvidiousError
from ..domain.invidious.models import MediaItem, VideoData
from ..domain.playback import controls
from ..domain.playback.channels import CLOSED, Channel
from ..domain.playback.errors import PlayerError, RateLimitExceeded
from ..domain.playback.media import MediaLoader
from ..domain.playback.playlist import hostname, load_playlist, save_playlist
from ..domain.playback.progress import ProgressSnapshot, ProgressSupervisor
from ..domain.playback.session import MpvSession
from ..notifications import notify_error, notify_success
from .renderer import Renderer


def format_number(number: int) -> str:
    """Abbreviate a count: 950 -> "950", 1234 -> "1.2K", 3_400_000 -> "3.4M"."""
    for threshold, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if number >= threshold:
            text = f"{number / threshold:.1f}".rstrip("0").rstrip(".")
            return f"{text}{suffix}"
    return str(number)


def format_video_info(video: VideoData) -> str:
    lines = [""]
    if video.author:
        lines += [video.author, ""]
    if video.published_text:
        lines.append(f"Uploaded {video.published_text}")
    lines.append(
        f"{format_number(video.view_count)} views / "
        f"{format_number(video.like_count)} likes / "
        f"{video.sub_count_text} subscribers"
    )
    lines.append("")
    lines.append(video.description)
    return "\n".join(lines)


class Player:
    def __init__(
        self,
        session: MpvSession,
        renderer: Renderer,
        loader: MediaLoader,
        instance: str = "",
        refresh_interval: float = 1.0,
    ):
        self.session = session
        self.renderer = renderer
        self.loader = loader
        self.store = loader.store
        self.api_host = hostname(instance) if instance else ""
        self.supervisor = ProgressSupervisor(
            session, self.render, self.hide, renderer.width, refresh_interval
        )

        self._playing = False
        self._playing_lock = threading.Lock()
        self._current_id = ""
        self._states: list[str] = []
        self._states_lock = threading.Lock()
        self._watchers: list[threading.Thread] = []

    def start(self) -> None:
        """Start the progress supervisor and the notification consumers."""
        self.supervisor.start()
        events = self.session.events
        for name, channel, handler in (
            ("mpv-error-notifier", events.error_titles, self._on_error_title),
            ("mpv-file-loaded-notifier", events.file_loaded, self._on_file_loaded),
        ):
            thread = threading.Thread(
                target=self._consume, args=(channel, handler), name=name, daemon=True
            )
            thread.start()
            self._watchers.append(thread)

    def stop(self) -> None:
        self.supervisor.close()

    def join(self, timeout: Optional[float] = None) -> None:
        self.supervisor.join(timeout)
        for thread in self._watchers:
            thread.join(timeout)

    def _consume(self, channel: Channel, handler) -> None:
        while True:
            item = channel.receive()
            if item is CLOSED:
                return
            try:
                handler(item)
            except Exception:
                logger.exception(f"{channel.name} handler failed")

    def _on_error_title(self, title: str) -> None:
        message = f"Player: Unable to play {title}"
        self.renderer.show_error(message)
        notify_error(message)

    def _on_file_loaded(self, _loaded: bool) -> None:
        self.show()
        self.refresh()

    def is_playing(self) -> bool:
        with self._playing_lock:
            return self._playing

    def _set_playing(self, playing: bool) -> bool:
        """Set the playing flag; return False if it already had that value."""
        with self._playing_lock:
            if self._playing == playing:
                return False
            self._playing = playing
            return True

    def show(self) -> None:
        if not self._set_playing(True):
            return
        self.supervisor.send_playing_status(True)
        self.renderer.show_player()

    def hide(self) -> None:
        """Hide the player, stopping playback and clearing the queue."""
        if not self._set_playing(False):
            return
        self.supervisor.send_playing_status(False)
        self.renderer.hide_player()

        controls.stop(self.session)
        controls.queue_clear(self.session)

    def refresh(self) -> None:
        self.supervisor.refresh()

    def states(self) -> list[str]:
        with self._states_lock:
            return list(self._states)

    def render(self, snapshot: Optional[ProgressSnapshot]) -> None:
        """Draw one progress refresh; None clears the player."""
        if snapshot is None:
            with self._states_lock:
                self._states = []
            self._current_id = ""
            self.renderer.render_progress("", "")
            return

        with self._states_lock:
            self._states = list(snapshot.states)
        self.renderer.render_progress(snapshot.title, snapshot.progress)
        self.render_info(snapshot.data)

    def render_info(self, data: dict[str, str]) -> None:
        """Render the info panel for the entry described by data, once per entry."""
        video_id = data.get("id", "")
        if not video_id or video_id == self._current_id:
            return
        self._current_id = video_id

        video = self.store.get(video_id)
        if video is None:
            return

        self.renderer.render_info(format_video_info(video))
        threading.Thread(
            target=self._render_thumbnail, args=(video_id,), name="thumbnail", daemon=True
        ).start()

    def _render_thumbnail(self, video_id: str) -> None:
        try:
            data = self.loader.source.thumbnail(video_id)
        except InvidiousError as e:
            logger.warning(f"Thumbnail download failed for {video_id}: {e}")
            self.renderer.show_error("Player: Unable to download thumbnail")
            return
        self.renderer.render_image(data)

    def open_playlist(self, path: str, replace: bool = True) -> int:
        """Load a playlist file and show the player.

        Returns:
            Number of entries added, 0 if loading failed
        """
        name = os.path.basename(path)
        self.renderer.show_info(f"Loading {name}")

        try:
            added = load_playlist(
                self.session, path, replace, self.loader.renew_live_url, self.api_host
            )
        except PlayerError as e:
            logger.warning(f"Opening {path} failed: {e}")
            self.renderer.show_error(str(e))
            return 0

        self.show()
        self.renderer.show_info(f"Loaded {name}")
        return added

    def save_queue(self, path: str) -> int:
        """Write the queue to a playlist file.

        Returns:
            Number of entries written, 0 if saving failed
        """
        name = os.path.basename(path)
        try:
            saved = save_playlist(self.session, path)
        except PlayerError as e:
            logger.warning(f"Saving the queue to {path} failed: {e}")
            self.renderer.show_error(str(e))
            return 0
        except OSError as e:
            logger.warning(f"Saving the queue to {path} failed: {e}")
            self.renderer.show_error(f"Player: Unable to save {name}")
            return 0

        self.renderer.show_info(f"Saved {name}")
        notify_success(f"Saved {saved} entries to {name}")
        return saved

    def add_media(self, item: MediaItem, audio: bool, current: bool = False) -> threading.Thread:
        """Add a video or playlist in the background.

        Rate-limit failures are not shown; the limiter already spaces out
        requests and every queued request would repeat the same message.
        """

        def worker() -> None:
            self.renderer.show_info(f"Adding {item.title}")
            try:
                title = self.loader.load_selected(item, audio, current)
            except RateLimitExceeded:
                logger.debug(f"Rate-limited while adding {item.title}")
                return
            except PlayerError as e:
                self.renderer.show_error(str(e))
                return
            self.renderer.show_info(f"Added {title}")

        thread = threading.Thread(target=worker, name="add-media", daemon=True)
        thread.start()
        return thread
