"""
Event dispatcher: the single consumer of mpv's event stream.

Events are fanned out by type to dedicated channels. Nothing here ever waits
on a consumer, because mpv itself blocks when its event stream is not read.
"""

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from loguru import logger

from .channels import MAX_INFLIGHT_LOADS, Channel
from .errors import PlayerError, TypeMismatch
from .protocol import MpvEvent

if TYPE_CHECKING:
    from .session import MpvSession

# Observer id used for the "playlist" property subscription
PLAYLIST_OBSERVER_ID = 1


@dataclass
class MpvEvents:
    """Channels written by the dispatcher and read by its consumers.

    Attributes:
        playlist_data: Latest full playlist (list of property maps), latest wins
        assigned_slots: playlist_entry_id values from start-file, awaiting a title
        error_slots: playlist_entry_id values of entries that failed to play
        error_titles: Titles of failed entries, for user notification
        file_loaded: Coalesced "a file finished loading" signal
    """

    playlist_data: Channel = field(default_factory=lambda: Channel(1, "playlist-data"))
    assigned_slots: Channel = field(
        default_factory=lambda: Channel(MAX_INFLIGHT_LOADS, "assigned-slots")
    )
    error_slots: Channel = field(
        default_factory=lambda: Channel(MAX_INFLIGHT_LOADS, "error-slots")
    )
    error_titles: Channel = field(default_factory=lambda: Channel(1, "error-titles"))
    file_loaded: Channel = field(default_factory=lambda: Channel(1, "file-loaded"))

    def close(self) -> None:
        for channel in (
            self.playlist_data,
            self.assigned_slots,
            self.error_slots,
            self.error_titles,
            self.file_loaded,
        ):
            channel.close()


class EventDispatcher:
    """Reads the session's event stream on a background thread.

    The dispatcher owns the connection's final close: when the stream ends it
    closes the connection and every consumer channel.
    """

    def __init__(self, session: "MpvSession", events: MpvEvents):
        self.session = session
        self.events = events
        self._listener = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Subscribe to playlist changes and start the dispatch thread."""
        if self._thread is not None:
            return

        self._listener = self.session.connection.new_event_listener()
        try:
            self.session.call("observe_property", PLAYLIST_OBSERVER_ID, "playlist")
        except PlayerError as e:
            logger.warning(f"Could not observe mpv playlist: {e}")

        self._thread = threading.Thread(
            target=self._run, name="mpv-event-dispatcher", daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        try:
            while True:
                event = self._listener.get()
                if event is None:
                    break
                try:
                    self.dispatch(event)
                except Exception:
                    logger.exception(f"Failed to dispatch mpv event: {event.name}")
        finally:
            self.session.connection.close()
            self.events.close()
            logger.info("MPV event stream ended")

    def dispatch(self, event: MpvEvent) -> None:
        """Route one event to its channel."""
        if event.id == PLAYLIST_OBSERVER_ID and event.name == "property-change":
            self._on_playlist(event)
            return

        if event.name == "start-file":
            self._on_start_file(event)
        elif event.name == "end-file":
            self._on_end_file(event)
        elif event.name == "file-loaded":
            self.events.file_loaded.try_send(True)

    def _on_playlist(self, event: MpvEvent) -> None:
        try:
            entries = event.data.as_list()
        except TypeMismatch:
            return

        playlist: list[dict[str, Any]] = [e if isinstance(e, dict) else {} for e in entries]
        self.events.playlist_data.push(playlist)

    def _on_start_file(self, event: MpvEvent) -> None:
        # Cycling pause works around a stale frame when a stream starts
        try:
            self.session.set("pause", "yes")
            self.session.set("pause", "no")
        except PlayerError as e:
            logger.debug(f"Pause cycle on start-file failed: {e}")

        entry_id = event.extra_int("playlist_entry_id")
        if entry_id is not None:
            self.events.assigned_slots.push(entry_id)

    def _on_end_file(self, event: MpvEvent) -> None:
        file_error = event.extra.get("file_error")
        entry_id = event.extra_int("playlist_entry_id")
        if entry_id is None or not isinstance(file_error, str) or not file_error:
            return

        logger.warning(f"MPV entry {entry_id} failed: {file_error}")
        self.events.error_slots.push(entry_id)
