"""
Track monitor: attributes mpv playback errors to human-readable titles.

mpv assigns playlist_entry_id values asynchronously and reuses them, so a
load call cannot simply wait for "its" id. Instead the dispatcher queues each
id announced by start-file, and the next load to finish claims one of them.
Monitoring only improves error messages: when no id is waiting, the title is
left unmonitored rather than blocking the load path.
"""

import threading
from typing import Optional

from loguru import logger

from .channels import CLOSED, EMPTY
from .events import MpvEvents


class TrackMonitor:
    """Maps mpv slot ids to the titles that were loaded into them."""

    def __init__(self, events: MpvEvents):
        self.events = events
        self._titles: dict[int, str] = {}
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start draining the error-slot channel in the background."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="mpv-track-monitor", daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def add(self, title: str) -> bool:
        """Claim a pending slot id for title without blocking.

        Returns:
            True if the title is now monitored
        """
        slot = self.events.assigned_slots.try_receive()
        if slot is EMPTY or slot is CLOSED:
            return False

        with self._lock:
            self._titles[slot] = title
        return True

    def clear(self) -> None:
        """Forget every monitored slot (their ids are meaningless after a queue clear)."""
        with self._lock:
            self._titles = {}

    def pending(self) -> dict[int, str]:
        with self._lock:
            return dict(self._titles)

    def resolve(self, slot: int) -> Optional[str]:
        """Remove and return the title monitored for slot, if any."""
        with self._lock:
            return self._titles.pop(slot, None)

    def _run(self) -> None:
        while True:
            slot = self.events.error_slots.receive()
            if slot is CLOSED:
                break
            if slot is EMPTY:
                continue

            title = self.resolve(slot)
            if title is None:
                continue

            logger.info(f"Playback failed for: {title}")
            # Only the latest error matters to the UI
            self.events.error_titles.try_send(title)
