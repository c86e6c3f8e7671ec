"""
Bounded hand-off channels between the event dispatcher and its consumers.

The dispatcher is the only reader of mpv's event stream and mpv stalls when
that stream is not drained, so every send here is non-blocking. Two send
policies exist:

- try_send: drop the new item when the channel is full (coalescing signals)
- push: drop the oldest item when the channel is full (ring buffer, latest wins)

Receivers may block. Once closed, a channel drains its remaining items and
then returns CLOSED.
"""

import threading
from collections import deque
from typing import Any, Deque, Optional

# Upper bound on loads whose slot id may be pending at once. The add-media
# limiter admits a handful of concurrent requests, each of which can queue a
# whole API playlist, so this is sized for a large playlist in flight.
MAX_INFLIGHT_LOADS = 100

CLOSED = object()
EMPTY = object()


class Channel:
    """Fixed-capacity FIFO with explicit try-send/try-receive semantics."""

    def __init__(self, capacity: int, name: str = "channel"):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.name = name
        self._items: Deque[Any] = deque()
        self._closed = False
        self._cond = threading.Condition()

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def try_send(self, item: Any) -> bool:
        """Send item unless the channel is full or closed.

        Returns:
            True if the item was queued
        """
        with self._cond:
            if self._closed or len(self._items) >= self.capacity:
                return False
            self._items.append(item)
            self._cond.notify()
            return True

    def push(self, item: Any) -> bool:
        """Send item, evicting the oldest queued item if the channel is full.

        Returns:
            False only if the channel is closed
        """
        with self._cond:
            if self._closed:
                return False
            while len(self._items) >= self.capacity:
                self._items.popleft()
            self._items.append(item)
            self._cond.notify()
            return True

    def try_receive(self) -> Any:
        """Return the next item, EMPTY if none is queued, or CLOSED."""
        with self._cond:
            if self._items:
                return self._items.popleft()
            return CLOSED if self._closed else EMPTY

    def receive(self, timeout: Optional[float] = None) -> Any:
        """Block until an item arrives.

        Returns:
            The item, CLOSED once the channel is closed and drained, or EMPTY
            if the timeout expired
        """
        with self._cond:
            if not self._cond.wait_for(
                lambda: self._items or self._closed, timeout=timeout
            ):
                return EMPTY
            if self._items:
                return self._items.popleft()
            return CLOSED

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()
