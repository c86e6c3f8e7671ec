"""Concurrency bound for add-media requests (load video / load playlist)."""

import threading
from typing import Optional

from loguru import logger

DEFAULT_ADD_MEDIA_LIMIT = 2


class AddMediaLimiter:
    """Weighted semaphore admitting at most `limit` concurrent add-media requests.

    Excess requests wait for a slot; none are dropped. Rapid multi-selection
    therefore turns into a steady trickle of API fetches and mpv loads.
    """

    def __init__(self, limit: int = DEFAULT_ADD_MEDIA_LIMIT):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._semaphore = threading.BoundedSemaphore(limit)

    def acquire(self, timeout: Optional[float] = None) -> bool:
        acquired = self._semaphore.acquire(timeout=timeout)
        if not acquired:
            logger.debug("Add-media slot not available before timeout")
        return acquired

    def release(self) -> None:
        self._semaphore.release()

    def __enter__(self) -> "AddMediaLimiter":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
