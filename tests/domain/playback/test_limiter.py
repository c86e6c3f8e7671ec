"""Tests for the add-media concurrency limiter."""

import threading

import pytest

from mpvtube.domain.playback.limiter import DEFAULT_ADD_MEDIA_LIMIT, AddMediaLimiter


class TestAddMediaLimiter:
    def test_default_limit(self) -> None:
        assert AddMediaLimiter().limit == DEFAULT_ADD_MEDIA_LIMIT == 2

    def test_rejects_zero_limit(self) -> None:
        with pytest.raises(ValueError):
            AddMediaLimiter(0)

    def test_request_beyond_limit_waits_for_release(self) -> None:
        """Test that the (limit+1)-th request blocks until a slot is released."""
        limiter = AddMediaLimiter(2)
        assert limiter.acquire()
        assert limiter.acquire()

        admitted = threading.Event()

        def third_request() -> None:
            limiter.acquire()
            admitted.set()

        worker = threading.Thread(target=third_request)
        worker.start()

        assert not admitted.wait(0.2)
        limiter.release()
        assert admitted.wait(2.0)
        worker.join(timeout=2.0)

    def test_acquire_timeout(self) -> None:
        limiter = AddMediaLimiter(1)
        limiter.acquire()
        assert limiter.acquire(timeout=0.05) is False

    def test_context_manager_releases_on_error(self) -> None:
        limiter = AddMediaLimiter(1)
        with pytest.raises(RuntimeError):
            with limiter:
                raise RuntimeError("load failed")
        assert limiter.acquire(timeout=0.05)
