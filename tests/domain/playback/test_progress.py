"""Tests for the progress status line and its refresh loop."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from mpvtube.domain.playback import controls
from mpvtube.domain.playback.errors import PlayerError
from mpvtube.domain.playback.progress import (
    CANCELLED,
    TICK,
    WAKE,
    EmptyQueue,
    PlaybackStatus,
    ProgressLoop,
    ProgressSupervisor,
    RefreshTimer,
    bar_fill,
    build_snapshot,
    format_duration,
    format_progress,
    query_status,
    url_data,
)


class TestFormatting:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "00:00"), (-5, "00:00"), (65, "01:05"), (3599, "59:59"), (3661, "01:01:01")],
    )
    def test_format_duration(self, seconds: int, expected: str) -> None:
        assert format_duration(seconds) == expected

    @pytest.mark.parametrize(
        "elapsed,duration,width,expected",
        [
            (30, 60, 10, 5),
            (0, 60, 10, 0),
            (-10, 60, 10, 0),
            (90, 60, 10, 10),
            (5, 0, 10, 10),
            (0, 0, 10, 0),
            (30, 60, 0, 0),
        ],
    )
    def test_bar_fill_is_clamped(self, elapsed, duration, width, expected) -> None:
        assert bar_fill(elapsed, duration, width) == expected

    def test_url_data(self) -> None:
        assert url_data("https://h/v?id=a&title=Song+A") == {"id": "a", "title": "Song A"}
        assert url_data("/local/file.mp3") == {}
        assert url_data("https://h/v") == {}

    def test_progress_line(self) -> None:
        status = PlaybackStatus(
            title="https://h/v?id=a&title=Song+A&length=2%3A00&mediatype=Audio",
            position=60,
            duration=120,
            volume=80,
            shuffled=True,
            loop=controls.LOOP_PLAYLIST,
        )

        snapshot = format_progress(status, width=20)

        assert snapshot.title == "Song A"
        assert snapshot.progress == "R-P S > 01:00 |█████     | 2:00 80% (Audio)"
        assert snapshot.states == ["volume 80", "shuffle", controls.LOOP_PLAYLIST]
        assert snapshot.data["id"] == "a"

    @pytest.mark.parametrize(
        "paused,finished,buffering,glyph",
        [
            (True, True, False, "[]"),
            (True, False, False, "||"),
            (False, False, True, "B"),
            (False, False, False, ">"),
        ],
    )
    def test_state_glyph(self, paused, finished, buffering, glyph) -> None:
        status = PlaybackStatus(
            title="plain",
            position=0,
            duration=10,
            volume=-1,
            paused=paused,
            finished=finished,
            buffering=buffering,
            media_type="Video",
        )
        snapshot = format_progress(status, width=4)
        assert snapshot.progress == f" {glyph} 00:00 |  | 00:10 0% (Video)"
        assert snapshot.states == ["volume 0"]

    def test_mute_flag(self) -> None:
        status = PlaybackStatus(title="t", position=0, duration=0, volume=10, muted=True)
        snapshot = format_progress(status, width=0)
        assert snapshot.progress.startswith(" M ")
        assert "mute" in snapshot.states


class TestQueryStatus:
    def test_empty_queue(self, fake_session) -> None:
        fake_session.properties["playlist-playing-pos"] = -1
        with pytest.raises(EmptyQueue):
            query_status(fake_session)

    def test_closed_session(self, fake_session) -> None:
        fake_session.closed = True
        with pytest.raises(PlayerError):
            query_status(fake_session)

    def test_snapshot_from_session(self, fake_session) -> None:
        fake_session.properties.update(
            {
                "playlist-playing-pos": 0,
                "playlist/0/filename": "https://h/v?id=a&title=T&mediatype=Video",
                "playback-time": 30.2,
                "duration": 60.0,
                "volume": 100.0,
                "pause": False,
                "paused-for-cache": False,
                "loop-file": "inf",
                "loop-playlist": "no",
            }
        )
        snapshot = build_snapshot(fake_session, 8)
        assert snapshot.title == "T"
        assert snapshot.progress == "R-F > 00:30 |██  | 01:00 100% (Video)"
        assert snapshot.states == ["volume 100", controls.LOOP_FILE]


class TestRefreshTimer:
    def test_tick(self) -> None:
        assert RefreshTimer(0.01).wait() == TICK

    def test_wake_returns_immediately(self) -> None:
        timer = RefreshTimer(10.0)
        timer.wake()
        assert timer.wait() == WAKE

    def test_wakes_coalesce(self) -> None:
        timer = RefreshTimer(0.05)
        timer.wake()
        timer.wake()
        assert timer.wait() == WAKE
        assert timer.wait() == TICK

    def test_wake_resets_deadline(self) -> None:
        """Test that a wake postpones the next tick by a full interval."""
        timer = RefreshTimer(0.3)
        time.sleep(0.2)
        timer.wake()
        assert timer.wait() == WAKE

        start = time.monotonic()
        assert timer.wait() == TICK
        assert time.monotonic() - start >= 0.25

    def test_cancel_wins(self) -> None:
        timer = RefreshTimer(10.0)
        timer.wake()
        timer.cancel()
        assert timer.wait() == CANCELLED
        assert timer.cancelled

    def test_cancel_from_other_thread(self) -> None:
        timer = RefreshTimer(10.0)
        threading.Timer(0.05, timer.cancel).start()
        assert timer.wait() == CANCELLED


@pytest.fixture
def playing_session(fake_session):
    fake_session.properties.update(
        {
            "playlist-playing-pos": 0,
            "playlist/0/filename": "https://h/v?id=a&title=T",
            "duration": 10.0,
            "volume": 50.0,
        }
    )
    return fake_session


class TestProgressLoop:
    def test_renders_until_queries_fail_then_hides(self, playing_session, wait_for) -> None:
        render = MagicMock()
        on_hide = MagicMock()
        loop = ProgressLoop(playing_session, render, on_hide, lambda: 10, interval=0.02)

        loop.start()
        assert wait_for(lambda: render.call_count >= 2)

        playing_session.properties["playlist-playing-pos"] = -1
        loop.join(timeout=2.0)

        on_hide.assert_called_once()
        assert render.call_args_list[-1].args == (None,)
        assert render.call_args_list[0].args[0].title == "T"

    def test_cancel_stops_loop(self, playing_session) -> None:
        render = MagicMock()
        loop = ProgressLoop(playing_session, render, MagicMock(), lambda: 10, interval=10.0)
        loop.start()
        loop.cancel()
        loop.join(timeout=2.0)
        assert not loop.running()


class TestProgressSupervisor:
    def test_start_and_stop_from_intents(self, playing_session, wait_for) -> None:
        render = MagicMock()
        on_hide = MagicMock()
        supervisor = ProgressSupervisor(playing_session, render, on_hide, lambda: 10, 0.05)
        supervisor.start()

        supervisor.send_playing_status(True)
        assert wait_for(lambda: supervisor.current_loop() is not None and render.called)
        loop = supervisor.current_loop()

        supervisor.send_playing_status(False)
        loop.join(timeout=2.0)
        on_hide.assert_called_once()

        supervisor.close()
        supervisor.join(timeout=2.0)

    def test_only_one_loop_runs(self, playing_session, wait_for) -> None:
        supervisor = ProgressSupervisor(playing_session, MagicMock(), MagicMock(), lambda: 10, 10.0)
        supervisor.start()

        supervisor.send_playing_status(True)
        assert wait_for(lambda: supervisor.current_loop() is not None)
        first = supervisor.current_loop()

        supervisor.send_playing_status(True)
        time.sleep(0.1)
        assert supervisor.current_loop() is first

        supervisor.close()
        supervisor.join(timeout=2.0)
        first.join(timeout=2.0)
        assert not first.running()

    def test_refresh_wakes_running_loop(self, playing_session, wait_for) -> None:
        render = MagicMock()
        supervisor = ProgressSupervisor(playing_session, render, MagicMock(), lambda: 10, 10.0)
        supervisor.start()
        supervisor.send_playing_status(True)
        assert wait_for(lambda: render.call_count == 1)

        supervisor.refresh()
        assert wait_for(lambda: render.call_count == 2)

        supervisor.close()
        supervisor.join(timeout=2.0)
