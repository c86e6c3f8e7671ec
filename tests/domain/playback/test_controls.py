"""Tests for queue and playback controls."""

from urllib.parse import parse_qs, urlsplit

import pytest

from mpvtube.domain.playback import controls
from mpvtube.domain.playback.errors import LoadFailed


class TestLoadFile:
    """Tests for appending streams."""

    def test_single_file(self, fake_session) -> None:
        controls.load_file(fake_session, "Song, A", 215, False, "https://h/latest_version?id=x")

        [(_, uri, mode, options)] = fake_session.loadfile_calls()
        assert mode == "append-play"
        assert options == "force-media-title=%7%Song, A,length=%3%215"
        assert parse_qs(urlsplit(uri).query)["options"] == [options]

    def test_audio_and_separate_audio_track(self, fake_session) -> None:
        controls.load_file(fake_session, "T", 0, True, "https://h/v?id=x", "https://h/a?id=x")

        options = fake_session.loadfile_calls()[0][3]
        assert "length=" not in options
        assert "vid=%2%no" in options
        assert "audio-file=%16%https://h/a?id=x" in options

    def test_load_claims_pending_slot(self, fake_session) -> None:
        fake_session.events.assigned_slots.push(7)
        controls.load_file(fake_session, "T", 0, False, "https://h/v?id=x")
        assert fake_session.monitor.pending() == {7: "T"}

    def test_rejected_load_raises(self, fake_session) -> None:
        fake_session.failing.add("loadfile")
        with pytest.raises(LoadFailed) as exc_info:
            controls.load_file(fake_session, "T", 0, False, "https://h/v?id=x")
        assert exc_info.value.title == "T"
        assert fake_session.monitor.pending() == {}

    def test_no_files_raises(self, fake_session) -> None:
        with pytest.raises(LoadFailed):
            controls.load_file(fake_session, "T", 0, False)


class TestQueue:
    def test_play_latest(self, fake_session) -> None:
        fake_session.properties["playlist-count"] = 3
        controls.queue_play_latest(fake_session)
        assert fake_session.sets("playlist-pos") == [2]
        assert fake_session.sets("pause") == ["no"]

    def test_move_sends_target_then_source(self, fake_session) -> None:
        controls.queue_move(fake_session, 1, 4)
        assert fake_session.commands[-1] == ("playlist-move", 4, 1)

    def test_clear_also_clears_monitor(self, fake_session) -> None:
        fake_session.events.assigned_slots.push(1)
        fake_session.monitor.add("T")
        controls.queue_clear(fake_session)
        assert ("playlist-clear",) in fake_session.commands
        assert fake_session.monitor.pending() == {}

    def test_fallbacks(self, fake_session) -> None:
        """Test documented fallbacks when mpv cannot answer."""
        assert controls.queue_count(fake_session) == 0
        assert controls.queue_position(fake_session) == 0
        assert controls.title(fake_session, 0) == "-"
        assert controls.queue_data(fake_session) == ""
        assert controls.position(fake_session) == 0
        assert controls.paused(fake_session) is False
        assert controls.finished(fake_session) is False
        assert controls.idle(fake_session) is False
        assert controls.buffering(fake_session) is True
        assert controls.shuffled(fake_session) is False
        assert controls.muted(fake_session) is False
        assert controls.loop_mode(fake_session) == controls.LOOP_OFF

    def test_controls_after_exit_do_not_raise(self, fake_session) -> None:
        fake_session.closed = True
        controls.stop(fake_session)
        controls.next_track(fake_session)
        controls.toggle_paused(fake_session)
        controls.queue_clear(fake_session)


class TestDurationAndType:
    def test_duration(self, fake_session) -> None:
        fake_session.properties["duration"] = 100.7
        assert controls.duration(fake_session) == 100

    def test_duration_falls_back_to_declared_length(self, fake_session) -> None:
        fake_session.properties["options/length"] = "215"
        assert controls.duration(fake_session) == 215

    def test_duration_unknown(self, fake_session) -> None:
        fake_session.properties["options/length"] = "Live"
        assert controls.duration(fake_session) == 0

    def test_media_type(self, fake_session) -> None:
        assert controls.media_type(fake_session) == "Audio"
        fake_session.properties["height"] = 720
        assert controls.media_type(fake_session) == "Video"


class TestToggles:
    def test_loop_mode_cycles_through_three_states(self, fake_session) -> None:
        fake_session.properties.update({"loop-file": "no", "loop-playlist": "no"})

        seen = []
        for _ in range(4):
            seen.append(controls.loop_mode(fake_session))
            controls.toggle_loop_mode(fake_session)
            looping = [
                fake_session.properties[prop] == "yes" for prop in ("loop-file", "loop-playlist")
            ]
            assert looping != [True, True]

        assert seen == [
            controls.LOOP_OFF,
            controls.LOOP_FILE,
            controls.LOOP_PLAYLIST,
            controls.LOOP_OFF,
        ]

    def test_inf_counts_as_looping(self, fake_session) -> None:
        fake_session.properties.update({"loop-file": "no", "loop-playlist": "inf"})
        assert controls.loop_mode(fake_session) == controls.LOOP_PLAYLIST

    def test_toggle_paused_rewinds_finished_track(self, fake_session) -> None:
        fake_session.properties.update({"eof-reached": True, "pause": True})
        controls.toggle_paused(fake_session)
        assert fake_session.commands[-2:] == [
            ("seek", 0, "absolute-percent"),
            ("cycle", "pause"),
        ]

    def test_toggle_paused(self, fake_session) -> None:
        fake_session.properties.update({"eof-reached": False, "pause": False})
        controls.toggle_paused(fake_session)
        assert fake_session.commands[-1] == ("cycle", "pause")
        assert ("seek", 0, "absolute-percent") not in fake_session.commands


class TestVolume:
    def test_unreadable_volume_is_minus_one(self, fake_session) -> None:
        assert controls.volume(fake_session) == -1

    def test_changes_are_noops_when_volume_unreadable(self, fake_session) -> None:
        """Test that no Set is issued from a failed volume query."""
        controls.volume_increase(fake_session)
        controls.volume_decrease(fake_session)
        assert fake_session.sets("volume") == []

    def test_step(self, fake_session) -> None:
        fake_session.properties["volume"] = 50.0
        controls.volume_increase(fake_session)
        assert fake_session.sets("volume") == [51]
        controls.volume_decrease(fake_session)
        assert fake_session.sets("volume") == [51, 50]

    def test_clamped(self, fake_session) -> None:
        fake_session.properties["volume"] = controls.MAX_VOLUME
        controls.volume_increase(fake_session)
        fake_session.properties["volume"] = 0
        controls.volume_decrease(fake_session)
        assert fake_session.sets("volume") == [controls.MAX_VOLUME, 0]
