"""
Queue and playback controls expressed as mpv commands.

Status queries are best-effort display inputs: on failure they log at debug
level and return a documented fallback instead of raising. Only loading
propagates errors.
"""

from typing import Any, Optional
from urllib.parse import quote_plus

from loguru import logger

from .errors import LoadFailed, PlayerError
from .options import format_options
from .session import MpvSession

LOOP_OFF = ""
LOOP_FILE = "loop-file"
LOOP_PLAYLIST = "loop-playlist"

MAX_VOLUME = 130


def _get(session: MpvSession, prop: str) -> Optional[Any]:
    try:
        return session.get(prop)
    except PlayerError as e:
        logger.debug(f"get {prop} failed: {e}")
        return None


def _get_string(session: MpvSession, prop: str) -> Optional[str]:
    try:
        return session.call("get_property_string", prop).as_str()
    except PlayerError as e:
        logger.debug(f"get_property_string {prop} failed: {e}")
        return None


def _flag(session: MpvSession, prop: str, default: bool) -> bool:
    value = _get(session, prop)
    if value is None:
        return default
    try:
        return value.as_bool()
    except PlayerError:
        return default


def _number(session: MpvSession, prop: str) -> Optional[float]:
    value = _get(session, prop)
    if value is None:
        return None
    try:
        return value.as_float()
    except PlayerError:
        return None


def _command(session: MpvSession, *args: Any) -> bool:
    try:
        session.call(*args)
        return True
    except PlayerError as e:
        logger.debug(f"{args[0]} failed: {e}")
        return False


def _set(session: MpvSession, prop: str, value: Any) -> bool:
    try:
        session.set(prop, value)
        return True
    except PlayerError as e:
        logger.debug(f"set {prop}={value!r} failed: {e}")
        return False


# Loading


def load_file(
    session: MpvSession,
    title: str,
    duration: int,
    audio: bool,
    *files: str,
) -> None:
    """Append a stream to the queue.

    When two files are given, the first is the video stream and the second is
    attached as its audio track. The load options are also appended to the URL
    so a saved playlist can replay the entry.

    Raises:
        LoadFailed: If mpv rejects the loadfile command
    """
    if not files:
        raise LoadFailed(title)

    options = [("force-media-title", title)]
    if duration > 0:
        options.append(("length", str(duration)))
    if audio:
        options.append(("vid", "no"))
    if len(files) == 2:
        options.append(("audio-file", files[1]))

    option_string = format_options(options)
    uri = files[0] + "&options=" + quote_plus(option_string)

    try:
        session.call("loadfile", uri, "append-play", option_string)
    except PlayerError as e:
        raise LoadFailed(title, e) from e

    session.monitor.add(title)


# Queue


def queue_count(session: MpvSession) -> int:
    count = _number(session, "playlist-count")
    return int(count) if count is not None else 0


def queue_position(session: MpvSession) -> int:
    """Return the playing position, -1 when nothing is playing, 0 on failure."""
    pos = _number(session, "playlist-playing-pos")
    return int(pos) if pos is not None else 0


def title(session: MpvSession, pos: int) -> str:
    """Return the filename (the URL with its metadata query) of entry pos."""
    name = _get_string(session, f"playlist/{pos}/filename")
    return name if name is not None else "-"


def queue_data(session: MpvSession) -> str:
    """Return mpv's playlist as a JSON string, or "" on failure."""
    data = _get_string(session, "playlist")
    return data if data is not None else ""


def queue_delete(session: MpvSession, number: int) -> None:
    _command(session, "playlist-remove", number)


def queue_move(session: MpvSession, before: int, after: int) -> None:
    _command(session, "playlist-move", after, before)


def queue_switch_to_track(session: MpvSession, number: int) -> None:
    _set(session, "playlist-pos", number)


def queue_play_latest(session: MpvSession) -> None:
    _set(session, "playlist-pos", queue_count(session) - 1)
    play(session)


def queue_clear(session: MpvSession) -> None:
    _command(session, "playlist-clear")
    session.monitor.clear()


# Transport


def play(session: MpvSession) -> None:
    _set(session, "pause", "no")


def stop(session: MpvSession) -> None:
    _command(session, "stop")


def next_track(session: MpvSession) -> None:
    _command(session, "playlist-next")


def prev_track(session: MpvSession) -> None:
    _command(session, "playlist-prev")


def seek_forward(session: MpvSession) -> None:
    _command(session, "seek", 1)


def seek_backward(session: MpvSession) -> None:
    _command(session, "seek", -1)


def position(session: MpvSession) -> int:
    pos = _number(session, "playback-time")
    return int(pos) if pos is not None else 0


def duration(session: MpvSession) -> int:
    """Return the track duration in seconds.

    Live streams and some remote files report no duration; fall back to the
    length declared in the load options.
    """
    value = _number(session, "duration")
    if value is not None:
        return int(value)

    declared = _get(session, "options/length")
    if declared is None:
        return 0
    try:
        return int(declared.as_str())
    except (PlayerError, ValueError):
        return 0


def media_type(session: MpvSession) -> str:
    try:
        session.get("height")
    except PlayerError:
        return "Audio"
    return "Video"


# Toggles


def paused(session: MpvSession) -> bool:
    return _flag(session, "pause", False)


def finished(session: MpvSession) -> bool:
    return _flag(session, "eof-reached", False)


def idle(session: MpvSession) -> bool:
    return _flag(session, "core-idle", False)


def buffering(session: MpvSession) -> bool:
    return _flag(session, "paused-for-cache", True)


def toggle_paused(session: MpvSession) -> None:
    # A finished track rewinds so that unpausing replays it
    if finished(session) and paused(session):
        _command(session, "seek", 0, "absolute-percent")
    _command(session, "cycle", "pause")


def shuffled(session: MpvSession) -> bool:
    return _flag(session, "shuffle", False)


def toggle_shuffled(session: MpvSession) -> None:
    _command(session, "cycle", "shuffle")


def muted(session: MpvSession) -> bool:
    return _flag(session, "mute", False)


def toggle_muted(session: MpvSession) -> None:
    _command(session, "cycle", "mute")


def loop_mode(session: MpvSession) -> str:
    """Return LOOP_FILE, LOOP_PLAYLIST or LOOP_OFF."""
    loop_file = _get_string(session, "loop-file")
    if loop_file is None:
        return LOOP_OFF
    loop_playlist = _get_string(session, "loop-playlist")
    if loop_playlist is None:
        return LOOP_OFF

    if loop_file in ("yes", "inf"):
        return LOOP_FILE
    if loop_playlist in ("yes", "inf"):
        return LOOP_PLAYLIST
    return LOOP_OFF


def toggle_loop_mode(session: MpvSession) -> None:
    """Cycle off -> loop-file -> loop-playlist -> off.

    Both properties are always written so the two modes never overlap.
    """
    mode = loop_mode(session)
    if mode == LOOP_OFF:
        _set(session, "loop-file", "yes")
        _set(session, "loop-playlist", "no")
    elif mode == LOOP_FILE:
        _set(session, "loop-file", "no")
        _set(session, "loop-playlist", "yes")
    else:
        _set(session, "loop-file", "no")
        _set(session, "loop-playlist", "no")


def volume(session: MpvSession) -> int:
    """Return the volume, or -1 if it cannot be read."""
    value = _number(session, "volume")
    return int(value) if value is not None else -1


def volume_increase(session: MpvSession) -> None:
    vol = volume(session)
    if vol == -1:
        return
    _set(session, "volume", min(vol + 1, MAX_VOLUME))


def volume_decrease(session: MpvSession) -> None:
    vol = volume(session)
    if vol == -1:
        return
    _set(session, "volume", max(vol - 1, 0))
