"""
Progress loop: the per-session refresh of the player status line.

A loop thread exists only while something is playing. It re-queries mpv once
per second, or immediately when the UI asks for a refresh (which also resets
the one-second timer), and cancels itself when the queries fail, usually
because the queue ran empty.

The ProgressSupervisor owns loop lifecycle through a single-slot intent
channel: True starts a loop, False cancels it, closing stops the supervisor.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import parse_qs, urlsplit

from loguru import logger

from . import controls
from .channels import CLOSED, EMPTY, Channel
from .errors import PlayerError
from .session import MpvSession

REFRESH_INTERVAL = 1.0

TICK = "tick"
WAKE = "wake"
CANCELLED = "cancelled"

BAR_FILLED = "█"
BAR_EMPTY = " "

LOOP_TAGS = {
    controls.LOOP_FILE: "R-F",
    controls.LOOP_PLAYLIST: "R-P",
}


class EmptyQueue(PlayerError):
    """Raised when there is no playing entry to report on."""

    def __init__(self, message: str = "Player: Empty playlist"):
        super().__init__(message)


class RefreshTimer:
    """A repeating timer that can also be woken early or cancelled.

    A wake resets the deadline, so an event-driven refresh is not followed by
    a redundant scheduled one. Wakes are coalesced.
    """

    def __init__(self, interval: float = REFRESH_INTERVAL):
        self.interval = interval
        self._cond = threading.Condition()
        self._woken = False
        self._cancelled = False
        self._deadline = time.monotonic() + interval

    @property
    def cancelled(self) -> bool:
        with self._cond:
            return self._cancelled

    def wake(self) -> None:
        with self._cond:
            self._woken = True
            self._cond.notify_all()

    def cancel(self) -> None:
        with self._cond:
            self._cancelled = True
            self._cond.notify_all()

    def wait(self) -> str:
        """Block until the next tick, wake or cancellation and say which."""
        with self._cond:
            while True:
                if self._cancelled:
                    return CANCELLED

                now = time.monotonic()
                if self._woken:
                    self._woken = False
                    self._deadline = now + self.interval
                    return WAKE

                remaining = self._deadline - now
                if remaining <= 0:
                    self._deadline = now + self.interval
                    return TICK

                self._cond.wait(remaining)


@dataclass(frozen=True)
class PlaybackStatus:
    """Raw values queried from mpv for one refresh."""

    title: str
    position: int
    duration: int
    volume: int
    paused: bool = False
    finished: bool = False
    buffering: bool = False
    shuffled: bool = False
    muted: bool = False
    loop: str = controls.LOOP_OFF
    media_type: str = ""


@dataclass(frozen=True)
class ProgressSnapshot:
    """The rendered status of the playing entry.

    Attributes:
        title: Display title
        progress: Formatted progress line
        states: State tags ("volume 50", "shuffle", "mute", "loop-file", ...)
        data: Metadata parsed from the entry URL's query string
    """

    title: str
    progress: str
    states: list[str] = field(default_factory=list)
    data: dict[str, str] = field(default_factory=dict)


def format_duration(seconds: int) -> str:
    """Format seconds as MM:SS, or HH:MM:SS from one hour up."""
    if seconds <= 0:
        return "00:00"

    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def bar_fill(elapsed: int, duration: int, width: int) -> int:
    """Return how many of width cells are filled, clamped to [0, width]."""
    if width <= 0:
        return 0
    elapsed = max(elapsed, 0)
    if duration <= 0:
        duration = 1
    elapsed = min(elapsed, duration)
    return max(0, min(width, width * elapsed // duration))


def url_data(filename: str) -> dict[str, str]:
    """Return the metadata query of an entry URL, or {} if it has none."""
    try:
        parts = urlsplit(filename)
    except ValueError:
        return {}
    if not parts.scheme or not parts.query:
        return {}
    return {k: v[0] for k, v in parse_qs(parts.query).items() if v}


def format_progress(status: PlaybackStatus, width: int) -> ProgressSnapshot:
    """Build the status line for status on a display width cells wide."""
    states: list[str] = []

    vol = str(status.volume) if status.volume >= 0 else "0"
    states.append(f"volume {vol}")

    data = url_data(status.title)
    title = data.get("title") or status.title
    total = data.get("length") or format_duration(status.duration)
    media_type = data.get("mediatype") or status.media_type

    bar_width = max(width // 2, 0)
    filled = bar_fill(status.position, status.duration, bar_width)
    elapsed = format_duration(max(status.position, 0))

    flags = ""
    if status.shuffled:
        flags += " S"
        states.append("shuffle")
    if status.muted:
        flags += " M"
        states.append("mute")

    loop = ""
    if status.loop:
        states.append(status.loop)
        loop = LOOP_TAGS.get(status.loop, "")

    if status.paused:
        glyph = "[]" if status.finished else "||"
    elif status.buffering:
        glyph = "B"
    else:
        glyph = ">"

    lhs = f"{loop}{flags} {glyph} "
    bar = BAR_FILLED * filled + BAR_EMPTY * (bar_width - filled)
    rhs = f" {vol}% ({media_type})"
    progress = f"{lhs}{elapsed} |{bar}| {total}{rhs}"

    return ProgressSnapshot(title=title, progress=progress, states=states, data=data)


def query_status(session: MpvSession) -> PlaybackStatus:
    """Query mpv for everything the status line shows.

    Raises:
        ConnectionClosed: If the session has exited
        EmptyQueue: If nothing is playing
    """
    pos = session.get("playlist-playing-pos").as_int()
    if pos < 0:
        raise EmptyQueue()

    title = controls.title(session, pos)
    data = url_data(title)
    media_type = data.get("mediatype") or controls.media_type(session)

    return PlaybackStatus(
        title=title,
        position=controls.position(session),
        duration=controls.duration(session),
        volume=controls.volume(session),
        paused=controls.paused(session),
        finished=controls.finished(session),
        buffering=controls.buffering(session),
        shuffled=controls.shuffled(session),
        muted=controls.muted(session),
        loop=controls.loop_mode(session),
        media_type=media_type,
    )


def build_snapshot(session: MpvSession, width: int) -> ProgressSnapshot:
    return format_progress(query_status(session), width)


class ProgressLoop:
    """One refresh loop for one playback session."""

    def __init__(
        self,
        session: MpvSession,
        render: Callable[[Optional[ProgressSnapshot]], None],
        on_hide: Callable[[], None],
        width: Callable[[], int],
        interval: float = REFRESH_INTERVAL,
    ):
        self.session = session
        self.render = render
        self.on_hide = on_hide
        self.width = width
        self.timer = RefreshTimer(interval)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run, name="mpv-progress-loop", daemon=True
        )
        self._thread.start()

    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self.timer.cancelled

    def refresh(self) -> None:
        self.timer.wake()

    def cancel(self) -> None:
        self.timer.cancel()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def update(self) -> None:
        """Query and render once; cancel the loop if mpv cannot be queried."""
        try:
            snapshot = build_snapshot(self.session, self.width())
        except PlayerError as e:
            logger.debug(f"Progress update failed, stopping loop: {e}")
            self.cancel()
            return
        self.render(snapshot)

    def _run(self) -> None:
        # Render immediately so the player does not stay blank for a second
        self.update()
        while self.timer.wait() != CANCELLED:
            self.update()

        try:
            self.on_hide()
        except Exception:
            logger.exception("Player hide callback failed")
        self.render(None)


class ProgressSupervisor:
    """Starts and cancels progress loops from playing-status intents."""

    def __init__(
        self,
        session: MpvSession,
        render: Callable[[Optional[ProgressSnapshot]], None],
        on_hide: Callable[[], None],
        width: Callable[[], int],
        interval: float = REFRESH_INTERVAL,
    ):
        self.session = session
        self.render = render
        self.on_hide = on_hide
        self.width = width
        self.interval = interval
        self._intents = Channel(1, "playing-status")
        self._loop: Optional[ProgressLoop] = None
        self._loop_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="mpv-progress-supervisor", daemon=True
        )
        self._thread.start()

    def send_playing_status(self, playing: bool) -> None:
        """Request a loop start (True) or stop (False). The newest intent wins."""
        self._intents.push(playing)

    def refresh(self) -> None:
        """Refresh the running loop now, if there is one."""
        with self._loop_lock:
            loop = self._loop
        if loop is not None:
            loop.refresh()

    def current_loop(self) -> Optional[ProgressLoop]:
        with self._loop_lock:
            return self._loop

    def close(self) -> None:
        self._intents.close()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            playing = self._intents.receive()
            if playing is EMPTY:
                continue
            if playing is CLOSED:
                self._cancel_loop()
                return

            if playing:
                self._start_loop()
            else:
                self._cancel_loop()

    def _start_loop(self) -> None:
        with self._loop_lock:
            if self._loop is not None and self._loop.running():
                return
            self._loop = ProgressLoop(
                self.session, self.render, self.on_hide, self.width, self.interval
            )
            self._loop.start()

    def _cancel_loop(self) -> None:
        with self._loop_lock:
            loop = self._loop
        if loop is not None:
            loop.cancel()
