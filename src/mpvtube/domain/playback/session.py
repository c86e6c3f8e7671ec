"""
MPV session: process lifecycle and the only door to the mpv connection.

A session is created once by the application and passed explicitly to every
component that talks to mpv. There is no reconnection: when mpv exits, the
session stays dead and every call fails fast with ConnectionClosed.
"""

import os
import subprocess
import time
from typing import Any, Optional

from loguru import logger

from .errors import ConnectFailed, ConnectionClosed, PlayerError, StartupFailed
from .events import EventDispatcher, MpvEvents
from .monitor import TrackMonitor
from .protocol import ProtocolValue
from .transport import MpvConnection

# Delay between socket connection attempts (seconds)
RETRY_DELAY = 1.0

# How long send_quit lingers so mpv can act on the command (seconds)
QUIT_GRACE = 1.0

# How long to wait for mpv to acknowledge quit (seconds)
QUIT_TIMEOUT = 1.0

# mpv's default quit bindings; shutdown belongs to the application
QUIT_KEYS = ("q", "Ctrl+q", "Shift+q")


def build_mpv_command(
    mpv_path: str, ytdl_path: str, user_agent: str, socket_path: str
) -> list[str]:
    """Return the fixed mpv invocation for a control session."""
    return [
        mpv_path,
        "--idle",
        "--keep-open",
        "--no-terminal",
        "--really-quiet",
        "--no-input-terminal",
        f"--user-agent={user_agent}",
        f"--input-ipc-server={socket_path}",
        f"--script-opts=ytdl_hook-ytdl_path={ytdl_path}",
    ]


class MpvSession:
    """Owns the mpv process, its IPC connection and the background consumers.

    Attributes:
        socket_path: IPC socket path (set by init)
        events: Channels fed by the event dispatcher
        monitor: Track monitor correlating slot ids with titles
        retry_delay: Delay between connection attempts
    """

    def __init__(self) -> None:
        self.socket_path: Optional[str] = None
        self.connection: Optional[MpvConnection] = None
        self.process: Optional[subprocess.Popen] = None
        self.events = MpvEvents()
        self.monitor = TrackMonitor(self.events)
        self.dispatcher = EventDispatcher(self, self.events)
        self.retry_delay = RETRY_DELAY
        self._exited = False

    def init(
        self,
        mpv_path: str,
        ytdl_path: str,
        num_retries: int,
        user_agent: str,
        socket_path: str,
    ) -> None:
        """Start mpv and connect to its IPC socket.

        Raises:
            StartupFailed: If the mpv process cannot be spawned
            ConnectFailed: If the socket is unreachable after num_retries + 1 attempts
        """
        if os.path.exists(socket_path):
            logger.debug(f"Removing existing socket: {socket_path}")
            try:
                os.unlink(socket_path)
            except OSError:
                pass

        cmd = build_mpv_command(mpv_path, ytdl_path, user_agent, socket_path)
        logger.info(f"Starting MPV with socket: {socket_path}")

        try:
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start MPV: {e}")
            raise StartupFailed("MPV: Could not start") from e

        self.connection = self._connect(socket_path, int(num_retries))
        self.socket_path = socket_path

        self.monitor.start()
        self.dispatcher.start()

        for key in QUIT_KEYS:
            try:
                self.call("keybind", key, "")
            except PlayerError as e:
                logger.debug(f"Could not unbind {key}: {e}")

        logger.info("MPV started successfully")

    def _connect(self, socket_path: str, num_retries: int) -> MpvConnection:
        last_error: Optional[Exception] = None
        for attempt in range(num_retries + 1):
            connection = MpvConnection(socket_path)
            try:
                connection.open()
                logger.debug(f"Connected to MPV socket on attempt {attempt + 1}")
                return connection
            except OSError as e:
                last_error = e
                if attempt < num_retries:
                    time.sleep(self.retry_delay)

        logger.error(f"MPV socket unreachable after {num_retries + 1} attempts: {last_error}")
        self._kill_process()
        raise ConnectFailed("MPV: Could not connect to socket")

    def exited(self) -> bool:
        """Return True if mpv or its connection is gone."""
        return self.connection is None or self.connection.is_closed()

    def call(self, *args: Any, timeout: Optional[float] = None) -> ProtocolValue:
        """Send a command to mpv, waiting at most timeout seconds for the reply.

        Raises:
            ConnectionClosed: If the session has exited
            CommandFailed: If mpv rejects the command or does not answer in time
        """
        if self.exited():
            raise ConnectionClosed()
        return self.connection.call(*args, timeout=timeout)

    def get(self, prop: str) -> ProtocolValue:
        if self.exited():
            raise ConnectionClosed()
        return self.connection.get(prop)

    def set(self, prop: str, value: Any) -> None:
        if self.exited():
            raise ConnectionClosed()
        self.connection.set(prop, value)

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """Block until the connection closes. Returns False on timeout."""
        if self.connection is None:
            return True
        return self.connection.wait_until_closed(timeout)

    def exit(self) -> None:
        """Ask mpv to quit and remove the socket file. Safe to call twice."""
        if self._exited:
            return
        self._exited = True

        try:
            self.call("quit", timeout=QUIT_TIMEOUT)
        except PlayerError as e:
            logger.debug(f"Quit command not delivered: {e}")

        if self.process is not None:
            try:
                self.process.wait(timeout=2.0)
            except subprocess.TimeoutExpired:
                self._kill_process()

        if self.socket_path and os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass

    def _kill_process(self) -> None:
        if self.process is None:
            return
        try:
            self.process.kill()
            self.process.wait(timeout=2.0)
        except (OSError, subprocess.TimeoutExpired):
            pass

    @staticmethod
    def send_quit(socket_path: str) -> None:
        """Tell whatever mpv listens on socket_path to quit.

        Used to clean up an instance orphaned by a previous run. Makes a single
        attempt, waits at most QUIT_TIMEOUT for the reply and gives up silently.
        """
        connection = MpvConnection(socket_path)
        try:
            connection.open()
        except OSError as e:
            logger.debug(f"No orphaned MPV on {socket_path}: {e}")
            return

        try:
            connection.call("quit", timeout=QUIT_TIMEOUT)
        except PlayerError as e:
            logger.debug(f"Quit to orphaned MPV failed: {e}")
        else:
            time.sleep(QUIT_GRACE)
        finally:
            connection.close()
