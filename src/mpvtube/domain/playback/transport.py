"""
JSON IPC transport for a running mpv instance.

One persistent UNIX socket per connection. A single reader thread parses the
line-delimited JSON stream, completes pending requests by request_id and
forwards events to listener queues. Listener queues are unbounded so the
reader never blocks on a slow consumer.

When the stream ends the reader fails pending calls and hands every listener
its end marker, but leaves the socket open. Closing belongs to whoever owns
the connection (the event dispatcher for a session).
"""

import itertools
import json
import queue
import socket
import threading
from typing import Any, Optional

from loguru import logger

from .errors import CommandFailed, ConnectionClosed
from .protocol import MpvEvent, ProtocolValue


class MpvConnection:
    """A connection to mpv's --input-ipc-server socket."""

    def __init__(self, socket_path: str):
        self.socket_path = socket_path
        self._sock: Optional[socket.socket] = None
        self._reader: Optional[threading.Thread] = None

        self._send_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._closed = threading.Event()
        self._ended = threading.Event()

        self._request_ids = itertools.count(1)
        self._pending: dict[int, "queue.Queue[dict[str, Any]]"] = {}
        self._listeners: list["queue.Queue[Optional[MpvEvent]]"] = []

    def open(self, timeout: float = 2.0) -> None:
        """Connect to the socket and start the reader thread.

        Raises:
            OSError: If the socket does not exist or refuses the connection
        """
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(timeout)
        try:
            sock.connect(self.socket_path)
        except OSError:
            sock.close()
            raise
        sock.settimeout(None)

        self._sock = sock
        self._reader = threading.Thread(
            target=self._read_loop, name="mpv-ipc-reader", daemon=True
        )
        self._reader.start()

    def is_closed(self) -> bool:
        return self._sock is None or self._closed.is_set()

    def stream_ended(self) -> bool:
        """Return True once mpv's side of the stream is gone."""
        return self._ended.is_set()

    def wait_until_closed(self, timeout: Optional[float] = None) -> bool:
        return self._closed.wait(timeout)

    def close(self) -> None:
        """Close the socket and fail every pending call. Safe to call twice."""
        with self._state_lock:
            if self._closed.is_set():
                return
            self._closed.set()

        self._end_stream()
        if self._sock is not None:
            try:
                self._sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self._sock.close()

        logger.debug(f"MPV connection closed: {self.socket_path}")

    def _end_stream(self) -> None:
        with self._state_lock:
            if self._ended.is_set():
                return
            self._ended.set()
            pending = list(self._pending.values())
            self._pending.clear()
            listeners = list(self._listeners)

        for waiter in pending:
            waiter.put({"error": "connection closed", "closed": True})
        for listener in listeners:
            listener.put(None)

    def new_event_listener(self) -> "queue.Queue[Optional[MpvEvent]]":
        """Return a queue receiving every event, then None when the stream ends."""
        listener: "queue.Queue[Optional[MpvEvent]]" = queue.Queue()
        with self._state_lock:
            if self._ended.is_set():
                listener.put(None)
            else:
                self._listeners.append(listener)
        return listener

    def call(self, *args: Any, timeout: Optional[float] = None) -> ProtocolValue:
        """Send a command and block until mpv replies.

        Args:
            args: Command name and arguments
            timeout: Give up waiting for the reply after this many seconds

        Raises:
            ConnectionClosed: If the connection is or becomes closed
            CommandFailed: If mpv answers with an error status or not in time
        """
        if self.is_closed():
            raise ConnectionClosed()

        command = str(args[0]) if args else ""
        request_id = next(self._request_ids)
        waiter: "queue.Queue[dict[str, Any]]" = queue.Queue(maxsize=1)
        with self._state_lock:
            if self._ended.is_set():
                raise ConnectionClosed()
            self._pending[request_id] = waiter

        line = json.dumps({"command": list(args), "request_id": request_id}) + "\n"
        try:
            with self._send_lock:
                self._sock.sendall(line.encode("utf-8"))
        except OSError as e:
            with self._state_lock:
                self._pending.pop(request_id, None)
            raise ConnectionClosed(f"MPV: Connection closed ({e})") from e

        try:
            reply = waiter.get(timeout=timeout)
        except queue.Empty:
            with self._state_lock:
                self._pending.pop(request_id, None)
            raise CommandFailed(command, f"no reply within {timeout}s")
        if reply.get("closed"):
            raise ConnectionClosed()

        error = reply.get("error", "success")
        if error != "success":
            raise CommandFailed(command, str(error))
        return ProtocolValue(reply.get("data"))

    def get(self, prop: str) -> ProtocolValue:
        return self.call("get_property", prop)

    def set(self, prop: str, value: Any) -> None:
        self.call("set_property", prop, value)

    def _read_loop(self) -> None:
        buf = b""
        try:
            while not self._closed.is_set():
                try:
                    chunk = self._sock.recv(4096)
                except OSError:
                    break
                if not chunk:
                    break

                buf += chunk
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    line = line.strip()
                    if line:
                        self._dispatch(line)
        except Exception:
            logger.exception("MPV reader thread failed")
        finally:
            self._end_stream()

    def _dispatch(self, line: bytes) -> None:
        try:
            message = json.loads(line.decode("utf-8", errors="replace"))
        except json.JSONDecodeError:
            logger.debug(f"Ignoring malformed mpv line: {line[:200]!r}")
            return
        if not isinstance(message, dict):
            return

        if "event" in message:
            event = MpvEvent.from_message(message)
            with self._state_lock:
                listeners = list(self._listeners)
            for listener in listeners:
                listener.put(event)
            return

        request_id = message.get("request_id")
        with self._state_lock:
            waiter = self._pending.pop(request_id, None)
        if waiter is not None:
            waiter.put(message)
