"""Shared fixtures: an in-memory mpv session and a fake mpv IPC server."""

import json
import shutil
import socket
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from mpvtube.domain.playback.errors import CommandFailed, ConnectionClosed
from mpvtube.domain.playback.events import MpvEvents
from mpvtube.domain.playback.monitor import TrackMonitor
from mpvtube.domain.playback.protocol import ProtocolValue


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll predicate until it holds or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeSession:
    """Stands in for MpvSession: records commands, answers from a property table.

    Properties missing from `properties` or named in `failing` make get
    calls fail the way mpv does ("property unavailable"). Command names in
    `failing` fail too.
    """

    def __init__(self, properties: Optional[dict[str, Any]] = None):
        self.events = MpvEvents()
        self.monitor = TrackMonitor(self.events)
        self.properties: dict[str, Any] = dict(properties or {})
        self.failing: set[str] = set()
        self.commands: list[tuple] = []
        self.fail_loadfile_at: Optional[int] = None
        self.closed = False

    def exited(self) -> bool:
        return self.closed

    def call(self, *args: Any) -> ProtocolValue:
        if self.closed:
            raise ConnectionClosed()
        self.commands.append(args)
        name = args[0]

        if name in ("get_property", "get_property_string"):
            prop = args[1]
            if prop in self.failing or prop not in self.properties:
                raise CommandFailed(name, "property unavailable")
            return ProtocolValue(self.properties[prop])

        if name == "set_property":
            if args[1] in self.failing:
                raise CommandFailed(name, "property unavailable")
            self.properties[args[1]] = args[2]
            return ProtocolValue(None)

        if name == "loadfile" and self.fail_loadfile_at is not None:
            if len(self.loadfile_calls()) == self.fail_loadfile_at + 1:
                raise CommandFailed(name, "error running command")

        if name in self.failing:
            raise CommandFailed(name, "error running command")
        return ProtocolValue(None)

    def get(self, prop: str) -> ProtocolValue:
        return self.call("get_property", prop)

    def set(self, prop: str, value: Any) -> None:
        self.call("set_property", prop, value)

    def loadfile_calls(self) -> list[tuple]:
        return [c for c in self.commands if c[0] == "loadfile"]

    def sets(self, prop: str) -> list[Any]:
        return [c[2] for c in self.commands if c[0] == "set_property" and c[1] == prop]


class FakeMpvServer:
    """A UNIX socket server speaking just enough of mpv's JSON IPC.

    Every command is recorded and answered by `handler(command) -> reply`; a
    handler returning None leaves the command unanswered.
    Events can be pushed to the client with send().
    """

    def __init__(self, path: str, handler: Optional[Callable[[list], Optional[dict]]] = None):
        self.path = path
        self.handler = handler or (lambda command: {"error": "success", "data": None})
        self.received: list[list] = []
        self.connected = threading.Event()
        self._conn: Optional[socket.socket] = None
        self._send_lock = threading.Lock()

        self._server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._server.bind(path)
        self._server.listen(1)
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            conn, _ = self._server.accept()
        except OSError:
            return
        self._conn = conn
        self.connected.set()

        buf = b""
        while True:
            try:
                chunk = conn.recv(4096)
            except OSError:
                break
            if not chunk:
                break
            buf += chunk
            while b"\n" in buf:
                line, buf = buf.split(b"\n", 1)
                message = json.loads(line)
                self.received.append(message["command"])
                reply = self.handler(message["command"])
                if reply is None:
                    continue
                reply = dict(reply)
                reply["request_id"] = message["request_id"]
                self.send(reply)

    def send(self, message: dict) -> None:
        with self._send_lock:
            self._conn.sendall((json.dumps(message) + "\n").encode("utf-8"))

    def disconnect(self) -> None:
        if self._conn is not None:
            try:
                self._conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self._conn.close()

    def close(self) -> None:
        self.disconnect()
        self._server.close()


@pytest.fixture
def fake_session() -> FakeSession:
    """Create an in-memory session with no properties set."""
    return FakeSession()


@pytest.fixture
def socket_dir():
    """Short temporary directory for UNIX sockets (paths are length-limited)."""
    path = tempfile.mkdtemp(prefix="mpvt")
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def socket_path(socket_dir: Path) -> str:
    return str(socket_dir / "mpv.sock")


@pytest.fixture
def make_server(socket_path: str):
    """Factory for a FakeMpvServer on socket_path; closed after the test."""
    servers: list[FakeMpvServer] = []

    def factory(handler: Optional[Callable[[list], dict]] = None) -> FakeMpvServer:
        server = FakeMpvServer(socket_path, handler)
        servers.append(server)
        return server

    yield factory
    for server in servers:
        server.close()


@pytest.fixture(name="wait_for")
def wait_for_fixture() -> Callable[..., bool]:
    return wait_for
