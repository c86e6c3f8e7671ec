"""Playback exceptions for error handling."""


class PlayerError(Exception):
    """Base exception for mpv control operations."""

    pass


class StartupFailed(PlayerError):
    """Raised when the mpv process could not be spawned."""

    pass


class ConnectFailed(PlayerError):
    """Raised when the mpv socket never became reachable within the retry budget."""

    pass


class ConnectionClosed(PlayerError):
    """Raised when an operation is attempted after mpv or its socket is gone."""

    def __init__(self, message: str = "MPV: Connection closed"):
        super().__init__(message)


class CommandFailed(PlayerError):
    """Raised when mpv answers a command with an error status."""

    def __init__(self, command: str, error: str):
        self.command = command
        self.error = error
        super().__init__(f"MPV: {command} failed: {error}")


class TypeMismatch(PlayerError):
    """Raised when a protocol value is read as the wrong type."""

    def __init__(self, expected: str, value: object):
        self.expected = expected
        self.value = value
        super().__init__(f"expected {expected}, got {type(value).__name__}: {value!r}")


class OpenFailed(PlayerError):
    """Raised when a playlist file cannot be opened."""

    pass


class EmptyPlaylist(PlayerError):
    """Raised when a playlist load added no entries to the queue."""

    def __init__(self, message: str = "MPV: No files were added"):
        super().__init__(message)


class LoadFailed(PlayerError):
    """Raised when a single loadfile call fails."""

    def __init__(self, title: str, cause: Exception = None):
        self.title = title
        self.cause = cause
        super().__init__(f"MPV: Unable to load {title or 'entry'}")


class RateLimitExceeded(PlayerError):
    """Raised when the video API rejects a request as rate limited.

    Callers suppress the user-visible message for this error; the add-media
    limiter already provides backpressure.
    """

    def __init__(self, message: str = "Rate-limit exceeded"):
        super().__init__(message)
