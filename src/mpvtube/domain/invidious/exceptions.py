"""Video API exceptions for error handling."""


class InvidiousError(Exception):
    """Base exception for video API operations."""

    pass


class InvalidMediaURLError(InvidiousError):
    """Raised when text is neither a video/playlist URL nor a bare ID."""

    pass


class APIRateLimitError(InvidiousError):
    """Raised when the instance answers HTTP 429."""

    pass


class VideoUnavailableError(InvidiousError):
    """Raised when a video has no playable stream."""

    pass
