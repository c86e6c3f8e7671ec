"""Playback domain - MPV integration over JSON IPC.

This domain handles:
- MPV process lifecycle and the IPC connection
- Event dispatch and failed-track attribution
- Playlist files in and out of mpv's queue
- Playback controls and the progress status line
"""

from .errors import (
    PlayerError,
    StartupFailed,
    ConnectFailed,
    ConnectionClosed,
    CommandFailed,
    TypeMismatch,
    OpenFailed,
    EmptyPlaylist,
    LoadFailed,
    RateLimitExceeded,
)
from .session import MpvSession
from .limiter import AddMediaLimiter
from .media import MediaLoader, VideoSource, VideoStore
from .playlist import load_playlist, save_playlist
from .progress import ProgressSnapshot, ProgressSupervisor

__all__ = [
    # Errors
    "PlayerError",
    "StartupFailed",
    "ConnectFailed",
    "ConnectionClosed",
    "CommandFailed",
    "TypeMismatch",
    "OpenFailed",
    "EmptyPlaylist",
    "LoadFailed",
    "RateLimitExceeded",
    # Session
    "MpvSession",
    # Loading
    "AddMediaLimiter",
    "MediaLoader",
    "VideoSource",
    "VideoStore",
    "load_playlist",
    "save_playlist",
    # Progress
    "ProgressSnapshot",
    "ProgressSupervisor",
]
