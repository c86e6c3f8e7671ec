"""mpv-tube: drive mpv over its JSON IPC socket for video API playback."""

__version__ = "0.1.0"
