"""
Playlist files: a line-oriented URL list replayed into mpv's queue.

This is intentionally not an HLS/M3U parser. Lines starting with "#" and
blank lines are skipped; every other line is a URL whose query string carries
the entry's metadata:

    https://host/latest_version?id=abc&itag=251&title=Song+A&length=3%3A00
        &mediatype=Audio&options=force-media-title%3D...

Recognized query fields: title, options, length ("Live" marks a stream whose
URL may have expired), mediatype ("Audio" or "Video").
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import parse_qs, urlsplit, urlunsplit

from loguru import logger

from .errors import EmptyPlaylist, LoadFailed, OpenFailed, PlayerError
from .options import escape_options, quote_value
from .session import MpvSession

LIVE_LENGTH = "Live"

# Called with (uri, audio); returns True if it re-queued a fresh URL itself
RenewLiveURL = Callable[[str, bool], bool]


@dataclass(frozen=True)
class PlaylistEntry:
    """One parsed playlist line."""

    uri: str
    title: str = ""
    options: str = ""
    length: str = ""
    media_type: str = ""

    @property
    def is_live(self) -> bool:
        return self.length == LIVE_LENGTH

    @property
    def is_audio(self) -> bool:
        return self.media_type == "Audio"


def hostname(instance: str) -> str:
    """Return the host part of an instance URL ("https://h:1/x" -> "h:1")."""
    if "://" in instance:
        return urlsplit(instance).netloc
    return instance.strip("/")


def parse_playlist_line(line: str, api_host: str = "") -> Optional[PlaylistEntry]:
    """Parse one playlist line.

    Args:
        line: Raw line (trailing newline allowed)
        api_host: Host to rewrite the URL to; empty keeps the original host

    Returns:
        PlaylistEntry, or None for comments, blank lines and invalid URLs
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    try:
        parts = urlsplit(line)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None

    # Playlists may be replayed against a different instance than they were saved from
    if api_host:
        parts = parts._replace(netloc=api_host)
    uri = urlunsplit(parts)

    query = parse_qs(parts.query)

    def field(name: str) -> str:
        values = query.get(name)
        return values[0] if values else ""

    options = field("options")
    return PlaylistEntry(
        uri=uri,
        title=field("title"),
        options=escape_options(options) if options else "",
        length=field("length"),
        media_type=field("mediatype"),
    )


def entry_options(entry: PlaylistEntry) -> str:
    """Return the loadfile options for entry, adding a media title if missing."""
    options = entry.options
    if "force-media-title" not in options:
        options += ",force-media-title=" + quote_value(entry.title)
    return options.lstrip(",")


def load_playlist(
    session: MpvSession,
    path: str,
    replace: bool,
    renew_live_url: RenewLiveURL,
    api_host: str = "",
) -> int:
    """Load a playlist file into mpv's queue.

    Entries are appended in file order. A failing loadfile aborts the scan;
    entries appended before it stay queued.

    Args:
        session: Active mpv session
        path: Playlist file path
        replace: Clear the current queue (and the track monitor) first
        renew_live_url: Callback for entries declared live
        api_host: Host every entry is rewritten to

    Returns:
        Number of entries added

    Raises:
        OpenFailed: If the file cannot be opened
        LoadFailed: If mpv rejects an entry
        EmptyPlaylist: If no entry was added
    """
    if replace:
        for command in (("playlist-clear",), ("playlist-remove", "current")):
            try:
                session.call(*command)
            except PlayerError as e:
                logger.debug(f"{command[0]} failed: {e}")
        session.monitor.clear()

    try:
        playlist_file = open(path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise OpenFailed(f"MPV: Unable to open {path}") from e

    added = 0
    with playlist_file:
        for line in playlist_file:
            entry = parse_playlist_line(line, api_host)
            if entry is None:
                continue

            if entry.is_live and renew_live_url(entry.uri, entry.is_audio):
                logger.debug(f"Live entry renewed: {entry.title or entry.uri}")
                continue

            try:
                session.call("loadfile", entry.uri, "append-play", entry_options(entry))
            except PlayerError as e:
                logger.warning(f"Playlist load aborted after {added} entries: {e}")
                raise LoadFailed(entry.title, e) from e

            added += 1
            session.monitor.add(entry.title)

    if added == 0:
        raise EmptyPlaylist()

    logger.info(f"Loaded {added} entries from {path}")
    return added


def save_playlist(session: MpvSession, path: str) -> int:
    """Write the current queue as a playlist file.

    Returns:
        Number of entries written

    Raises:
        EmptyPlaylist: If the queue is empty or cannot be read
        OSError: If the file cannot be written
    """
    try:
        raw = session.call("get_property_string", "playlist").as_str()
        queue = json.loads(raw)
    except (PlayerError, json.JSONDecodeError) as e:
        raise EmptyPlaylist("MPV: Unable to read the queue") from e

    lines = ["#EXTM3U", ""]
    for item in queue:
        uri = item.get("filename") if isinstance(item, dict) else None
        if not uri:
            continue
        entry = parse_playlist_line(uri) or PlaylistEntry(uri=uri)
        title = entry.title or item.get("title") or uri
        length = entry.length or "-1"
        lines.append(f"#EXTINF:{length},{title}")
        lines.append(uri)
        lines.append("")

    count = (len(lines) - 2) // 3
    if count == 0:
        raise EmptyPlaylist("MPV: Queue is empty")

    Path(path).write_text("\n".join(lines), encoding="utf-8")
    logger.info(f"Saved {count} entries to {path}")
    return count
