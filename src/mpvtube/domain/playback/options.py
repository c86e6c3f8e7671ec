"""
mpv per-file option strings ("key=value,key=value").

Values containing separators are written with mpv's length quoting,
"%N%value", where N is the UTF-8 byte length of value. Titles and URLs
routinely contain commas, so every value is quoted on output.
"""

import re
from typing import Optional

_LENGTH_PREFIX = re.compile(r"%(\d+)%")


def quote_value(value: str) -> str:
    """Quote value with mpv's %N% byte-length syntax."""
    return f"%{len(value.encode('utf-8'))}%{value}"


def format_options(options: list[tuple[str, str]]) -> str:
    """Join (key, value) pairs into an mpv option string."""
    return ",".join(f"{key}={quote_value(value)}" for key, value in options)


def parse_options(text: str) -> list[tuple[str, str]]:
    """Split an mpv option string into (key, value) pairs.

    Understands %N% length-quoted values, double-quoted values and plain values
    ending at the next comma. Items without "=" become (key, "").
    """
    pairs: list[tuple[str, str]] = []
    data = text.encode("utf-8")
    i = 0

    while i < len(data):
        if data[i : i + 1] == b",":
            i += 1
            continue

        eq = data.find(b"=", i)
        comma = data.find(b",", i)
        if eq == -1 or (comma != -1 and comma < eq):
            end = comma if comma != -1 else len(data)
            pairs.append((data[i:end].decode("utf-8", errors="replace").strip(), ""))
            i = end + 1
            continue

        key = data[i:eq].decode("utf-8", errors="replace").strip()
        i = eq + 1

        match = _LENGTH_PREFIX.match(data[i:].decode("utf-8", errors="replace"))
        if match:
            length = int(match.group(1))
            start = i + len(match.group(0))
            value = data[start : start + length]
            i = start + length
        elif data[i : i + 1] == b'"':
            close = data.find(b'"', i + 1)
            close = close if close != -1 else len(data)
            value = data[i + 1 : close]
            i = close + 1
        else:
            end = data.find(b",", i)
            end = end if end != -1 else len(data)
            value = data[i:end]
            i = end

        pairs.append((key, value.decode("utf-8", errors="replace")))

    return pairs


def escape_options(text: str) -> str:
    """Re-escape an option string recovered from a playlist URL.

    The option string has been through URL encoding and decoding, so any
    length prefixes are recomputed from the decoded values.
    """
    return format_options(parse_options(text))


def option_value(text: str, key: str) -> Optional[str]:
    for name, value in parse_options(text):
        if name == key:
            return value
    return None
