"""
Display surface for the player.

Renderer is what the player core draws through; TerminalRenderer draws the
status line, messages and the info panel with blessed.
"""

import sys
import threading
from typing import Optional, Protocol

from blessed import Terminal


class Renderer(Protocol):
    def render_progress(self, title: str, progress: str) -> None:
        ...

    def render_info(self, text: str) -> None:
        ...

    def render_image(self, data: bytes) -> None:
        ...

    def show_player(self) -> None:
        ...

    def hide_player(self) -> None:
        ...

    def show_error(self, message: str) -> None:
        ...

    def show_info(self, message: str) -> None:
        ...

    def width(self) -> int:
        ...


def write_at(term: Terminal, x: int, y: int, content: str, *, clear: bool = True) -> None:
    """Write content at position, clearing the rest of the line by default."""
    if clear:
        sys.stdout.write(term.move_xy(x, y) + term.clear_eol + content)
    else:
        sys.stdout.write(term.move_xy(x, y) + content)


class TerminalRenderer:
    """Bottom-of-screen player on a blessed terminal.

    Layout from the bottom: progress line, title line, message line. The info
    panel fills the top of the screen while the player is shown.
    """

    INFO_ROWS = 12

    def __init__(self, term: Optional[Terminal] = None, use_colors: bool = True):
        self.term = term or Terminal()
        self.use_colors = use_colors
        self.visible = False
        self._lock = threading.Lock()

    def _style(self, name: str, text: str) -> str:
        if not self.use_colors:
            return text
        return getattr(self.term, name)(text)

    def _flush(self) -> None:
        sys.stdout.flush()

    def width(self) -> int:
        return self.term.width or 80

    def _rows(self) -> tuple[int, int, int]:
        height = self.term.height or 24
        return height - 3, height - 2, height - 1

    def render_progress(self, title: str, progress: str) -> None:
        _, title_row, progress_row = self._rows()
        width = self.width()
        with self._lock:
            write_at(self.term, 0, title_row, self._style("bold", title[:width]))
            write_at(self.term, 0, progress_row, progress[:width])
            self._flush()

    def render_info(self, text: str) -> None:
        lines = text.splitlines()[: self.INFO_ROWS]
        width = self.width()
        with self._lock:
            for row in range(self.INFO_ROWS):
                line = lines[row] if row < len(lines) else ""
                write_at(self.term, 0, row, line[:width])
            self._flush()

    def render_image(self, data: bytes) -> None:
        # No inline image protocol; show that a thumbnail exists
        width = self.width()
        with self._lock:
            label = f"[thumbnail {len(data) // 1024} KiB]"
            write_at(self.term, max(width - len(label), 0), 0, self._style("cyan", label), clear=False)
            self._flush()

    def show_player(self) -> None:
        self.visible = True

    def hide_player(self) -> None:
        self.visible = False
        _, title_row, progress_row = self._rows()
        with self._lock:
            write_at(self.term, 0, title_row, "")
            write_at(self.term, 0, progress_row, "")
            self._flush()

    def show_error(self, message: str) -> None:
        message_row, _, _ = self._rows()
        with self._lock:
            write_at(self.term, 0, message_row, self._style("red", message))
            self._flush()

    def show_info(self, message: str) -> None:
        message_row, _, _ = self._rows()
        with self._lock:
            write_at(self.term, 0, message_row, self._style("white", message))
            self._flush()
