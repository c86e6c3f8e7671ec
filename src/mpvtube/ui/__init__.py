"""UI layer for mpv-tube.

Contains:
- renderer: Renderer protocol and the blessed terminal renderer
- player: Player show/hide state, notifications and the info panel
"""

__all__ = []
