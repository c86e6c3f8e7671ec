"""Desktop notification helpers for mpv-tube."""

import shutil
import subprocess
from typing import Literal

from loguru import logger

APP_NAME = "mpv-tube"


def notify(
    title: str, message: str, urgency: Literal["low", "normal", "critical"] = "normal"
) -> bool:
    """
    Show a desktop notification using notify-send.

    Args:
        title: Notification title
        message: Notification message body
        urgency: Urgency level ('low', 'normal', 'critical')

    Returns:
        True if notify-send was run
    """
    if not shutil.which("notify-send"):
        return False

    try:
        subprocess.run(
            ["notify-send", "--urgency", urgency, "--app-name", APP_NAME, title, message],
            check=False,
            timeout=2.0,
            capture_output=True,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug(f"notify-send failed: {e}")
        return False
    return True


def notify_success(message: str) -> bool:
    """Show a success notification with checkmark."""
    return notify(f"✓ {APP_NAME}", message, urgency="normal")


def notify_error(message: str) -> bool:
    """Show an error notification with X mark."""
    return notify(f"✗ {APP_NAME}", message, urgency="critical")
