"""
Configuration management for mpv-tube
"""

import os
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def default_socket_path() -> str:
    return str(Path(tempfile.gettempdir()) / f"mpv-tube-{os.getpid()}.sock")


@dataclass
class PlayerConfig:
    """Configuration for the mpv process."""

    mpv_path: str = "mpv"
    ytdl_path: str = "yt-dlp"
    num_retries: int = 3
    user_agent: str = DEFAULT_USER_AGENT
    socket_path: str = field(default_factory=default_socket_path)
    add_media_limit: int = 2

    def validate(self) -> None:
        """Validate player configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.num_retries < 0:
            raise ValueError(f"num_retries must be >= 0, got {self.num_retries}")
        if self.add_media_limit < 1:
            raise ValueError(f"add_media_limit must be >= 1, got {self.add_media_limit}")


@dataclass
class APIConfig:
    """Configuration for the Invidious instance."""

    instance: str = "https://yewtu.be"
    timeout: int = 30


@dataclass
class UIConfig:
    """Configuration for the terminal player."""

    refresh_interval: float = 1.0
    use_colors: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # default: ~/.local/share/mpv-tube/mpv-tube.log
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = False


@dataclass
class Config:
    """Main configuration object."""

    player: PlayerConfig = field(default_factory=PlayerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "mpv-tube"
    return Path.home() / ".config" / "mpv-tube"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "mpv-tube"
    return Path.home() / ".local" / "share" / "mpv-tube"


def _find_project_config() -> Optional[Path]:
    """Find config.toml next to pyproject.toml when running from a checkout."""
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            return config_path if config_path.exists() else None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/mpv-tube (or ~/.config/mpv-tube)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# mpv-tube configuration

[player]
# mpv and yt-dlp executables
mpv_path = "mpv"
ytdl_path = "yt-dlp"

# Extra attempts to connect to mpv's IPC socket (one second apart)
num_retries = 3

# IPC socket path (default: a per-process socket in the temp directory)
# socket_path = "/tmp/mpv-tube.sock"

# Concurrent add-media requests
add_media_limit = 2

[api]
# Invidious instance to fetch videos and playlists from
instance = "https://yewtu.be"
timeout = 30

[ui]
# Seconds between status line refreshes
refresh_interval = 1.0
use_colors = true

[logging]
level = "INFO"
# log_file = "~/.local/share/mpv-tube/mpv-tube.log"
max_file_size_mb = 10
backup_count = 5
console_output = false
""".strip()


def _parse_config(toml_data: dict) -> Config:
    config = Config()

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            mpv_path=player_data.get("mpv_path", config.player.mpv_path),
            ytdl_path=player_data.get("ytdl_path", config.player.ytdl_path),
            num_retries=player_data.get("num_retries", config.player.num_retries),
            user_agent=player_data.get("user_agent", config.player.user_agent),
            socket_path=str(
                Path(player_data.get("socket_path", config.player.socket_path)).expanduser()
            ),
            add_media_limit=player_data.get(
                "add_media_limit", config.player.add_media_limit
            ),
        )
        config.player.validate()

    if "api" in toml_data:
        api_data = toml_data["api"]
        config.api = APIConfig(
            instance=api_data.get("instance", config.api.instance),
            timeout=api_data.get("timeout", config.api.timeout),
        )

    if "ui" in toml_data:
        ui_data = toml_data["ui"]
        config.ui = UIConfig(
            refresh_interval=float(
                ui_data.get("refresh_interval", config.ui.refresh_interval)
            ),
            use_colors=ui_data.get("use_colors", config.ui.use_colors),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=str(Path(log_file).expanduser()) if log_file else None,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get("backup_count", config.logging.backup_count),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def _apply_env_overrides(config: Config) -> Config:
    instance = os.environ.get("MPVTUBE_INSTANCE")
    socket_path = os.environ.get("MPVTUBE_SOCKET")

    if instance:
        config.api.instance = instance
    if socket_path:
        config.player.socket_path = socket_path
    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - MPVTUBE_INSTANCE
    - MPVTUBE_SOCKET
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
        config = _parse_config(toml_data)
    except (OSError, tomllib.TOMLDecodeError, ValueError, TypeError) as e:
        logger.warning(f"Error loading configuration from {config_path}: {e}")
        logger.warning("Using default configuration.")
        config = Config()

    return _apply_env_overrides(config)


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
