"""Tests for configuration loading."""

import os
import tomllib
from pathlib import Path

import pytest

from mpvtube.core.config import (
    Config,
    PlayerConfig,
    create_default_config,
    get_config_dir,
    load_config,
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    """Point XDG dirs at tmp_path and clear overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("MPVTUBE_INSTANCE", raising=False)
    monkeypatch.delenv("MPVTUBE_SOCKET", raising=False)


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_defaults(self) -> None:
        config = Config()
        assert config.player.mpv_path == "mpv"
        assert config.player.ytdl_path == "yt-dlp"
        assert config.player.num_retries == 3
        assert config.player.add_media_limit == 2
        assert config.player.socket_path.endswith(f"mpv-tube-{os.getpid()}.sock")
        assert config.api.timeout == 30
        assert config.ui.refresh_interval == 1.0

    def test_default_file_is_valid_toml(self) -> None:
        data = tomllib.loads(create_default_config())
        assert set(data) == {"player", "api", "ui", "logging"}

    def test_config_dir_follows_xdg(self, tmp_path: Path) -> None:
        assert get_config_dir() == tmp_path / "config" / "mpv-tube"


class TestLoadConfig:
    def test_missing_file_is_created(self, tmp_path: Path) -> None:
        path = tmp_path / "new" / "config.toml"
        config = load_config(path)
        assert path.exists()
        assert config.player.mpv_path == "mpv"

    def test_sections_are_parsed(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            """
[player]
mpv_path = "/opt/mpv"
num_retries = 5
socket_path = "/tmp/custom.sock"
add_media_limit = 4

[api]
instance = "https://inv.example"

[ui]
refresh_interval = 2

[logging]
level = "debug"
console_output = true
""",
        )
        config = load_config(path)

        assert config.player.mpv_path == "/opt/mpv"
        assert config.player.ytdl_path == "yt-dlp"
        assert config.player.num_retries == 5
        assert config.player.socket_path == "/tmp/custom.sock"
        assert config.player.add_media_limit == 4
        assert config.api.instance == "https://inv.example"
        assert config.api.timeout == 30
        assert config.ui.refresh_interval == 2.0
        assert config.logging.level == "DEBUG"
        assert config.logging.console_output is True

    def test_invalid_toml_falls_back_to_defaults(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "[player\nmpv_path = ")
        assert load_config(path).player.mpv_path == "mpv"

    def test_invalid_values_fall_back_to_defaults(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "[player]\nadd_media_limit = 0\n")
        assert load_config(path).player.add_media_limit == 2

    def test_environment_overrides(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("MPVTUBE_INSTANCE", "https://env.example")
        monkeypatch.setenv("MPVTUBE_SOCKET", "/tmp/env.sock")
        path = write_config(tmp_path, '[api]\ninstance = "https://file.example"\n')

        config = load_config(path)

        assert config.api.instance == "https://env.example"
        assert config.player.socket_path == "/tmp/env.sock"

    def test_dotenv_in_config_dir(self, tmp_path: Path, monkeypatch) -> None:
        env_dir = tmp_path / "config" / "mpv-tube"
        env_dir.mkdir(parents=True)
        (env_dir / ".env").write_text("MPVTUBE_INSTANCE=https://dotenv.example\n")
        path = write_config(tmp_path, "")

        try:
            assert load_config(path).api.instance == "https://dotenv.example"
        finally:
            os.environ.pop("MPVTUBE_INSTANCE", None)


class TestPlayerConfigValidate:
    def test_negative_retries(self) -> None:
        with pytest.raises(ValueError):
            PlayerConfig(num_retries=-1).validate()
