"""Configuration for tubeport, stored as TOML under ``~/.tubeport/``.

The file holds Spotify app credentials and a YouTube access token, so it is
written owner-only and a warning is raised when it is found readable by
anyone else.
"""

from __future__ import annotations

import os
import stat
import tomllib
import warnings
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr

PrivacyStatus = Literal["private", "unlisted", "public"]


def get_base_dir() -> Path:
    """Return ``~/.tubeport``, the home of the config file and logs."""
    return Path.home() / ".tubeport"


def get_log_dir() -> Path:
    return get_base_dir() / "logs"


def _config_path() -> Path:
    return get_base_dir() / "config.toml"


class GeneralConfig(BaseModel):
    log_level: str = Field(default="info", description="Logging level")
    http_timeout: float = Field(default=30.0, gt=0, description="Per-request HTTP timeout in seconds")


class SpotifyConfig(BaseModel):
    """App credentials for the client-credentials flow (no user login)."""

    client_id: str = Field(default="", description="Spotify Developer App client ID")
    client_secret: SecretStr = Field(default=SecretStr(""), description="Spotify Developer App client secret")


class YouTubeConfig(BaseModel):
    """Fallback OAuth token and settings for playlists created on YouTube."""

    access_token: SecretStr = Field(default=SecretStr(""), description="YouTube OAuth access token")
    privacy_status: PrivacyStatus = Field(default="private", description="Privacy of created playlists")


class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    spotify: SpotifyConfig = Field(default_factory=SpotifyConfig)
    youtube: YouTubeConfig = Field(default_factory=YouTubeConfig)

    @property
    def log_dir(self) -> Path:
        return get_log_dir()


def ensure_dirs() -> None:
    """Create ``~/.tubeport`` and its log directory, owner-only."""
    get_base_dir().mkdir(mode=0o700, parents=True, exist_ok=True)
    get_log_dir().mkdir(mode=0o700, parents=True, exist_ok=True)


def check_config_permissions() -> str | None:
    """Describe the problem if group or others can access the config file."""
    path = _config_path()
    if not path.is_file():
        return None
    mode = stat.S_IMODE(path.stat().st_mode)
    if not mode & 0o077:
        return None
    return f"Config file {path} has permissive permissions ({oct(mode)}); run: chmod 600 {path}"


def load_config() -> AppConfig:
    """Read the config file; a missing file yields the defaults."""
    path = _config_path()
    if not path.is_file():
        return AppConfig()

    problem = check_config_permissions()
    if problem:
        warnings.warn(problem, stacklevel=2)

    with open(path, "rb") as f:
        return AppConfig.model_validate(tomllib.load(f))


def _format_toml_value(value: object) -> str:
    if isinstance(value, SecretStr):
        value = value.get_secret_value()
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return repr(value)
    msg = f"Unsupported TOML value type: {type(value)}"
    raise TypeError(msg)


def _dump_toml(config: AppConfig) -> str:
    """Render *config* as one TOML table per section, scalars only."""
    lines: list[str] = []
    for section_name in type(config).model_fields:
        section = getattr(config, section_name)
        lines.append(f"[{section_name}]")
        lines.extend(f"{key} = {_format_toml_value(value)}" for key, value in section.model_dump().items())
        lines.append("")
    return "\n".join(lines)


def save_config(config: AppConfig) -> None:
    """Write *config* and restrict the file to its owner."""
    ensure_dirs()
    path = _config_path()
    path.write_text(_dump_toml(config), encoding="utf-8")
    os.chmod(path, 0o600)
