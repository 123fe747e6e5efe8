"""Configuration for the gro CLI.

Paths live under ``$XDG_CONFIG_HOME/google-readonly`` (or
``~/.config/google-readonly``):

- ``credentials.json``: OAuth client config downloaded from Google Cloud
- ``token.json``: OAuth token (file storage, and the legacy location)
- ``config.json``: user settings such as the cache TTL

Process settings come from ``GRO_*`` environment variables via
pydantic-settings.
"""

from __future__ import annotations

import json
import os
import stat
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from google_readonly.errors import UserError

DIR_NAME = "google-readonly"
CREDENTIALS_FILE = "credentials.json"
TOKEN_FILE = "token.json"
CONFIG_FILE = "config.json"

DIR_PERM = stat.S_IRWXU  # 0700
TOKEN_PERM = stat.S_IRUSR | stat.S_IWUSR  # 0600

DEFAULT_CACHE_TTL_HOURS = 24


class Settings(BaseSettings):
    """Process settings loaded from GRO_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GRO_",
        case_sensitive=False,
        extra="ignore",
    )

    # Force a storage backend: "keychain", "secret-tool" or "file".
    # Empty means probe the host and pick the most secure one.
    token_backend: str = ""
    log_level: str = "WARNING"
    keyring_service: str = DIR_NAME
    secret_tool_timeout: float = 5.0

    @field_validator("token_backend", "log_level")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return v.strip()


def get_config_dir() -> Path:
    """Return the configuration directory, creating it (0700) if needed."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    config_dir = base / DIR_NAME
    config_dir.mkdir(parents=True, exist_ok=True, mode=DIR_PERM)
    return config_dir


def get_credentials_path() -> Path:
    """Return the full path to credentials.json."""
    return get_config_dir() / CREDENTIALS_FILE


def get_token_path() -> Path:
    """Return the full path to token.json (file storage)."""
    return get_config_dir() / TOKEN_FILE


def get_config_path() -> Path:
    """Return the full path to config.json."""
    return get_config_dir() / CONFIG_FILE


def shorten_path(path: str | Path) -> str:
    """Replace the home directory prefix with ~ for display.

    Keeps usernames out of messages.
    """
    text = str(path)
    home = str(Path.home())
    if text == home or text.startswith(home + os.sep):
        return "~" + text[len(home) :]
    return text


@dataclass
class UserConfig:
    """User-configurable settings stored in config.json."""

    cache_ttl_hours: int = DEFAULT_CACHE_TTL_HOURS


def load_config(path: Path | None = None) -> UserConfig:
    """Load config.json, returning defaults if it does not exist."""
    path = path or get_config_path()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return UserConfig()
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise UserError(f"Unable to read config file {shorten_path(path)}: {e}") from e

    if not isinstance(data, dict):
        raise UserError(f"Config file {shorten_path(path)} must contain a JSON object")

    try:
        ttl = int(data.get("cache_ttl_hours", 0) or 0)
    except (TypeError, ValueError) as e:
        raise UserError(
            f"Invalid cache_ttl_hours in {shorten_path(path)}: expected a number of hours"
        ) from e

    return UserConfig(cache_ttl_hours=ttl if ttl > 0 else DEFAULT_CACHE_TTL_HOURS)


def save_config(cfg: UserConfig, path: Path | None = None) -> None:
    """Write config.json atomically with owner-only permissions.

    The temp file is created 0600 by mkstemp and renamed into place.
    """
    path = path or get_config_path()
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=".config-", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(asdict(cfg), indent=2))
        temp_path.chmod(TOKEN_PERM)
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise UserError(f"Unable to write config file {shorten_path(path)}: {e}") from e


def get_cache_ttl_hours() -> int:
    """Return the configured cache TTL in hours, or the default on error."""
    try:
        return load_config().cache_ttl_hours
    except UserError:
        return DEFAULT_CACHE_TTL_HOURS
