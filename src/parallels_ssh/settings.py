"""
Configuration loading for ssh-parallels

Search order (later overrides earlier):
1. Built-in defaults
2. /etc/ssh-parallels/config.toml (system-wide)
3. ~/.config/ssh-parallels/config.toml (user global)
4. ~/.ssh-parallels.toml (legacy dotfile)
5. ./.ssh-parallels.toml (local directory - adjacent invocation)
6. Environment variables (SSH_PARALLELS_*)
7. CLI arguments (highest priority)

Config files are only read, never written.
"""

from __future__ import annotations

import os
import logging
import tomllib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any

from .correlator import SUPPORTED_GUEST_OS
from .parallels import DEFAULT_PRLCTL, DEFAULT_TIMEOUT


logger = logging.getLogger(__name__)

# Config file names
CONFIG_FILENAME = "config.toml"
LOCAL_CONFIG_FILENAME = ".ssh-parallels.toml"

# Environment variable prefix
ENV_PREFIX = "SSH_PARALLELS_"


def get_config_dir() -> Path:
    """Get user config directory (XDG-compliant)."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "ssh-parallels"
    return Path.home() / ".config" / "ssh-parallels"


def get_config_paths() -> list[Path]:
    """
    Return list of config paths to check, in precedence order (lowest first).

    Returns paths that WOULD be checked - caller should verify existence.
    """
    return [
        Path("/etc/ssh-parallels") / CONFIG_FILENAME,
        get_config_dir() / CONFIG_FILENAME,
        Path.home() / LOCAL_CONFIG_FILENAME,
        Path.cwd() / LOCAL_CONFIG_FILENAME,
    ]


@dataclass
class Settings:
    """
    Merged configuration settings from all sources.

    Attributes represent the final resolved values after merging
    all config files and environment variables. CLI flags are applied
    on top by the CLI itself.
    """
    # Login defaults
    user: str = "root"
    port: int = 22
    ask: bool = False

    # Discovery
    workers: int = 1
    prlctl: str = DEFAULT_PRLCTL
    timeout: int = DEFAULT_TIMEOUT
    supported_os: list[str] = field(default_factory=lambda: sorted(SUPPORTED_GUEST_OS))

    # Metadata
    config_sources: list[str] = field(default_factory=list)


def _coerce(attr: str, value: Any) -> Any:
    """Convert a raw config value to the type of the Settings attribute."""
    match attr:
        case "port" | "workers" | "timeout":
            return int(value)
        case "ask":
            if isinstance(value, str):
                return value.lower() in ("1", "true", "yes")
            return bool(value)
        case "supported_os":
            if isinstance(value, str):
                value = value.split(",")
            return [str(item).strip() for item in value if str(item).strip()]
        case _:
            return str(value)


SETTING_NAMES = ("user", "port", "ask", "workers", "prlctl", "timeout", "supported_os")


def _merge_defaults(settings: Settings, data: dict[str, Any], source: str) -> None:
    """Merge [defaults] section into settings."""
    defaults = data.get("defaults", {})
    if not isinstance(defaults, dict):
        logger.warning(f"Ignoring non-table [defaults] in {source}")
        return

    for attr in SETTING_NAMES:
        if attr not in defaults:
            continue
        try:
            setattr(settings, attr, _coerce(attr, defaults[attr]))
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid value for {attr} in {source}: {e}")


def _apply_env_overrides(settings: Settings, environ: dict[str, str] | None = None) -> None:
    """Apply environment variable overrides."""
    environ = os.environ if environ is None else environ

    for attr in SETTING_NAMES:
        env_var = f"{ENV_PREFIX}{attr.upper()}"
        value = environ.get(env_var)
        if value is None or value == "":
            continue
        try:
            setattr(settings, attr, _coerce(attr, value))
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid value for {env_var}: {e}")
            continue
        settings.config_sources.append(f"env:{env_var}")


def load_settings(paths: list[Path] | None = None, environ: dict[str, str] | None = None) -> Settings:
    """
    Load and merge settings from all config sources.

    Args:
        paths: Config files to consider (defaults to get_config_paths())
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Merged Settings object with all values resolved.
    """
    settings = Settings()

    for config_path in paths if paths is not None else get_config_paths():
        if not config_path.exists():
            continue
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Failed to load {config_path}: {e}")
            continue
        _merge_defaults(settings, data, str(config_path))
        settings.config_sources.append(str(config_path))
        logger.debug(f"Loaded config from {config_path}")

    _apply_env_overrides(settings, environ)

    return settings
