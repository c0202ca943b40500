"""User configuration file and XDG-based defaults.

The configuration lives at ``$XDG_CONFIG_HOME/terraform-module-versions/config.toml``
(``~/.config`` when the variable is unset)::

    [diff]
    tool = "delta --side-by-side"

    [cache]
    dir = "/tmp/tfmodver-cache"
    ttl = "12h"

Command-line flags take precedence over the file, which takes precedence
over built-in defaults.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from tfmodver.constants import Constants
from tfmodver.errors import ConfigError

logger = logging.getLogger(__name__)

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass
class Config:
    """Settings read from the configuration file; ``None`` means not set."""
    diff_tool: Optional[str] = None
    cache_dir: Optional[str] = None
    cache_ttl: Optional[float] = None


def _xdg_home(env_name: str, fallback: str) -> str:
    value = os.environ.get(env_name)
    if value:
        return value
    return os.path.join(os.path.expanduser("~"), fallback)


def default_config_path() -> str:
    return os.path.join(
        _xdg_home(Constants.ENV_XDG_CONFIG_HOME, ".config"), Constants.APP_NAME, Constants.CONFIG_FILE_NAME
    )


def default_cache_dir() -> str:
    return os.path.join(_xdg_home(Constants.ENV_XDG_CACHE_HOME, ".cache"), Constants.APP_NAME)


def parse_duration(value: Any) -> float:
    """Parse a duration such as ``"24h"``, ``"1h30m"`` or ``"90"`` into seconds.

    Raises:
        ConfigError: the value is not a non-negative duration.
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ConfigError(f"invalid duration: {value!r}")
        return float(value)

    text = str(value).strip()
    if not text:
        raise ConfigError("invalid duration: empty value")
    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is not None:
        if seconds < 0:
            raise ConfigError(f"invalid duration: {value!r}")
        return seconds

    pos = 0
    total = 0.0
    while pos < len(text):
        m = _DURATION_PART_RE.match(text, pos)
        if not m:
            raise ConfigError(f"invalid duration: {value!r}")
        total += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
        pos = m.end()
    return total


def _load_toml(path: str) -> Dict[str, Any]:
    try:
        import tomllib as _toml  # type: ignore
    except ModuleNotFoundError:  # Python < 3.11
        import tomli as _toml  # type: ignore

    try:
        with open(path, "rb") as fh:
            return _toml.load(fh)
    except _toml.TOMLDecodeError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc


def _section(data: Dict[str, Any], name: str, path: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"invalid config file {path}: [{name}] must be a table")
    return section


def load_config(path: Optional[str] = None) -> Config:
    """Load the configuration file.

    A missing file yields an empty ``Config``.

    Raises:
        ConfigError: the path is a directory, unreadable, not valid TOML or
            holds an invalid value.
    """
    path = path or default_config_path()
    if not os.path.exists(path):
        logger.debug("No config file at %s", path)
        return Config()
    if os.path.isdir(path):
        raise ConfigError(f"config path is a directory: {path}")

    data = _load_toml(path)
    diff = _section(data, "diff", path)
    cache = _section(data, "cache", path)

    cfg = Config()
    tool = diff.get("tool")
    if tool:
        cfg.diff_tool = str(tool)
    cache_dir = cache.get("dir")
    if cache_dir:
        cfg.cache_dir = os.path.expanduser(str(cache_dir))
    ttl = cache.get("ttl")
    if ttl not in (None, ""):
        try:
            cfg.cache_ttl = parse_duration(ttl)
        except ConfigError as exc:
            raise ConfigError(f"invalid cache.ttl in config: {exc}") from exc
    logger.debug("Loaded config from %s", path)
    return cfg
