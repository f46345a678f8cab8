"""Settings loaded from YAML, environment and command line."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError


ENV_PREFIX = "CAFFEINATE2_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(slots=True)
class Settings:
    """Runtime configuration for caffeinate2."""

    lock_file: Path | None = None
    track_start_time: bool = True
    verbose: bool = False
    sleep_toggle: str = "pmset"
    log_file: Path | None = None


_PATH_FIELDS = {"lock_file", "log_file"}
_BOOL_FIELDS = {"track_start_time", "verbose"}


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    """``$XDG_CONFIG_HOME/caffeinate2/config.yaml`` (``~/.config`` by default)."""
    env = os.environ if environ is None else environ
    base = env.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "caffeinate2" / "config.yaml"


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE:
        return True
    if isinstance(value, str) and value.strip().lower() in _FALSE:
        return False
    raise ConfigError(f"'{key}' must be a boolean, got {value!r}")


def _coerce(key: str, value: Any) -> Any:
    if key in _BOOL_FIELDS:
        return _parse_bool(key, value)
    if key in _PATH_FIELDS:
        if value is None:
            return None
        if not isinstance(value, str) or not value:
            raise ConfigError(f"'{key}' must be a path, got {value!r}")
        return Path(value).expanduser()
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string, got {value!r}")
    return value


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return payload


def load_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Merge defaults, the YAML file and ``CAFFEINATE2_*`` environment variables.

    An explicit ``config_path`` must exist; the default location is optional.
    """
    env = os.environ if environ is None else environ
    known = {item.name for item in fields(Settings)}
    values: dict[str, Any] = {}

    path = config_path
    if path is None:
        candidate = default_config_path(env)
        path = candidate if candidate.is_file() else None
    if path is not None:
        for key, value in _load_yaml(path).items():
            if key not in known:
                raise ConfigError(f"Unknown config key '{key}' in {path}")
            values[key] = _coerce(key, value)

    for key in known:
        raw = env.get(ENV_PREFIX + key.upper())
        if raw is not None and raw != "":
            values[key] = _coerce(key, raw)

    return replace(Settings(), **values)
