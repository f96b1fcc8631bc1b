"""Store configuration.

Loaded from an optional YAML file. The YAML keys mirror StoreConfig:

  data_dir: path (optional, defaults to ~/.reentry)
  backup_count: int >= 0 (optional, defaults to 3)
  autosave_interval: seconds > 0 (optional, defaults to 30)
  consult_backups_when_missing: true | false (optional, defaults to false)

The REENTRY_HOME environment variable overrides data_dir.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_DATA_DIR = Path.home() / ".reentry"
DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / "config.yml"
DATA_DIR_ENV = "REENTRY_HOME"


@dataclass(frozen=True)
class StoreConfig:
    """Everything a DataStore needs to know about where and how to persist."""

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    backup_count: int = 3
    autosave_interval: float = 30.0
    """Seconds between autosave ticks."""

    consult_backups_when_missing: bool = False
    """If True, a missing data.json still falls back to the backups."""


def load_config(path: Path | None = None) -> StoreConfig:
    """Load a StoreConfig from YAML, falling back to defaults.

    Raises:
        ValueError: if the file is not a mapping or a value is invalid.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config must be a mapping (source: {config_path})")
        data = loaded

    config = _parse_config(data, source=str(config_path))

    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        config = replace(config, data_dir=Path(env_dir).expanduser())
    return config


def _parse_config(data: dict[str, Any], source: str = "") -> StoreConfig:
    defaults = StoreConfig()

    data_dir = data.get("data_dir")
    if data_dir is not None and not isinstance(data_dir, str):
        raise ValueError(f"Invalid data_dir {data_dir!r} (source: {source})")

    backup_count = data.get("backup_count", defaults.backup_count)
    if isinstance(backup_count, bool) or not isinstance(backup_count, int) or backup_count < 0:
        raise ValueError(f"Invalid backup_count {backup_count!r} (source: {source})")

    interval = data.get("autosave_interval", defaults.autosave_interval)
    if isinstance(interval, bool) or not isinstance(interval, int | float) or interval <= 0:
        raise ValueError(f"Invalid autosave_interval {interval!r} (source: {source})")

    consult = data.get("consult_backups_when_missing", defaults.consult_backups_when_missing)

    return StoreConfig(
        data_dir=Path(data_dir).expanduser() if data_dir else defaults.data_dir,
        backup_count=backup_count,
        autosave_interval=float(interval),
        consult_backups_when_missing=bool(consult),
    )
