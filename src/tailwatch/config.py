"""Configuration for the log watcher.

Settings come from defaults, then ``TAILWATCH_*`` environment variables, then
an optional YAML file, then command-line flags.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "TAILWATCH_"


@dataclass
class WatcherConfig:
    """Configuration for a WatchSupervisor.

    Attributes:
        file_path: Log file to watch (default: test.log).
        max_lines: Records retained in history and backfilled on start (default: 1000).
        buffer_size: Trailing window read per tail read, in bytes (default: 16384).
        rotation_size: Rotate once the file reaches this many bytes (default: 5 MiB).
        compression: Gzip rotated files in the background (default: False).
        watch_interval_ms: Heartbeat interval T in milliseconds (default: 1000).
        cycle_lines: Lines read per watch cycle (default: 10).
        log_dir: Directory for the watcher's own logs (default: /tmp/tailwatch_logs).
        log_level: Console log level (default: INFO).
    """

    file_path: str = "test.log"
    max_lines: int = 1000
    buffer_size: int = 16384
    rotation_size: int = 5 * 1024 * 1024
    compression: bool = False
    watch_interval_ms: int = 1000
    cycle_lines: int = 10
    log_dir: str = "/tmp/tailwatch_logs"
    log_level: str = "INFO"

    @property
    def heartbeat_seconds(self) -> float:
        return self.watch_interval_ms / 1000

    def validate(self) -> WatcherConfig:
        """Check numeric settings.

        Raises:
            ValueError: If any size, count or interval is not positive.
        """
        for name in ("max_lines", "buffer_size", "rotation_size", "watch_interval_ms", "cycle_lines"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not self.file_path:
            raise ValueError("file_path must not be empty")
        return self

    def merged(self, overrides: Mapping[str, Any]) -> WatcherConfig:
        """Return a copy with the non-None ``overrides`` applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> WatcherConfig:
        """Build a config from ``TAILWATCH_*`` environment variables."""
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = _coerce(f.name, raw, f.type)
        # TAILWATCH_FILE is the documented short form
        if "file_path" not in overrides and env.get(ENV_PREFIX + "FILE"):
            overrides["file_path"] = env[ENV_PREFIX + "FILE"]
        return cls().merged(overrides)


def _coerce(name: str, raw: str, type_name: Any) -> Any:
    type_name = str(type_name)
    if type_name == "bool":
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if type_name == "int":
        try:
            return int(raw)
        except ValueError as e:
            raise ValueError(f"{ENV_PREFIX}{name.upper()} must be an integer, got {raw!r}") from e
    return raw


def load_config(config_path: str | Path, base: WatcherConfig | None = None) -> WatcherConfig:
    """Load watcher settings from a YAML file.

    Args:
        config_path: YAML file containing a mapping of WatcherConfig fields.
        base: Config to apply the file on top of (default: plain defaults).

    Returns:
        Merged configuration.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the YAML is invalid, not a mapping, or has unknown keys
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse configuration YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    logger.debug(f"Loaded watcher configuration from {path}")
    return (base or WatcherConfig()).merged(data)
