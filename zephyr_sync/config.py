"""
Configuration for the sync engine.

Configuration can be provided directly, read from environment variables,
or loaded from the ``zephyr`` section of a YAML settings file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ValidationError

SYNC_KEY = "ZephyrSyncKey"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ZephyrConfig:
    """Configuration for a Zephyr sync engine.

    Environment Variables:
        ZEPHYR_DEBUG: Enable debug status logging (default: false)
        ZEPHYR_FLUSH_ON_CHANGE: Flush the remote store after every push (default: true)
        ZEPHYR_LOCAL_PATH: Path of the JSON file backing the local store
        ZEPHYR_MONITORED_KEYS: Comma separated keys to monitor on start

    Attributes:
        debug_logging_enabled: Emit status messages for syncs and subscriptions
        flush_remote_on_every_change: Ask the remote store to flush after each pushed key
        sync_key: Reserved key holding the last sync timestamp in each store
        local_path: Path for a file-backed local store (in-memory if unset)
        monitored_keys: Keys monitored as soon as the engine starts
    """

    debug_logging_enabled: bool = False
    flush_remote_on_every_change: bool = True
    sync_key: str = SYNC_KEY
    local_path: str | None = None
    monitored_keys: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.sync_key:
            raise ValidationError("sync_key", "must be a non-empty string")
        if self.sync_key in self.monitored_keys:
            raise ValidationError("monitored_keys", "cannot contain the sync key", self.sync_key)

    @classmethod
    def from_environment(cls) -> ZephyrConfig:
        """Create configuration from environment variables."""
        keys = os.environ.get("ZEPHYR_MONITORED_KEYS", "")
        return cls(
            debug_logging_enabled=_parse_bool(os.environ.get("ZEPHYR_DEBUG", "false")),
            flush_remote_on_every_change=_parse_bool(
                os.environ.get("ZEPHYR_FLUSH_ON_CHANGE", "true")
            ),
            local_path=os.environ.get("ZEPHYR_LOCAL_PATH"),
            monitored_keys=[k.strip() for k in keys.split(",") if k.strip()],
        )

    @classmethod
    def from_yaml(cls, path: Path) -> ZephyrConfig:
        """Load configuration from the ``zephyr`` section of a YAML file.

        ```yaml
        zephyr:
          debug_logging_enabled: true
          flush_remote_on_every_change: false
          local_path: ~/.zephyr/local.json
          monitored_keys: ["theme", "volume"]
        ```

        A missing file or section yields the defaults.
        """
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}

        section = data.get("zephyr") or {}
        if not isinstance(section, dict):
            raise ValidationError("zephyr", "section must be a mapping")

        local_path = section.get("local_path")
        if local_path:
            local_path = str(Path(local_path).expanduser())

        return cls(
            debug_logging_enabled=bool(section.get("debug_logging_enabled", False)),
            flush_remote_on_every_change=bool(section.get("flush_remote_on_every_change", True)),
            sync_key=section.get("sync_key", SYNC_KEY),
            local_path=local_path,
            monitored_keys=list(section.get("monitored_keys", [])),
        )
