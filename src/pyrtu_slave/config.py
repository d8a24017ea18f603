"""Slave configuration: SlaveConfig dataclass and its JSON config file.

The file keeps the established on-disk key names, for example::

    {
      "port": 502,
      "webViewPort": 3000,
      "logFilePath": "./log",
      "id": 1
    }

Keys that are absent take their defaults; unknown keys are ignored.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .storage import write_json_atomic

logger = logging.getLogger(__name__)

# dataclass field -> JSON key
_JSON_KEYS: dict[str, str] = {
    "unit_id": "id",
    "host": "host",
    "port": "port",
    "web_view_port": "webViewPort",
    "log_file_path": "logFilePath",
    "tags_path": "tagsPath",
    "frame_timeout": "frameTimeout",
    "debug": "debug",
}


@dataclass
class SlaveConfig:
    """Runtime configuration for one slave.

    Attributes:
        unit_id: Unit id this slave answers to (1-247)
        host: Modbus listen address
        port: Modbus listen port
        web_view_port: Dashboard port, 0 disables the dashboard
        log_file_path: File that serve appends log records to, empty disables
        tags_path: JSON file holding the register bank
        frame_timeout: Seconds a partial frame may wait for its remaining bytes
        debug: Enable debug logging
    """

    unit_id: int = 1
    host: str = "127.0.0.1"
    port: int = 502
    web_view_port: int = 3000
    log_file_path: str = "./log"
    tags_path: str = "tags.json"
    frame_timeout: float = 1.0
    debug: bool = False

    def validate(self) -> None:
        """Raise ConfigError for out-of-range values."""
        if not 1 <= self.unit_id <= 247:
            raise ConfigError(f"unit id must be 1-247, got {self.unit_id}")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port must be 0-65535, got {self.port}")
        if not 0 <= self.web_view_port <= 65535:
            raise ConfigError(f"webViewPort must be 0-65535, got {self.web_view_port}")
        if self.frame_timeout <= 0:
            raise ConfigError(f"frameTimeout must be positive, got {self.frame_timeout}")
        if not self.tags_path:
            raise ConfigError("tagsPath cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        return {_JSON_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SlaveConfig:
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            key = _JSON_KEYS[f.name]
            if key not in data:
                continue
            default = getattr(cls, f.name)
            value = data[key]
            # bool is an int subclass; keep each key to its default's type
            if isinstance(default, bool):
                ok = isinstance(value, bool)
            elif isinstance(default, float):
                ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            elif isinstance(default, int):
                ok = isinstance(value, int) and not isinstance(value, bool)
            else:
                ok = isinstance(value, str)
            if not ok:
                raise ConfigError(f"{key} has wrong type: {value!r}")
            kwargs[f.name] = float(value) if isinstance(default, float) else value
        return cls(**kwargs)

    def with_overrides(self, **overrides: Any) -> SlaveConfig:
        """Copy with every override that is not None applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(path: str | Path) -> SlaveConfig:
    """
    Load and validate the config file. A missing file yields the defaults,
    which are written to path. Malformed or invalid content raises ConfigError.
    """
    p = Path(path)
    try:
        with open(p, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info("No config in %s, using defaults", p)
        config = SlaveConfig()
        save_config(config, p)
        return config
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON: {e}", path=str(p)) from e

    if not isinstance(data, dict):
        raise ConfigError("expected a JSON object", path=str(p))
    try:
        config = SlaveConfig.from_dict(data)
        config.validate()
    except ConfigError as e:
        raise ConfigError(str(e), path=str(p)) from e
    return config


def save_config(config: SlaveConfig, path: str | Path) -> None:
    write_json_atomic(Path(path), config.to_dict())
