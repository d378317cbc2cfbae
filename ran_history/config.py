"""
Configuration for the command history.

Values come from, lowest precedence first: built-in defaults, the YAML
file at ~/.ran/config.yaml, and RAN_* environment variables. The CLI
applies its own flags on top.

Example ~/.ran/config.yaml:

```yaml
db_path: ~/.ran/history.db
projects_dir: ~/.claude/projects
default_limit: 20
pending_result_window: 200
```
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DATA_DIR = Path.home() / ".ran"
DEFAULT_DB_PATH = DATA_DIR / "history.db"
DEFAULT_CONFIG_PATH = DATA_DIR / "config.yaml"
DEFAULT_PROJECTS_DIR = Path.home() / ".claude" / "projects"
DEFAULT_ONBOARD_TARGET = Path.home() / ".claude" / "CLAUDE.md"

IN_MEMORY = ":memory:"

_ENV_VARS = {
    "db_path": "RAN_DB_PATH",
    "projects_dir": "RAN_PROJECTS_DIR",
    "default_limit": "RAN_DEFAULT_LIMIT",
    "pending_result_window": "RAN_PENDING_RESULT_WINDOW",
    "onboard_target": "RAN_ONBOARD_TARGET",
}


@dataclass
class HistoryConfig:
    """Configuration for the command history."""

    db_path: str | Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    projects_dir: Path = field(default_factory=lambda: DEFAULT_PROJECTS_DIR)
    default_limit: int = 20
    pending_result_window: int = 200
    onboard_target: Path = field(default_factory=lambda: DEFAULT_ONBOARD_TARGET)

    def __post_init__(self) -> None:
        if self.db_path != IN_MEMORY:
            self.db_path = Path(self.db_path).expanduser()
        self.projects_dir = Path(self.projects_dir).expanduser()
        self.onboard_target = Path(self.onboard_target).expanduser()
        if self.default_limit < 1:
            raise ConfigError("default_limit", "must be at least 1", str(self.default_limit))
        if self.pending_result_window < 0:
            raise ConfigError(
                "pending_result_window", "must not be negative", str(self.pending_result_window)
            )

    @classmethod
    def from_env(cls, base: HistoryConfig | None = None) -> HistoryConfig:
        """Create config from RAN_* environment variables over ``base``."""
        base = base or cls()
        return replace(base, **_coerce(_env_values(), source="environment"))

    @classmethod
    def from_file(cls, path: Path | None = None) -> HistoryConfig:
        """Load configuration from a YAML file; a missing file yields defaults."""
        path = path or DEFAULT_CONFIG_PATH
        if not path.exists():
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError("config_file", str(e), str(path)) from e

        if not isinstance(data, dict):
            raise ConfigError("config_file", "top level must be a mapping", str(path))

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys in {path}: {', '.join(unknown)}")

        values = {k: v for k, v in data.items() if k in known}
        logger.debug(f"Loaded config from {path}")
        return cls(**_coerce(values, source=str(path)))

    @classmethod
    def load(cls, config_path: Path | None = None) -> HistoryConfig:
        """Defaults, then the YAML file, then the environment."""
        return cls.from_env(cls.from_file(config_path))

    @property
    def in_memory(self) -> bool:
        return self.db_path == IN_MEMORY


def _env_values() -> dict[str, str]:
    values = {}
    for name, var in _ENV_VARS.items():
        value = os.environ.get(var)
        if value:
            values[name] = value
    return values


def _coerce(values: dict[str, Any], source: str) -> dict[str, Any]:
    """Convert raw config values to field types."""
    result: dict[str, Any] = {}
    for name, value in values.items():
        if name in ("default_limit", "pending_result_window"):
            try:
                result[name] = int(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(name, f"expected an integer ({source})", str(value)) from e
        elif name == "db_path" and value == IN_MEMORY:
            result[name] = value
        else:
            result[name] = Path(str(value))
    return result
