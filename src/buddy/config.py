"""
Interpreter configuration.

Settings can be given in code (InterpreterConfig(...)), or read from a
YAML file:

    max_depth: 512
    module_paths: [".", "lib"]
    module_extension: ".bud"
    log_level: DEBUG

load_config() uses the explicit path when given, then $BUDDY_CONFIG,
then ./buddy.yaml, and falls back to the defaults.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)


CONFIG_ENV_VAR = "BUDDY_CONFIG"
CONFIG_FILENAME = "buddy.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Invalid or unreadable configuration."""
    pass


@dataclass
class InterpreterConfig:
    """Settings for an Interpreter instance."""
    max_depth: int = 1024
    module_paths: List[str] = field(default_factory=lambda: ["."])
    module_extension: str = ".bud"
    log_level: str = "WARNING"

    def __post_init__(self):
        if not isinstance(self.max_depth, int) or isinstance(self.max_depth, bool) \
                or self.max_depth <= 0:
            raise ConfigError(f"max_depth must be a positive integer, got {self.max_depth!r}")
        if isinstance(self.module_paths, str):
            self.module_paths = [self.module_paths]
        if not all(isinstance(p, str) for p in self.module_paths):
            raise ConfigError("module_paths must be a list of strings")
        if not self.module_extension.startswith("."):
            self.module_extension = "." + self.module_extension
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterpreterConfig":
        """
        Build a config from a mapping, rejecting unknown keys.

        Raises:
            ConfigError: On unknown keys or invalid values
        """
        if not isinstance(data, dict):
            raise ConfigError(f"configuration must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration key(s): {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _default_path() -> Optional[Path]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    local = Path.cwd() / CONFIG_FILENAME
    if local.is_file():
        return local
    return None


def load_config(path: Union[str, Path, None] = None) -> InterpreterConfig:
    """
    Load interpreter configuration from YAML.

    Args:
        path: Explicit config file; when None, $BUDDY_CONFIG or ./buddy.yaml

    Returns:
        The loaded config, or the defaults when no file applies

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    config_path = Path(path) if path is not None else _default_path()
    if config_path is None:
        return InterpreterConfig()
    if not config_path.is_file():
        raise ConfigError(f"config not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"{config_path}: invalid YAML: {exc}")
    except OSError as exc:
        raise ConfigError(f"{config_path}: {exc}")

    logger.debug("loaded configuration from %s", config_path)
    return InterpreterConfig.from_dict(data)
