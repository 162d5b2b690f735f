# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Configuration management for analog.

Values are resolved in order: built-in defaults, YAML config file,
environment variables, then explicit overrides from the command line.
"""

import os
from dataclasses import dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .duration import parse_duration
from .errors import ConfigError
from .models import TimeWindow

ALL_LOG_GROUPS = "all"
DEFAULT_CONFIG_PATH = Path.home() / ".analog" / "config.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def split_log_groups(values) -> Tuple[str, ...]:
    """Flatten repeated and comma-separated log group arguments."""
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    names: List[str] = []
    for value in values:
        for part in str(value).split(","):
            part = part.strip()
            if part and part not in names:
                names.append(part)
    return tuple(names)


@dataclass
class AppConfig:
    """Runtime configuration container."""

    # AWS settings
    region: Optional[str] = "us-east-1"
    profile: Optional[str] = "default"
    timeout: float = 60.0  # seconds, connect and read

    # Extraction settings
    log_groups: Tuple[str, ...] = (ALL_LOG_GROUPS,)
    duration: str = "1h"
    max_concurrent: int = 5
    max_pages: Optional[int] = None

    # Storage settings
    sqlite_path: str = "logs.db"

    # Logging settings
    log_level: str = "INFO"
    log_file: Optional[str] = "output.log"

    debug: bool = False

    config_path: Optional[Path] = field(default=None, repr=False)

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "AppConfig":
        """
        Build a configuration from file, environment and overrides.

        Args:
            config_path: YAML file to read. When None, the default path is
                used if it exists.
            overrides: Values from the command line; None entries are ignored.
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ConfigError: if an explicitly given config file is missing or
                any file cannot be parsed.
        """
        config = cls()

        if config_path is not None:
            config_path = Path(config_path).expanduser()
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
            config.config_path = config_path
        elif DEFAULT_CONFIG_PATH.exists():
            config.config_path = DEFAULT_CONFIG_PATH

        if config.config_path is not None:
            config.load_from_file(config.config_path)

        config.load_from_env(os.environ if environ is None else environ)

        if overrides:
            config.apply_overrides(overrides)

        return config

    def load_from_file(self, path: Path) -> None:
        """Load configuration from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        aws = data.get("aws") or {}
        self.region = aws.get("region", self.region)
        self.profile = aws.get("profile", self.profile)
        self.timeout = aws.get("timeout", self.timeout)

        extract = data.get("extract") or {}
        if "log_groups" in extract:
            self.log_groups = split_log_groups(extract["log_groups"])
        self.duration = str(extract.get("duration", self.duration))
        self.max_concurrent = extract.get("max_concurrent", self.max_concurrent)
        self.max_pages = extract.get("max_pages", self.max_pages)

        storage = data.get("storage") or {}
        self.sqlite_path = storage.get("sqlite_path", self.sqlite_path)

        logging_section = data.get("logging") or {}
        self.log_level = logging_section.get("level", self.log_level)
        self.log_file = logging_section.get("file", self.log_file)

    def load_from_env(self, environ: Dict[str, str]) -> None:
        """Load configuration from ANALOG_* environment variables."""
        if env_region := environ.get("ANALOG_REGION"):
            self.region = env_region

        if env_profile := environ.get("ANALOG_PROFILE"):
            self.profile = env_profile

        if env_groups := environ.get("ANALOG_LOG_GROUPS"):
            self.log_groups = split_log_groups(env_groups)

        if env_duration := environ.get("ANALOG_DURATION"):
            self.duration = env_duration

        if env_path := environ.get("ANALOG_SQLITE_PATH"):
            self.sqlite_path = env_path

        if env_level := environ.get("ANALOG_LOG_LEVEL"):
            self.log_level = env_level

        if environ.get("ANALOG_DEBUG"):
            self.debug = True

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Apply command-line values, skipping those left unset."""
        known = {f.name for f in fields(self)}
        for key, value in overrides.items():
            if value is None or key not in known:
                continue
            if key == "log_groups":
                if not value:
                    continue
                value = split_log_groups(value)
            setattr(self, key, value)

    def duration_delta(self) -> timedelta:
        """Parse the configured duration expression."""
        return parse_duration(self.duration)

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigError: listing every invalid value
        """
        errors = []

        try:
            TimeWindow.ending_now(self.duration_delta())
        except ConfigError as e:
            errors.append(str(e))

        if not isinstance(self.max_concurrent, int) or self.max_concurrent < 1:
            errors.append("max_concurrent must be a positive integer")

        if self.max_pages is not None and (not isinstance(self.max_pages, int) or self.max_pages < 1):
            errors.append("max_pages must be a positive integer")

        if not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            errors.append("timeout must be positive")

        if not self.sqlite_path:
            errors.append("sqlite_path must not be empty")

        if str(self.log_level).upper() not in LOG_LEVELS:
            errors.append(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if errors:
            raise ConfigError("Invalid configuration: " + "; ".join(errors))

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            k: v for k, v in self.__dict__.items()
            if not k.startswith("_") and k != "config_path"
        }
