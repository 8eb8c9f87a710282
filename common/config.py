# -*- coding: utf-8 -*-
"""
Configuration for tallytrack.

Settings come from dataclass defaults, then an optional JSON file, then
TALLYTRACK_* environment variables (highest priority).
"""

import json
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

ENV_PREFIX = "TALLYTRACK_"


class ConfigurationError(Exception):
    """Raised for invalid configuration values."""


@dataclass
class DatabaseConfig:
    path: str = "tallytrack.db"
    busy_timeout_s: float = 5.0

    def __post_init__(self):
        if self.busy_timeout_s < 0:
            raise ConfigurationError(
                f"busy_timeout_s must be >= 0, got {self.busy_timeout_s}"
            )


@dataclass
class ApiConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self):
        if self.port < 1 or self.port > 65535:
            raise ConfigurationError(
                f"port must be between 1 and 65535, got {self.port}"
            )


@dataclass
class LoggingConfig:
    log_dir: str = field(default_factory=lambda: os.path.join(os.getcwd(), "logs"))
    log_level: str = "INFO"
    file_logging: bool = True
    console_logging: bool = True
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5

    def __post_init__(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}. Must be one of {valid_levels}"
            )
        self.log_level = self.log_level.upper()


@dataclass
class PollerConfig:
    """Client-side reconciliation timings, in milliseconds."""

    base_url: str = "http://127.0.0.1:8000"
    refresh_interval_ms: int = 5000
    tick_interval_ms: int = 1000
    recovery_delay_ms: int = 2000
    request_timeout_s: float = 10.0

    def __post_init__(self):
        for name in ("refresh_interval_ms", "tick_interval_ms", "recovery_delay_ms"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be > 0")


@dataclass
class TallyConfig:
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    poller: PollerConfig = field(default_factory=PollerConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_SECTIONS = {
    "db": DatabaseConfig,
    "api": ApiConfig,
    "logging": LoggingConfig,
    "poller": PollerConfig,
}


def _coerce(raw: str, current: Any) -> Any:
    # bool first: bool is a subclass of int
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    if isinstance(current, list):
        return [p.strip() for p in raw.split(",") if p.strip()]
    return raw


def _env_overrides(
    values: Dict[str, Dict[str, Any]], environ: Dict[str, str]
) -> None:
    for section, cls in _SECTIONS.items():
        defaults = asdict(cls())
        for key, current in defaults.items():
            env_name = f"{ENV_PREFIX}{section.upper()}_{key.upper()}"
            if env_name not in environ:
                continue
            try:
                values.setdefault(section, {})[key] = _coerce(
                    environ[env_name], current
                )
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {env_name}: {e}")


def load_config(
    path: Optional[str] = None, environ: Optional[Dict[str, str]] = None
) -> TallyConfig:
    """
    Build a TallyConfig.

    Args:
        path: optional JSON file with {"db": {...}, "api": {...}, ...}
        environ: environment mapping, defaults to os.environ
    """
    environ = dict(os.environ if environ is None else environ)
    path = path or environ.get(f"{ENV_PREFIX}CONFIG")

    values: Dict[str, Dict[str, Any]] = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}")
        for section, body in loaded.items():
            if section not in _SECTIONS:
                raise ConfigurationError(f"Unknown config section: {section}")
            values[section] = dict(body)

    _env_overrides(values, environ)

    try:
        sections = {
            name: cls(**values.get(name, {})) for name, cls in _SECTIONS.items()
        }
    except TypeError as e:
        raise ConfigurationError(str(e))
    return TallyConfig(**sections)
