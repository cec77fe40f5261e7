"""Configuration loader with type-safe dataclasses."""

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import yaml


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


DEFAULT_RETRY_DELAY_SECONDS = 2.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0

REQUIRED_KEYS = ("log_file", "check_interval_seconds", "max_retries", "failure_threshold", "ping_target")


@dataclass(frozen=True)
class MonitorConfig:
    """Validated monitor configuration.

    Attributes:
        log_file: Path of the durable log destination (opened in append mode).
        check_interval_seconds: Seconds between the start of consecutive rounds.
        max_retries: Additional attempts per target per round after the first one.
        failure_threshold: Consecutive fully-failed rounds before an outage is declared.
        targets: Ordered target URLs. Duplicates are checked independently.
        retry_delay_seconds: Pause between attempts against the same target.
        request_timeout_seconds: Timeout of a single HTTP attempt.
    """

    log_file: str
    check_interval_seconds: int
    max_retries: int
    failure_threshold: int
    targets: tuple[str, ...]
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not self.log_file:
            raise ConfigError("log_file cannot be empty")
        if self.check_interval_seconds < 1:
            raise ConfigError(f"check_interval_seconds must be positive (got {self.check_interval_seconds})")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be non-negative (got {self.max_retries})")
        if self.failure_threshold < 1:
            raise ConfigError(f"failure_threshold must be at least 1 (got {self.failure_threshold})")
        if not self.targets:
            raise ConfigError("ping_target must contain at least one URL")
        for target in self.targets:
            _validate_target(target)
        if self.retry_delay_seconds < 0:
            raise ConfigError(f"retry_delay_seconds must be non-negative (got {self.retry_delay_seconds})")
        if self.request_timeout_seconds <= 0:
            raise ConfigError(f"request_timeout_seconds must be positive (got {self.request_timeout_seconds})")

    @property
    def round_budget_seconds(self) -> float:
        """Worst-case duration of one target's retry sequence."""
        attempts = self.max_retries + 1
        return attempts * self.request_timeout_seconds + self.max_retries * self.retry_delay_seconds


def _validate_target(target: str) -> None:
    """Reject anything that is not an absolute http(s) URL."""
    parsed = urlparse(target)
    if parsed.scheme not in ("http", "https"):
        raise ConfigError(f"ping_target must use http or https scheme: '{target}'")
    if not parsed.netloc:
        raise ConfigError(f"Invalid URL in ping_target: '{target}'")


def parse_targets(value: str | list | None) -> tuple[str, ...]:
    """Normalize ping_target into an ordered tuple of URLs.

    Accepts a single URL, a comma-separated list, or a YAML list.
    Surrounding whitespace is stripped and empty entries are dropped.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigError(f"ping_target entries must be strings (got {item!r})")
            items.extend(item.split(","))
    else:
        raise ConfigError("ping_target must be a string or a list of strings")
    return tuple(item.strip() for item in items if item.strip())


def _as_int(data: dict, key: str) -> int:
    value = data[key]
    # bool is an int subclass; "true" is never a valid count
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer (got {value!r})")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be an integer (got {value!r})")


def _as_float(data: dict, key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number (got {value!r})")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number (got {value!r})")


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - LINKWATCH_LOG_FILE: Override log_file
    - LINKWATCH_CHECK_INTERVAL: Override check_interval_seconds
    - LINKWATCH_MAX_RETRIES: Override max_retries
    - LINKWATCH_FAILURE_THRESHOLD: Override failure_threshold
    - LINKWATCH_PING_TARGET: Override ping_target (comma-separated)
    """
    overrides = {
        "LINKWATCH_LOG_FILE": "log_file",
        "LINKWATCH_CHECK_INTERVAL": "check_interval_seconds",
        "LINKWATCH_MAX_RETRIES": "max_retries",
        "LINKWATCH_FAILURE_THRESHOLD": "failure_threshold",
        "LINKWATCH_PING_TARGET": "ping_target",
    }
    for env_name, key in overrides.items():
        value = os.environ.get(env_name)
        if value is not None:
            config_data[key] = value
    return config_data


def load_config(config_path: str) -> MonitorConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated MonitorConfig object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}. Make sure the file exists.")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {config_path}: {e}. Check the file syntax.")
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    data = _apply_env_overrides(data)

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ConfigError(f"Configuration is missing required field(s): {', '.join(missing)}")

    return MonitorConfig(
        log_file=str(data["log_file"]),
        check_interval_seconds=_as_int(data, "check_interval_seconds"),
        max_retries=_as_int(data, "max_retries"),
        failure_threshold=_as_int(data, "failure_threshold"),
        targets=parse_targets(data["ping_target"]),
        retry_delay_seconds=_as_float(data, "retry_delay_seconds", DEFAULT_RETRY_DELAY_SECONDS),
        request_timeout_seconds=_as_float(data, "request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS),
    )
