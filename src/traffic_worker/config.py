"""Worker configuration with JSON file and environment overrides."""

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .errors import ConfigError

ENV_PREFIX = "TRAFFIC_WORKER_"

API_BASE_URLS = {
    "dev": "http://0.0.0.0:8080",
    "prod": "http://api:8080",
}


@dataclass(frozen=True)
class WorkerConfig:
    """Settings for one worker process."""

    app_env: str = "prod"
    api_base_url: Optional[str] = None
    snapshot_dir: Path = Path("data") / "snapshots"
    db_path: Path = Path("data") / "vehicle_counts.db"

    # Cycle
    chunk_size: int = 20
    cycle_seconds: float = 750.0
    shuffle: bool = True
    shuffle_seed: Optional[int] = None

    # Collaborators
    fetch_timeout: float = 10.0
    inference_timeout: float = 60.0

    # Reporting
    report_every: int = 10
    log_level: str = "INFO"

    @property
    def resolved_api_base_url(self) -> str:
        """Return the inference API base URL, derived from app_env when unset."""
        if self.api_base_url:
            return self.api_base_url.rstrip("/")
        return API_BASE_URLS.get(self.app_env, API_BASE_URLS["prod"])

    def validate(self) -> "WorkerConfig":
        """Raise ConfigError if any value is out of range."""
        if self.app_env not in API_BASE_URLS:
            raise ConfigError(f"Unknown app_env: {self.app_env!r} (expected one of {sorted(API_BASE_URLS)})")
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.cycle_seconds <= 0:
            raise ConfigError(f"cycle_seconds must be positive, got {self.cycle_seconds}")
        if self.fetch_timeout <= 0 or self.inference_timeout <= 0:
            raise ConfigError("Timeouts must be positive")
        if self.report_every <= 0:
            raise ConfigError(f"report_every must be positive, got {self.report_every}")
        return self


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw JSON or environment value to the field's type."""
    if value is None:
        return None

    try:
        if name in ("snapshot_dir", "db_path"):
            return Path(value)
        if name in ("chunk_size", "report_every", "shuffle_seed"):
            return int(value)
        if name in ("cycle_seconds", "fetch_timeout", "inference_timeout"):
            return float(value)
        if name == "shuffle":
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() in ("1", "true", "yes", "on")
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e

    return str(value)


def _apply(config: WorkerConfig, values: Mapping[str, Any]) -> WorkerConfig:
    known = {f.name for f in fields(WorkerConfig)}
    updates = {}
    for key, value in values.items():
        if key not in known:
            raise ConfigError(f"Unknown config key: {key}")
        updates[key] = _coerce(key, value)
    return replace(config, **updates)


def load_config_file(path: Path) -> dict:
    """Load a JSON config file.

    Args:
        path: Path to the JSON file

    Returns:
        Dict of raw config values
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Failed to load config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict:
    """Collect overrides from APP_ENV and TRAFFIC_WORKER_* variables."""
    environ = os.environ if environ is None else environ
    values = {}

    if environ.get("APP_ENV"):
        values["app_env"] = environ["APP_ENV"]

    for f in fields(WorkerConfig):
        env_name = ENV_PREFIX + f.name.upper()
        if env_name in environ:
            values[f.name] = environ[env_name]

    return values


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> WorkerConfig:
    """Build the worker config: defaults, then file, then environment, then explicit overrides."""
    config = WorkerConfig()

    if path is not None:
        config = _apply(config, load_config_file(Path(path)))

    config = _apply(config, env_overrides(environ))

    if overrides:
        config = _apply(config, {k: v for k, v in overrides.items() if v is not None})

    return config.validate()
