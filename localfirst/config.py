"""Configuration loading for localfirst."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class NodeConfig:
    name: str = "localfirst-node"


@dataclass
class DatabaseConfig:
    """Where the local collections are persisted."""

    db_path: str = "~/.localfirst/local.db"


@dataclass
class PreferencesConfig:
    """Where the change list versions are persisted."""

    path: str = "~/.localfirst/preferences.json"


@dataclass
class RemoteConfig:
    """Configuration for the remote source of truth."""

    base_url: str = "http://localhost:8080"
    timeout_seconds: float = 30.0
    fixture_path: str | None = None  # Serve from a local JSON document instead of HTTP


@dataclass
class SyncConfig:
    """Configuration for periodic sync."""

    enabled: bool = True
    interval_minutes: int = 5
    kinds: list[str] = field(default_factory=lambda: ["author", "topic"])
    max_backoff_seconds: int = 3600


@dataclass
class Config:
    node: NodeConfig = field(default_factory=NodeConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    preferences: PreferencesConfig = field(default_factory=PreferencesConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with LOCALFIRST_ prefix."""
    return os.environ.get(f"LOCALFIRST_{key}", default)


def _parse_kinds(value: str | list[str]) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    return [kind.strip() for kind in value if kind.strip()]


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    if name := _get_env("NODE_NAME"):
        config.node.name = name

    if db_path := _get_env("DB_PATH"):
        config.database.db_path = db_path

    if prefs_path := _get_env("PREFERENCES_PATH"):
        config.preferences.path = prefs_path

    # Remote overrides
    if base_url := _get_env("REMOTE_URL"):
        config.remote.base_url = base_url
    if timeout := _get_env("REMOTE_TIMEOUT"):
        config.remote.timeout_seconds = float(timeout)
    if fixture := _get_env("REMOTE_FIXTURE"):
        config.remote.fixture_path = fixture

    # Sync overrides
    if sync_enabled := _get_env("SYNC_ENABLED"):
        config.sync.enabled = sync_enabled.lower() in ("true", "1", "yes")
    if sync_interval := _get_env("SYNC_INTERVAL"):
        config.sync.interval_minutes = int(sync_interval)
    if kinds := _get_env("SYNC_KINDS"):
        config.sync.kinds = _parse_kinds(kinds)

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default config.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            if "node" in data:
                config.node = NodeConfig(
                    name=data["node"].get("name", config.node.name)
                )

            if "database" in data:
                config.database = DatabaseConfig(
                    db_path=data["database"].get("db_path", config.database.db_path)
                )

            if "preferences" in data:
                config.preferences = PreferencesConfig(
                    path=data["preferences"].get("path", config.preferences.path)
                )

            # Parse remote config
            if "remote" in data:
                remote_data = data["remote"]
                config.remote = RemoteConfig(
                    base_url=remote_data.get("base_url", config.remote.base_url),
                    timeout_seconds=remote_data.get(
                        "timeout_seconds", config.remote.timeout_seconds
                    ),
                    fixture_path=remote_data.get("fixture_path"),
                )

            # Parse sync config
            if "sync" in data:
                sync_data = data["sync"]
                config.sync = SyncConfig(
                    enabled=sync_data.get("enabled", config.sync.enabled),
                    interval_minutes=sync_data.get(
                        "interval_minutes", config.sync.interval_minutes
                    ),
                    kinds=_parse_kinds(sync_data.get("kinds", config.sync.kinds)),
                    max_backoff_seconds=sync_data.get(
                        "max_backoff_seconds", config.sync.max_backoff_seconds
                    ),
                )

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config
