"""Configuration management."""

import yaml
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

_config: Dict[str, Any] = {}
_base_path: Path = None

DEFAULT_MANIFEST = (
    "/",
    "/static/js/bundle.js",
    "/static/css/main.css",
    "/favicon.png",
    "/badge.png",
)


def load_config(config_path: str = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    global _config, _base_path

    if config_path is None:
        # Try to find config in common locations
        possible_paths = [
            Path("config/config.yaml"),
            Path("config.yaml"),
            Path.home() / ".config" / "reminder_worker" / "config.yaml",
        ]
        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break
        else:
            raise FileNotFoundError(
                "No config.yaml found. Copy config/config.example.yaml to config/config.yaml "
                "and fill in your values."
            )

    config_path = Path(config_path)
    _base_path = config_path.parent.parent  # Project root

    with open(config_path) as f:
        _config = yaml.safe_load(f) or {}

    # Resolve relative paths
    _resolve_paths()

    return _config


def _resolve_paths():
    """Resolve relative paths in config to absolute paths."""
    global _config

    if "store" in _config and "path" in _config["store"]:
        path = Path(_config["store"]["path"])
        if not path.is_absolute():
            _config["store"]["path"] = str(_base_path / path)

    if "cache" in _config and "root" in _config["cache"]:
        path = Path(_config["cache"]["root"])
        if not path.is_absolute():
            _config["cache"]["root"] = str(_base_path / path)


def get_config() -> Dict[str, Any]:
    """Get the loaded configuration."""
    if not _config:
        load_config()
    return _config


def get(key: str, default: Any = None) -> Any:
    """Get a config value by dot-notation key (e.g., 'telegram.bot_token')."""
    if not _config:
        load_config()

    keys = key.split(".")
    value = _config
    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default
    return value


@dataclass(frozen=True)
class WorkerConfig:
    """Snapshot of everything the worker components need, passed at construction."""

    cache_name: str = "vaccination-reminders-v1"
    cache_root: str = "data/cache"
    origin: str = "http://localhost:5173"
    manifest: Tuple[str, ...] = DEFAULT_MANIFEST
    fetch_timeout: float = 10.0

    store_path: str = "data/reminders.db"
    store_key: str = "vaccination_reminders"
    timezone: str = "UTC"

    icon: str = "/favicon.png"
    badge: str = "/badge.png"
    complete_icon: str = "/icons/complete.png"
    snooze_icon: str = "/icons/snooze.png"

    dashboard_path: str = "/vaccination-dashboard"
    app_base_url: str = "http://localhost:5173"

    sync_tag: str = "vaccination-reminder-sync"
    periodic_sync_tag: str = "vaccination-reminder-check"
    periodic_sync_interval: int = 24 * 60  # minutes

    @property
    def cache_prefix(self) -> str:
        """Cache name without its trailing version segment."""
        prefix, sep, _ = self.cache_name.rpartition("-")
        return prefix if sep else self.cache_name

    def with_version(self, version: str) -> "WorkerConfig":
        """Return a copy of this config pointing at the cache for ``version``."""
        return replace(self, cache_name=f"{self.cache_prefix}-{version}")

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "WorkerConfig":
        """Build a WorkerConfig from a loaded YAML config dict."""
        if config is None:
            config = get_config()

        def pick(section: str, key: str, default: Any) -> Any:
            value = (config.get(section) or {}).get(key)
            return default if value is None else value

        defaults = cls()
        return cls(
            cache_name=pick("cache", "name", defaults.cache_name),
            cache_root=pick("cache", "root", defaults.cache_root),
            origin=pick("cache", "origin", defaults.origin),
            manifest=tuple(pick("cache", "manifest", defaults.manifest)),
            fetch_timeout=float(pick("cache", "fetch_timeout", defaults.fetch_timeout)),
            store_path=pick("store", "path", defaults.store_path),
            store_key=pick("store", "key", defaults.store_key),
            timezone=config.get("timezone") or defaults.timezone,
            icon=pick("notifications", "icon", defaults.icon),
            badge=pick("notifications", "badge", defaults.badge),
            complete_icon=pick("notifications", "complete_icon", defaults.complete_icon),
            snooze_icon=pick("notifications", "snooze_icon", defaults.snooze_icon),
            dashboard_path=pick("app", "dashboard_path", defaults.dashboard_path),
            app_base_url=pick("app", "base_url", defaults.app_base_url),
            sync_tag=pick("sync", "tag", defaults.sync_tag),
            periodic_sync_tag=pick("sync", "periodic_tag", defaults.periodic_sync_tag),
            periodic_sync_interval=int(pick("sync", "periodic_interval", defaults.periodic_sync_interval)),
        )
