"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(os.environ if env is None else env)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    override = environ.get("COSTIK_DATA_DIR")
    if override:
        return Path(override).expanduser()

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


APP_NAME = "Costik"


DATA_DIR = get_default_data_dir(APP_NAME)
STORAGE_DIR = DATA_DIR / "storage"
LOG_DIR = DATA_DIR / "logs"

for _dir in (DATA_DIR, STORAGE_DIR, LOG_DIR):
    _dir.mkdir(parents=True, exist_ok=True)


DB_PATH = DATA_DIR / "app.db"
QUEUE_JSON_PATH = STORAGE_DIR / "sync-queue.json"
OFFLINE_USER_PATH = STORAGE_DIR / "offline_user.json"
LOG_PATH = LOG_DIR / "sync.log"


@dataclass(frozen=True)
class SyncSettings:
    enabled: bool = True
    max_retries: int = 3
    retry_floor_sec: float = 1.0
    retry_ceiling_sec: float = 30.0
    periodic_interval_sec: float = 5.0
    queue_key: str = "sync-queue"
    changes_key: str = "sync-changes"
    change_log_limit: int = 100
    log_path: Path = LOG_PATH


SYNC = SyncSettings()


@dataclass(frozen=True)
class ConnectivitySettings:
    probe_host: str = "8.8.8.8"
    probe_port: int = 53
    timeout_sec: float = 3.0
    poll_interval_sec: float = 15.0


CONNECTIVITY = ConnectivitySettings()


DEFAULT_COLLECTIONS = {
    "transaction": "transactions",
    "payment": "payments",
    "card": "cards",
    "note": "notes",
    "subscription": "subscriptions",
    "recurring_income": "recurringIncomes",
}


@dataclass(frozen=True)
class RemoteSettings:
    project_id: Optional[str] = os.environ.get("COSTIK_FIREBASE_PROJECT")
    database: str = "(default)"
    users_collection: str = "users"
    collections: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_COLLECTIONS))


REMOTE = RemoteSettings()


@dataclass(frozen=True)
class OfflineSessionSettings:
    path: Path = OFFLINE_USER_PATH
    max_age_days: int = 7


OFFLINE_SESSION = OfflineSessionSettings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "STORAGE_DIR",
    "LOG_DIR",
    "DB_PATH",
    "QUEUE_JSON_PATH",
    "OFFLINE_USER_PATH",
    "LOG_PATH",
    "SYNC",
    "CONNECTIVITY",
    "REMOTE",
    "OFFLINE_SESSION",
    "DEFAULT_COLLECTIONS",
    "get_default_data_dir",
]
