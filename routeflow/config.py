"""
Configuration management for ROUTEFLOW.

Handles persistent configuration including:
- Storage backend selection and data directory
- Autosave delay for the route editor
- Project settings (global key, database connection, timezone)

Config is stored in config.json next to the executable/project root.
It is loaded ONCE at start-up into an AppConfig and passed to whoever needs
it; nothing below keeps process-wide mutable state.
"""

import json
import logging
import os
import random
import string
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Union

from routeflow.paths import get_config_path, get_db_dir

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = "json"
DEFAULT_AUTOSAVE_DELAY = 1.0

_BASE36 = string.digits + string.ascii_lowercase


def generate_global_key(now_ms: Optional[int] = None) -> str:
    """Key of the form key_<epoch ms>_<9 base36 chars>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(random.choice(_BASE36) for _ in range(9))
    return f"key_{now_ms}_{suffix}"


def default_db_name(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"database_{today.isoformat()}"


@dataclass
class Settings:
    """Project-wide settings. Defaults are filled in when first constructed."""
    global_key: str = field(default_factory=generate_global_key)
    database_type: str = "mysql"
    auth_type: str = "session"
    timezone: str = "UTC"
    db_host: str = "localhost"
    db_port: str = "3306"
    db_user: str = "root"
    db_password: str = "root"
    db_name: str = field(default_factory=default_db_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "globalKey": self.global_key,
            "databaseType": self.database_type,
            "authType": self.auth_type,
            "timezone": self.timezone,
            "dbHost": self.db_host,
            "dbPort": self.db_port,
            "dbUser": self.db_user,
            "dbPassword": self.db_password,
            "dbName": self.db_name,
        }

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "Settings":
        raw = raw or {}
        settings = cls()
        for attr, key in (
            ("global_key", "globalKey"),
            ("database_type", "databaseType"),
            ("auth_type", "authType"),
            ("timezone", "timezone"),
            ("db_host", "dbHost"),
            ("db_port", "dbPort"),
            ("db_user", "dbUser"),
            ("db_password", "dbPassword"),
            ("db_name", "dbName"),
        ):
            if key in raw and raw[key] is not None:
                setattr(settings, attr, raw[key])
        return settings


@dataclass
class AppConfig:
    """Everything the application needs, resolved once at start-up."""
    storage_backend: str = DEFAULT_BACKEND
    data_dir: Path = field(default_factory=get_db_dir)
    project: str = "default"
    autosave_delay: float = DEFAULT_AUTOSAVE_DELAY
    settings: Settings = field(default_factory=Settings)

    @property
    def project_path(self) -> Path:
        return Path(self.data_dir) / self.project

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storage_backend": self.storage_backend,
            "data_dir": str(self.data_dir),
            "project": self.project,
            "autosave_delay": self.autosave_delay,
            "settings": self.settings.to_dict(),
        }


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load raw configuration from config.json."""
    config_path = Path(config_path) if config_path else get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, config_path: Optional[Path] = None) -> None:
    """Save raw configuration to config.json."""
    config_path = Path(config_path) if config_path else get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _parse_delay(value: Any) -> float:
    try:
        delay = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid autosave delay {value!r}, using {DEFAULT_AUTOSAVE_DELAY}s")
        return DEFAULT_AUTOSAVE_DELAY
    if delay < 0:
        logger.warning(f"Negative autosave delay {delay}, using {DEFAULT_AUTOSAVE_DELAY}s")
        return DEFAULT_AUTOSAVE_DELAY
    return delay


def load_app_config(config_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Build the AppConfig.

    Priority:
    1. Environment variables (ROUTEFLOW_DATA_DIR, ROUTEFLOW_STORAGE,
       ROUTEFLOW_PROJECT, ROUTEFLOW_AUTOSAVE_DELAY)
    2. Stored in config.json
    3. Built-in defaults
    """
    raw = load_config(Path(config_path) if config_path else None)

    data_dir = os.environ.get("ROUTEFLOW_DATA_DIR") or raw.get("data_dir")
    backend = os.environ.get("ROUTEFLOW_STORAGE") or raw.get("storage_backend", DEFAULT_BACKEND)
    project = os.environ.get("ROUTEFLOW_PROJECT") or raw.get("project", "default")
    delay = os.environ.get("ROUTEFLOW_AUTOSAVE_DELAY", raw.get("autosave_delay", DEFAULT_AUTOSAVE_DELAY))

    return AppConfig(
        storage_backend=backend,
        data_dir=Path(data_dir) if data_dir else get_db_dir(),
        project=project,
        autosave_delay=_parse_delay(delay),
        settings=Settings.from_dict(raw.get("settings")),
    )


def save_app_config(config: AppConfig, config_path: Optional[Union[str, Path]] = None) -> None:
    """Persist the AppConfig (including generated settings) to config.json."""
    save_config(config.to_dict(), Path(config_path) if config_path else None)
