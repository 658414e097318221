"""Configuration loading.

Settings come from a TOML file (default ``~/.config/finance-sync/config.toml``)
and are overridden by environment variables:

- FINANCE_SYNC_API_URL
- FINANCE_SYNC_API_TOKEN
- FINANCE_SYNC_DATA_DIR
- FINANCE_SYNC_USER_ID
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "finance-sync"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"


@dataclass
class ApiConfig:
    """Remote backend settings."""

    base_url: str = "http://localhost:3000/api"
    token: str = ""
    timeout: float = 30.0


@dataclass
class SyncConfig:
    """Sync scheduling settings."""

    # Delay before syncing after connectivity returns
    debounce_seconds: float = 0.5
    # Periodic sync while the app is active; 0 disables it
    interval_seconds: float = 300.0
    # Seed the default categories into an empty store
    seed_default_categories: bool = True


@dataclass
class Config:
    """Main application configuration."""

    api: ApiConfig = field(default_factory=ApiConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    data_dir: Path = DEFAULT_CONFIG_DIR
    user_id: str = ""
    log_level: str = "INFO"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "finance.db"

    @property
    def mock_db_path(self) -> Path:
        return self.data_dir / "mock_finance.db"

    @property
    def mock_server_path(self) -> Path:
        return self.data_dir / "mock_server.json"

    @property
    def log_path(self) -> Path:
        return self.data_dir / "finance-sync.log"


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section [{name}] must be a table")
    return value


def load_config(config_path: Optional[Union[Path, str]] = None) -> Config:
    """Load configuration from TOML file and environment variables.

    Args:
        config_path: Path to config file. Defaults to
            ~/.config/finance-sync/config.toml. A missing file yields defaults.

    Returns:
        Config instance.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

    api_data = _section(data, "api")
    sync_data = _section(data, "sync")
    general = _section(data, "general")

    api = ApiConfig(
        base_url=api_data.get("base_url", ApiConfig.base_url),
        token=api_data.get("token", ""),
        timeout=float(api_data.get("timeout", ApiConfig.timeout)),
    )
    sync = SyncConfig(
        debounce_seconds=float(sync_data.get("debounce_seconds", SyncConfig.debounce_seconds)),
        interval_seconds=float(sync_data.get("interval_seconds", SyncConfig.interval_seconds)),
        seed_default_categories=bool(
            sync_data.get("seed_default_categories", SyncConfig.seed_default_categories)
        ),
    )
    data_dir = general.get("data_dir")
    config = Config(
        api=api,
        sync=sync,
        data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_CONFIG_DIR,
        user_id=general.get("user_id", ""),
        log_level=str(general.get("log_level", "INFO")).upper(),
    )

    # Environment variables take precedence over the file
    if os.environ.get("FINANCE_SYNC_API_URL"):
        config.api.base_url = os.environ["FINANCE_SYNC_API_URL"]
    if os.environ.get("FINANCE_SYNC_API_TOKEN"):
        config.api.token = os.environ["FINANCE_SYNC_API_TOKEN"]
    if os.environ.get("FINANCE_SYNC_DATA_DIR"):
        config.data_dir = Path(os.environ["FINANCE_SYNC_DATA_DIR"]).expanduser()
    if os.environ.get("FINANCE_SYNC_USER_ID"):
        config.user_id = os.environ["FINANCE_SYNC_USER_ID"]

    return config
