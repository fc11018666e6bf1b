"""Core infrastructure layer - no business logic.

This module provides foundation-level services:
- Configuration management (TOML)
- Durable track and preference stores (SQLite, JSON)
- Error taxonomy
- Logging setup (Loguru)
"""

from .config import (
    Config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_log_file_path,
    load_config,
)
from .exceptions import (
    IngestionError,
    NotFoundError,
    PersistenceError,
    PlaybackError,
    TuneLockerError,
)
from .output import setup_loguru

__all__ = [
    # Config
    "Config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_log_file_path",
    "load_config",
    # Errors
    "IngestionError",
    "NotFoundError",
    "PersistenceError",
    "PlaybackError",
    "TuneLockerError",
    # Logging
    "setup_loguru",
]
