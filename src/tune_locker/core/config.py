"""
Configuration management for Tune Locker
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

REPEAT_MODES = ("off", "all", "one")


@dataclass
class LibraryConfig:
    """Configuration for the track library and preference storage."""

    data_dir: Optional[str] = None  # Default: XDG data dir
    database_name: str = "library.db"
    supported_formats: list[str] = field(
        default_factory=lambda: [".mp3", ".m4a", ".ogg", ".opus", ".wav", ".flac"]
    )


@dataclass
class PlayerConfig:
    """Configuration for playback settings."""

    mpv_socket_path: Optional[str] = None
    volume: float = 0.7  # 0.0 - 1.0
    shuffle_on_start: bool = False
    repeat_mode: str = "off"  # off | all | one

    def validate(self) -> None:
        """Validate player configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError(f"Invalid volume: {self.volume}. Must be between 0.0 and 1.0")
        if self.repeat_mode not in REPEAT_MODES:
            raise ValueError(
                f"Invalid repeat mode: {self.repeat_mode}. "
                f"Valid modes are: {', '.join(REPEAT_MODES)}"
            )


@dataclass
class RecommendationConfig:
    """Configuration for recommendations."""

    limit: int = 10


@dataclass
class UIConfig:
    """Configuration for user-facing output."""

    recent_plays: int = 10


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # Default: <data dir>/tune-locker.log
    console_output: bool = False  # Also log to stderr


@dataclass
class Config:
    """Main configuration object."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    recommendations: RecommendationConfig = field(default_factory=RecommendationConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "tune-locker"
    return Path.home() / ".config" / "tune-locker"


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Current working directory
    2. XDG_CONFIG_HOME/tune-locker (or ~/.config/tune-locker)
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config
    return get_config_dir() / "config.toml"


def get_data_dir(config: Optional[Config] = None) -> Path:
    """Get the data directory path.

    Precedence: TUNE_LOCKER_DATA_DIR, then [library].data_dir, then XDG_DATA_HOME.
    """
    override = os.environ.get("TUNE_LOCKER_DATA_DIR")
    if override:
        return Path(override).expanduser()
    if config is not None and config.library.data_dir:
        return Path(config.library.data_dir).expanduser()
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "tune-locker"
    return Path.home() / ".local" / "share" / "tune-locker"


def get_log_file_path(config: Config) -> Path:
    """Get the log file path from config, defaulting into the data dir."""
    if config.logging.log_file:
        return Path(config.logging.log_file).expanduser()
    return get_data_dir(config) / "tune-locker.log"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Tune Locker Configuration

[library]
# Where the track database and preference files live
# (default: ~/.local/share/tune-locker)
# data_dir = "~/Music/.tune-locker"

# SQLite file name inside data_dir
database_name = "library.db"

# Audio file extensions accepted by `tune-locker import`
supported_formats = [".mp3", ".m4a", ".ogg", ".opus", ".wav", ".flac"]

[player]
# Path for mpv socket (auto-generated if not specified)
# mpv_socket_path = "/tmp/tune-locker-mpv"

# Initial volume (0.0 - 1.0)
volume = 0.7

# Start with shuffle enabled
shuffle_on_start = false

# Repeat mode on start: off, all, one
repeat_mode = "off"

[recommendations]
# Number of tracks returned by `tune-locker recommend`
limit = 10

[ui]
# Number of recently played tracks shown
recent_plays = 10

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: <data_dir>/tune-locker.log)
# log_file = "/path/to/tune-locker.log"

# Also output logs to stderr (useful for debugging)
console_output = false
""".strip()


def parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML, keeping defaults for missing keys."""
    config = Config()

    if "library" in toml_data:
        library_data = toml_data["library"]
        config.library = LibraryConfig(
            data_dir=library_data.get("data_dir"),
            database_name=library_data.get(
                "database_name", config.library.database_name
            ),
            supported_formats=library_data.get(
                "supported_formats", config.library.supported_formats
            ),
        )

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            mpv_socket_path=player_data.get("mpv_socket_path"),
            volume=float(player_data.get("volume", config.player.volume)),
            shuffle_on_start=player_data.get(
                "shuffle_on_start", config.player.shuffle_on_start
            ),
            repeat_mode=player_data.get("repeat_mode", config.player.repeat_mode),
        )
        try:
            config.player.validate()
        except ValueError as e:
            logger.warning(f"Invalid player configuration: {e}. Using defaults.")
            config.player = PlayerConfig(mpv_socket_path=config.player.mpv_socket_path)

    if "recommendations" in toml_data:
        rec_data = toml_data["recommendations"]
        config.recommendations = RecommendationConfig(
            limit=rec_data.get("limit", config.recommendations.limit),
        )

    if "ui" in toml_data:
        ui_data = toml_data["ui"]
        config.ui = UIConfig(
            recent_plays=ui_data.get("recent_plays", config.ui.recent_plays),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level),
            log_file=logging_data.get("log_file"),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - TUNE_LOCKER_LOG_LEVEL
    - TUNE_LOCKER_DATA_DIR (read by get_data_dir)
    """
    # Load .env file from config directory if it exists
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
            config = parse_config(toml_data)
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.warning(f"Error loading config from {config_path}: {e}. Using defaults.")
            config = Config()

    level_override = os.environ.get("TUNE_LOCKER_LOG_LEVEL")
    if level_override:
        config.logging.level = level_override.upper()

    return config
