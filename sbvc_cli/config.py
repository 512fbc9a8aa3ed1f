"""
SBVC CLI Configuration

Settings, paths, and environment overrides.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from sbvc.config import HistoryConfig

# Default paths
DEFAULT_GLOBAL_DIR = Path.home() / ".sbvc"
DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_LOG_LEVEL = "WARNING"

# Environment variables
ENV_STORE = "SBVC_STORE"
ENV_GRANULARITY = "SBVC_GRANULARITY"
ENV_POLL_INTERVAL = "SBVC_POLL_INTERVAL"
ENV_LOG_LEVEL = "SBVC_LOG_LEVEL"


@dataclass
class Config:
    """Complete CLI configuration."""

    # Paths
    global_dir: Path = field(default_factory=lambda: DEFAULT_GLOBAL_DIR)

    # Engine
    history: HistoryConfig = field(default_factory=HistoryConfig)

    # Logging
    log_level: str = DEFAULT_LOG_LEVEL

    # UI settings
    show_dates: bool = True
    confirm_delete: bool = True

    def __post_init__(self):
        """Ensure paths are Path objects."""
        if isinstance(self.global_dir, str):
            self.global_dir = Path(self.global_dir)

    @property
    def config_file(self) -> Path:
        """Get config.json file path."""
        return self.global_dir / DEFAULT_CONFIG_FILE

    def ensure_dirs(self) -> None:
        """Create necessary directories."""
        self.global_dir.mkdir(parents=True, exist_ok=True)

    def save(self) -> None:
        """Save configuration to file."""
        self.ensure_dirs()
        with open(self.config_file, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, config_file: Path) -> "Config":
        """Load configuration from file."""
        config = cls()

        if config_file.exists():
            with open(config_file) as f:
                data = json.load(f)

            if "history" in data:
                config.history = HistoryConfig.from_dict(data["history"])
            config.log_level = data.get("log_level", DEFAULT_LOG_LEVEL)
            config.show_dates = data.get("show_dates", True)
            config.confirm_delete = data.get("confirm_delete", True)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "history": self.history.to_dict(),
            "log_level": self.log_level,
            "show_dates": self.show_dates,
            "confirm_delete": self.confirm_delete,
        }


def apply_env_overrides(config: Config) -> Config:
    """Apply SBVC_* environment variables on top of a loaded config."""
    granularity = os.environ.get(ENV_GRANULARITY)
    poll_interval = os.environ.get(ENV_POLL_INTERVAL)

    if granularity or poll_interval:
        data = config.history.to_dict()
        if granularity:
            data["granularity"] = granularity
        if poll_interval:
            data["poll_interval"] = float(poll_interval)
        config.history = HistoryConfig.from_dict(data)

    log_level = os.environ.get(ENV_LOG_LEVEL)
    if log_level:
        config.log_level = log_level.upper()

    return config


def get_config(global_dir: Optional[Path] = None) -> Config:
    """
    Get configuration.

    Loads ``config.json`` from the global directory when present, then
    applies environment overrides.

    Args:
        global_dir: Explicit global directory

    Returns:
        Configured Config instance
    """
    if global_dir is None:
        global_dir = DEFAULT_GLOBAL_DIR

    config = Config(global_dir=global_dir)
    if config.config_file.exists():
        config = Config.load(config.config_file)
        config.global_dir = global_dir

    return apply_env_overrides(config)
