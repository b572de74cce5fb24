"""Configuration management for TFS Blame."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .exceptions import LaunchFailure

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".tfs-blame"
CONFIG_FILE_NAME = "config.json"
EXECUTABLE_ENV_VAR = "TFS_BLAME_EXECUTABLE"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class BlameConfig(BaseModel):
    """Main configuration for TFS Blame."""

    executable: Optional[Path] = Field(
        default=None,
        description="Path to the installed annotation engine executable",
    )
    encoding: str = Field(
        default="utf-8", description="Text encoding of the engine's stdin and stdout"
    )
    shutdown_timeout: float = Field(
        default=5.0,
        description="Seconds to wait for the engine to exit before killing it",
    )
    log_level: str = Field(default="WARNING", description="Logging level")

    @field_validator("executable", mode="before")
    @classmethod
    def convert_path(cls, v: Any) -> Optional[Path]:
        """Convert string paths to Path objects."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            return Path(v)
        if isinstance(v, Path):
            return v
        raise ValueError(f"Expected str or Path, got {type(v)}")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {v!r}, expected one of {LOG_LEVELS}")
        return level

    def resolve_executable(self, override: Optional[Path] = None) -> Path:
        """Find the engine executable to launch.

        Precedence: explicit override, ``TFS_BLAME_EXECUTABLE``, then config.

        Raises:
            LaunchFailure: If no executable is configured or it does not exist
        """
        env_value = os.environ.get(EXECUTABLE_ENV_VAR)
        candidate = override or (Path(env_value) if env_value else None) or self.executable
        if candidate is None:
            raise LaunchFailure(
                "No TFS blame command configured",
                f"set {EXECUTABLE_ENV_VAR}, pass --executable or run "
                "'tfs-blame config --set-executable PATH'",
            )
        if not candidate.is_file():
            raise LaunchFailure(f"TFS blame command not found: {candidate}")
        return candidate.resolve()


class ConfigManager:
    """Manages configuration loading and saving."""

    DEFAULT_CONFIG_PATH = Path(CONFIG_DIR_NAME) / CONFIG_FILE_NAME

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[BlameConfig] = None

    def load(self) -> BlameConfig:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._config = BlameConfig(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            logger.debug(f"No config at {self.config_path}, using defaults")
            self._config = BlameConfig()

        return self._config

    def save(self, config: Optional[BlameConfig] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = config.model_dump(mode="json")
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(config_dict, f, indent=2)
        self._config = config

    def update_config(self, **kwargs) -> BlameConfig:
        """Update configuration fields and save."""
        config = self._config or self.load()
        new_config = BlameConfig(**{**config.model_dump(), **kwargs})
        self.save(new_config)
        return new_config

    @staticmethod
    def find_config_path(start_dir: Optional[Path] = None) -> Optional[Path]:
        """Find .tfs-blame/config.json by walking up the directory tree.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Path to config.json if found, None otherwise
        """
        current = (start_dir or Path.cwd()).resolve()
        for path in [current] + list(current.parents):
            config_path = path / CONFIG_DIR_NAME / CONFIG_FILE_NAME
            if config_path.exists():
                return config_path
        return None

    @classmethod
    def create_with_backtrack(cls, start_dir: Optional[Path] = None) -> "ConfigManager":
        """Create a ConfigManager for the nearest config, or one in start_dir."""
        config_path = cls.find_config_path(start_dir)
        if config_path is None:
            config_path = (start_dir or Path.cwd()) / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        return cls(config_path)
