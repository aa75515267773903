"""Configuration service for Chors.

``config.json`` lives in the platformdirs config directory next to the
default task file. A missing file is created with defaults on first run; a
file that fails validation stops startup instead of being overwritten.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from platformdirs import user_config_dir
from pydantic import ValidationError

from chors.models.config_models import AppConfig
from chors.utils.logger import get_logger

_APP_NAME = "chors"
_CONFIG_FILE = "config.json"
_DEFAULT_MODEL_FILE = "tasks.json"


class ConfigService:
    """Loads, saves and resets the user's ``AppConfig``."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir or Path(user_config_dir(_APP_NAME))
        self.config_path = self.config_dir / _CONFIG_FILE
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = self.load_config()
        return self._config

    @property
    def default_model_path(self) -> Path:
        """Task file used when the command line does not name one."""
        if self.config.task_file:
            return Path(self.config.task_file).expanduser()
        return self.config_dir / _DEFAULT_MODEL_FILE

    def load_config(self) -> AppConfig:
        """Read ``config.json``, writing the defaults if it does not exist yet.

        Raises:
            RuntimeError: If the file cannot be read or does not validate
        """
        if self._config is not None:
            return self._config

        if not self.config_path.exists():
            get_logger("config").info("writing default config to %s", self.config_path)
            self._config = AppConfig()
            self.save_config()
            return self._config

        try:
            self._config = AppConfig.model_validate_json(
                self.config_path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError) as e:
            raise RuntimeError(f"Failed to load config {self.config_path}: {e}") from e
        return self._config

    def save_config(self) -> None:
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(self.config.model_dump_json(indent=4), encoding="utf-8")
        except OSError as e:
            raise RuntimeError(f"Failed to save config {self.config_path}: {e}") from e

    def reset_config(self) -> None:
        """Replace the file and the in-memory config with the defaults."""
        self._config = AppConfig()
        self.save_config()


@lru_cache(maxsize=1)
def get_config_service() -> ConfigService:
    """Get a cached ConfigService instance."""
    config_service = ConfigService()
    config_service.load_config()
    return config_service
