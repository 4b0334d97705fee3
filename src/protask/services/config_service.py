"""Configuration service for managing ProTask configuration.

This module provides the ConfigService class, the single source of truth for
configuration. It handles:

- Loading and saving config.json
- Dot-separated key access (get/set/reset)
- Config file initialization with defaults
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir
from pydantic import BaseModel, ValidationError

from protask.models.config_models import AppConfig


class ConfigService:
    """Service for loading, saving and editing the application configuration."""

    def __init__(self):
        """Initialize the config service."""
        self.config_dir = Path(user_config_dir("protask"))
        self.config_path = self.config_dir / "config.json"
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        """Get or load the current configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def load_config(self) -> AppConfig:
        """Load configuration from storage.

        Raises:
            RuntimeError: If the file exists but cannot be parsed
        """
        if self._config is not None:
            return self._config

        try:
            with open(self.config_path, encoding="utf-8") as f:
                self._config = AppConfig.model_validate_json(f.read())
        except FileNotFoundError:
            # First run
            self._config = AppConfig()
            self.save_config()
        except (OSError, ValidationError) as e:
            raise RuntimeError(f"Failed to load config: {e}") from e

        return self._config

    def save_config(self) -> None:
        """Save the current configuration to storage."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(self.config.model_dump_json(indent=4))
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}") from e

    def get(self, key: str) -> Any:
        """Get a configuration value by dot-separated key, None if unknown."""
        value: Any = self.config
        for k in key.split("."):
            if not isinstance(value, BaseModel) or k not in type(value).model_fields:
                return None
            value = getattr(value, k)
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json")
        return getattr(value, "value", value)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot-separated key.

        Raises:
            KeyError: If the key does not exist
            pydantic.ValidationError: If the value is invalid for the key
        """
        if self.get(key) is None:
            raise KeyError(key)

        keys = key.split(".")
        config_dict = self.config.model_dump(mode="json")
        current = config_dict
        for k in keys[:-1]:
            current = current[k]
        current[keys[-1]] = value

        self._config = AppConfig.model_validate(config_dict)
        self.save_config()

    def reset(self, key: str | None = None) -> None:
        """Reset the whole configuration, or one key, to defaults."""
        if key is None:
            self._config = AppConfig()
            self.save_config()
            return

        default_value = _lookup(AppConfig().model_dump(mode="json"), key)
        if default_value is None:
            raise KeyError(key)
        self.set(key, default_value)


def _lookup(data: dict[str, Any], key: str) -> Any:
    value: Any = data
    for k in key.split("."):
        if not isinstance(value, dict) or k not in value:
            return None
        value = value[k]
    return value


@lru_cache(maxsize=1)
def get_config_service() -> ConfigService:
    """Get the cached ConfigService instance."""
    return ConfigService()
