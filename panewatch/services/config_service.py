"""Configuration loading service.

Loads config.yaml, moves legacy flat keys into their sections and validates
the result against the AppConfig schema.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from panewatch.models.config import AppConfig

logger = logging.getLogger(__name__)


class ConfigService:
    """Service for loading and managing application configuration.

    Handles:
    - Loading config from config.yaml
    - Validating against Pydantic schema
    - Migrating legacy flat keys
    - Saving updated config
    """

    TOP_LEVEL_FIELDS = ("scan_interval", "capture_lines", "port", "debug", "log_level")
    SECTIONS = ("detection", "session_log", "narrative_threads", "status")

    # Legacy key -> (section, field)
    LEGACY_KEYS = {
        "cache_ttl": ("detection", "ttl_seconds"),
        "claude_projects_dir": ("session_log", "projects_dir"),
        "amp_threads_dir": ("narrative_threads", "threads_dir"),
        "status_dir": ("status", "status_dir"),
        "panes_dir": ("status", "panes_dir"),
    }

    def __init__(self, config_path: str | Path = "config.yaml"):
        """Initialize the config service.

        Args:
            config_path: Path to the config file.
        """
        self.config_path = Path(config_path)
        self._config: AppConfig | None = None

    def load(self) -> AppConfig:
        """Load and validate configuration.

        Returns:
            Validated AppConfig instance.
        """
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, using defaults")
            self._config = AppConfig()
            return self._config

        try:
            with open(self.config_path) as f:
                raw_config = yaml.safe_load(f) or {}
        except Exception as e:
            logger.warning(f"Error reading config file: {e}, using defaults")
            self._config = AppConfig()
            return self._config

        if not isinstance(raw_config, dict):
            logger.warning(f"Config file {self.config_path} is not a mapping, using defaults")
            self._config = AppConfig()
            return self._config

        # Migrate legacy config format
        migrated = self._migrate_config(raw_config)

        # Validate and create config
        try:
            self._config = AppConfig(**migrated)
        except Exception as e:
            logger.warning(f"Config validation error: {e}, using defaults")
            self._config = AppConfig()

        return self._config

    def get_config(self) -> AppConfig:
        """Get the current configuration.

        Loads from disk if not already loaded.
        """
        if self._config is None:
            return self.load()
        return self._config

    def reload(self) -> AppConfig:
        """Force reload configuration from disk."""
        self._config = None
        return self.load()

    def save(self, config: AppConfig | None = None) -> bool:
        """Save configuration to disk.

        Args:
            config: Config to save. Uses current config if not provided.

        Returns:
            True if save succeeded.
        """
        config = config or self._config
        if config is None:
            return False

        try:
            config_dict = config.model_dump(mode="json")
            with open(self.config_path, "w") as f:
                yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
            return True
        except Exception as e:
            logger.error(f"Error saving config: {e}")
            return False

    def _migrate_config(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Map a raw YAML dict onto the AppConfig schema.

        Handles:
        - Copying known sections and fields
        - Moving legacy flat keys into their sections
        - Dropping unknown fields with a log message

        Args:
            raw: Raw config dictionary from YAML.

        Returns:
            Migrated config dictionary.
        """
        migrated: dict[str, Any] = {}

        for key in self.TOP_LEVEL_FIELDS:
            if key in raw:
                migrated[key] = raw[key]

        for key in self.SECTIONS:
            if key in raw:
                if isinstance(raw[key], dict):
                    migrated[key] = dict(raw[key])
                else:
                    logger.warning(f"Config section '{key}' must be a mapping, ignoring")

        # Legacy flat keys
        for old_key, (section, field) in self.LEGACY_KEYS.items():
            if old_key not in raw:
                continue
            target = migrated.setdefault(section, {})
            if field in target:
                logger.info(f"Ignoring legacy config field {old_key}, {section}.{field} is set")
                continue
            target[field] = raw[old_key]

        known = set(self.TOP_LEVEL_FIELDS) | set(self.SECTIONS) | set(self.LEGACY_KEYS)
        for key in raw:
            if key not in known:
                logger.info(f"Ignoring unknown config field: {key}")

        return migrated


# Module-level singleton
_config_service: ConfigService | None = None


def get_config_service(config_path: str | Path = "config.yaml") -> ConfigService:
    """Get the global config service instance.

    Args:
        config_path: Path to config file (only used on first call).

    Returns:
        ConfigService singleton.
    """
    global _config_service
    if _config_service is None:
        _config_service = ConfigService(config_path)
    return _config_service


def reset_config_service() -> None:
    """Reset the global config service (for testing)."""
    global _config_service
    _config_service = None
