"""Thread-safe configuration manager backed by a YAML settings file."""

import logging
import threading
from pathlib import Path
from typing import Any, Optional

import yaml

from src.core.exceptions import ConfigError

logger = logging.getLogger("oeeecafe")

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "settings.yaml"

DEFAULT_BASE_URL = "https://oeee.cafe"
SUPPORTED_LOCALES = ("en_US", "ko_KR", "ja_JP")

# Default configuration template
DEFAULT_CONFIG = {
    "app": {
        "locale": "en_US",
        "version": "1.0.0",
        "log_level": "INFO",
    },
    "api": {
        "base_url": DEFAULT_BASE_URL,
        "prefix": "/api/v1",
        "developer_mode": False,
    },
    "http": {
        "request_timeout": 30,
        "resource_timeout": 60,
    },
    "session": {
        "db_path": "data/session.db",
    },
    "pagination": {
        "posts_limit": 18,
        "comments_limit": 100,
        "notifications_limit": 50,
        "followings_limit": 50,
        "communities_limit": 20,
    },
    "security": {
        "mask_logs": True,
    },
}


class ConfigManager:
    """Thread-safe configuration manager.

    Manages application configuration with:
    - One instance per process, constructed at startup and passed to consumers
    - Thread-safe operations using RLock
    - Automatic settings.yaml creation if missing
    - Dot-notation key access (e.g., "api.base_url")
    - Validation rules for critical settings
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Load or create the settings file.

        Args:
            config_path: settings.yaml location. Defaults to
                         PROJECT_ROOT/config/settings.yaml.
        """
        self.PROJECT_ROOT = PROJECT_ROOT
        self.CONFIG_PATH = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

        self._config = {}
        self._instance_lock = threading.RLock()

        self._load_or_create_config()

    def _load_or_create_config(self):
        """Load settings.yaml or create it from defaults."""
        if self.CONFIG_PATH.exists():
            try:
                with open(self.CONFIG_PATH, 'r', encoding='utf-8') as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {self.CONFIG_PATH}")
            except yaml.YAMLError as e:
                logger.error(f"Failed to parse YAML at {self.CONFIG_PATH}: {e}")
                logger.warning("Using DEFAULT_CONFIG due to parse error")
                self._config = self._deep_copy(DEFAULT_CONFIG)
            except OSError as e:
                logger.error(f"Failed to read config: {e}")
                logger.warning("Using DEFAULT_CONFIG")
                self._config = self._deep_copy(DEFAULT_CONFIG)
        else:
            logger.info(f"Config file not found at {self.CONFIG_PATH}")
            self._config = self._deep_copy(DEFAULT_CONFIG)
            self.save()
            logger.info(f"Created default configuration at {self.CONFIG_PATH}")

    def get(self, key: str, default=None) -> Any:
        """Get configuration value using dot-notation key.

        Args:
            key: Dot-separated key path (e.g., "api.base_url")
            default: Value to return if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get("http.request_timeout")
            30
        """
        with self._instance_lock:
            parts = key.split('.')
            value = self._config

            for part in parts:
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    return default

            return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot-notation key.

        Note: This does NOT save to disk. Use save() to persist changes.
        """
        with self._instance_lock:
            parts = key.split('.')
            target = self._config

            for part in parts[:-1]:
                if not isinstance(target.get(part), dict):
                    target[part] = {}
                target = target[part]

            target[parts[-1]] = value

    def remove(self, key: str) -> None:
        """Delete a key so get() falls back to its default. Does not save."""
        with self._instance_lock:
            parts = key.split('.')
            target = self._config
            for part in parts[:-1]:
                target = target.get(part)
                if not isinstance(target, dict):
                    return
            target.pop(parts[-1], None)

    def update(self, changes: dict) -> None:
        """Batch update configuration from flat dict of dot-notation keys.

        Applies validation rules and saves to disk once after all updates.

        Validation Rules:
            - app.locale: one of SUPPORTED_LOCALES
            - http.request_timeout: minimum 5
            - http.resource_timeout: not below the request timeout
            - pagination.*_limit: 1-100
        """
        with self._instance_lock:
            validated_changes = {}

            for key, value in changes.items():
                validated_value = self._validate_key_value(key, value)
                if validated_value is not None:
                    validated_changes[key] = validated_value

            for key, value in validated_changes.items():
                self.set(key, value)

            self.save()

    def _validate_key_value(self, key: str, value: Any) -> Any:
        """Apply validation rules to key-value pair.

        Returns:
            Validated value or None if invalid (will be ignored)
        """
        if key == "app.locale":
            if value not in SUPPORTED_LOCALES:
                logger.warning(f"Invalid locale '{value}'. Must be one of {SUPPORTED_LOCALES}. Ignoring.")
                return None
            return value

        if key == "http.request_timeout":
            try:
                timeout = int(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid request_timeout '{value}'. Must be int. Ignoring.")
                return None
            if timeout < 5:
                logger.warning(f"request_timeout {timeout} < 5. Forcing to 5.")
                return 5
            return timeout

        if key == "http.resource_timeout":
            try:
                timeout = int(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid resource_timeout '{value}'. Must be int. Ignoring.")
                return None
            floor = int(self.get("http.request_timeout", 30))
            if timeout < floor:
                logger.warning(f"resource_timeout {timeout} < request_timeout {floor}. Forcing to {floor}.")
                return floor
            return timeout

        if key.startswith("pagination.") and key.endswith("_limit"):
            try:
                limit = int(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid page size '{value}' for {key}. Must be int. Ignoring.")
                return None
            if not (1 <= limit <= 100):
                clamped = min(max(limit, 1), 100)
                logger.warning(f"{key} {limit} out of range [1, 100]. Forcing to {clamped}.")
                return clamped
            return limit

        return value

    def save(self) -> None:
        """Write current configuration to settings.yaml."""
        with self._instance_lock:
            try:
                self.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
                with open(self.CONFIG_PATH, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
                logger.debug(f"Saved configuration to {self.CONFIG_PATH}")
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to save configuration: {e}")
                raise ConfigError(f"Failed to save configuration: {e}")

    def resolve_path(self, key: str, default: str) -> Path:
        """Resolve a configured path; relative values are under PROJECT_ROOT.

        Example:
            >>> config.resolve_path("session.db_path", "data/session.db")
            PosixPath('/path/to/project/data/session.db')
        """
        with self._instance_lock:
            path = Path(self.get(key, default))
            if path.is_absolute():
                return path
            return self.PROJECT_ROOT / path

    @staticmethod
    def _deep_copy(obj):
        """Create a deep copy of nested dict/list structures."""
        if isinstance(obj, dict):
            return {k: ConfigManager._deep_copy(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [ConfigManager._deep_copy(item) for item in obj]
        else:
            return obj
