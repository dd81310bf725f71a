"""Thread-safe I18nManager for loading and accessing i18n locale JSON files."""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

# Path resolution
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOCALE_DIR = PROJECT_ROOT / "src" / "resources" / "locales"

# Logger
logger = logging.getLogger("oeeecafe")


class I18nManager:
    """Thread-safe manager for internationalization.

    Loads locale JSON files and provides thread-safe access to translated strings.
    Uses dot-notation keys (e.g., "error.invalid_slug") and supports placeholder substitution.
    """

    def __init__(self, locale_dir: Optional[Path] = None):
        """Initialize the manager with default locale."""
        self._lock = threading.RLock()
        self._locale_dir = Path(locale_dir) if locale_dir else LOCALE_DIR
        self._data: Dict[str, Any] = {}
        self._locale: str = "en_US"  # default

    def load_locale(self, locale: str) -> None:
        """Load a locale JSON file.

        Args:
            locale: Locale identifier (e.g., "ko_KR") that maps to <locale_dir>/{locale}.json

        Thread-safe. If file not found or JSON parse error, logs warning and keeps current data.
        """
        with self._lock:
            locale_file = self._locale_dir / f"{locale}.json"

            if not locale_file.exists():
                logger.warning(f"Locale file not found: {locale_file}")
                return

            try:
                with open(locale_file, "r", encoding="utf-8") as f:
                    self._data = json.load(f)
                    self._locale = locale
                logger.info(f"Loaded locale: {locale}")
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to parse locale file {locale_file}: {e}")
            except OSError as e:
                logger.warning(f"Failed to load locale file {locale_file}: {e}")

    def get(self, key: str, **kwargs) -> str:
        """Get translated string by dot-notation key.

        Returns:
            Translated string with placeholders substituted, or the key itself if not found.

        Thread-safe. Never raises exceptions.

        Examples:
            get("error.invalid_slug") -> "That community address is not valid."
            get("notification.follow", actor="kim") -> "kim followed you"
        """
        with self._lock:
            template = self._resolve(key)

            if not kwargs:
                return template

            try:
                return template.format_map(kwargs)
            except (KeyError, ValueError) as e:
                logger.warning(f"Failed to format i18n string for key '{key}': {e}")
                return template

    def has(self, key: str) -> bool:
        """True if the active locale defines ``key`` as a non-empty string."""
        with self._lock:
            value = self._resolve(key)
            return value != key and bool(value)

    @property
    def locale(self) -> str:
        with self._lock:
            return self._locale

    def _resolve(self, key: str) -> str:
        """Walk nested dict by dot-separated key.

        Internal helper method. Not thread-safe (caller must hold lock).
        """
        parts = key.split(".")
        node = self._data

        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return key

        return node if isinstance(node, str) else key
