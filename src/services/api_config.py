"""Base URL selection for the API, with session invalidation on switch."""

import logging
import threading
from urllib.parse import urlsplit

from src.core.config_manager import ConfigManager, DEFAULT_BASE_URL
from src.core.exceptions import InvalidBaseURLError, SessionStoreError
from src.core.session_store import SessionStore

logger = logging.getLogger("oeeecafe")

DEFAULT_API_PREFIX = "/api/v1"


class ApiConfig:
    """Current API endpoint, read fresh by the HTTP client on every call.

    Switching servers clears the flag and all cookies first, so no request
    ever reaches the new host carrying the old host's session.
    """

    def __init__(self, config: ConfigManager, session_store: SessionStore):
        self._config = config
        self._store = session_store
        self._lock = threading.RLock()

    @property
    def base_url(self) -> str:
        value = self._config.get("api.base_url")
        if not isinstance(value, str) or not value:
            return DEFAULT_BASE_URL
        return value.rstrip("/")

    @property
    def api_prefix(self) -> str:
        prefix = self._config.get("api.prefix", DEFAULT_API_PREFIX) or ""
        return "/" + prefix.strip("/") if prefix.strip("/") else ""

    @property
    def developer_mode(self) -> bool:
        return bool(self._config.get("api.developer_mode", False))

    @developer_mode.setter
    def developer_mode(self, enabled: bool) -> None:
        self._config.set("api.developer_mode", bool(enabled))
        self._config.save()

    @property
    def is_default(self) -> bool:
        return self.base_url == DEFAULT_BASE_URL

    def api_url(self, path: str) -> str:
        """Absolute URL for an API path, e.g. "/posts/public"."""
        return f"{self.base_url}{self.api_prefix}{path}"

    @staticmethod
    def is_valid_base_url(url: str) -> bool:
        if not isinstance(url, str):
            return False
        parts = urlsplit(url.strip())
        return parts.scheme in ("http", "https") and bool(parts.hostname)

    def set_base_url(self, url: str) -> None:
        """Point the client at another server.

        Raises:
            InvalidBaseURLError: not an http(s) URL with a host
            SessionStoreError: the old session could not be cleared; the
                               base URL is left unchanged
            ConfigError: the setting could not be saved
        """
        if not self.is_valid_base_url(url):
            raise InvalidBaseURLError(f"Invalid base URL: {url!r}")
        normalized = url.strip().rstrip("/")
        with self._lock:
            self._clear_session_or_raise()
            self._config.set("api.base_url", normalized)
            self._config.save()
        logger.info(f"API base URL changed to {normalized}; session cleared")

    def reset_to_default(self) -> None:
        with self._lock:
            self._clear_session_or_raise()
            self._config.remove("api.base_url")
            self._config.save()
        logger.info(f"API base URL reset to {DEFAULT_BASE_URL}; session cleared")

    def _clear_session_or_raise(self) -> None:
        if not self._store.clear_session():
            raise SessionStoreError("Could not clear the current session; server not changed")
