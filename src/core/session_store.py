"""Thread-safe persistent session store: authenticated flag + cookie jar in SQLite."""

import logging
import os
import sqlite3
import threading
import time
from dataclasses import dataclass
from http.cookiejar import Cookie
from pathlib import Path
from typing import Iterable, Optional

from requests.cookies import RequestsCookieJar, create_cookie

from src.core.exceptions import SessionStoreError

logger = logging.getLogger("oeeecafe")

AUTH_FLAG_KEY = "is_authenticated"


def domain_matches(cookie_domain: str, host: str) -> bool:
    """True if a cookie stored for ``cookie_domain`` applies to ``host``."""
    if not cookie_domain or not host:
        return False
    domain = cookie_domain.lstrip(".").lower()
    host = host.lower()
    # http.cookiejar records dotless hosts such as "localhost" as "localhost.local"
    if domain == f"{host}.local":
        return True
    return host == domain or host.endswith("." + domain)


@dataclass(frozen=True)
class CookieSnapshot:
    """Cookies for one host as of one session epoch."""

    jar: RequestsCookieJar
    epoch: int


class SessionStore:
    """Durable login state shared by every request.

    Holds the "was authenticated" flag and the cookie jar. All public methods
    are guarded by one RLock. Any sqlite3 failure fails closed: the caller
    sees "not authenticated" and the in-memory jar keeps serving the running
    process.

    Every clear bumps ``epoch``. Cookies returned by a request that was
    dispatched under an older epoch are discarded, so a response that lands
    after logout cannot resurrect the session.
    """

    def __init__(self, db_path: Optional[Path] = None):
        if db_path is None:
            raise SessionStoreError("db_path is required")

        self._lock = threading.RLock()
        self._db_path = Path(db_path)
        self._jar = RequestsCookieJar()
        self._epoch = 0
        self._conn: Optional[sqlite3.Connection] = None

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._restrict_permissions()
            self._init_schema()
            self._load_cookies()
            logger.info(f"SessionStore initialized with db_path: {self._db_path}")
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Session storage unavailable, continuing without persistence: {e}")
            self._discard_connection()

    def _restrict_permissions(self) -> None:
        try:
            os.chmod(self._db_path, 0o600)
        except OSError as e:
            logger.debug(f"Could not restrict session db permissions: {e}")

    def _init_schema(self) -> None:
        with self._lock, self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS auth_state (
                    key        TEXT PRIMARY KEY,
                    value      TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS cookies (
                    domain    TEXT NOT NULL,
                    path      TEXT NOT NULL,
                    name      TEXT NOT NULL,
                    value     TEXT,
                    secure    INTEGER DEFAULT 0,
                    expires   INTEGER,
                    http_only INTEGER DEFAULT 0,
                    PRIMARY KEY (domain, path, name)
                )
            """)

    def _load_cookies(self) -> None:
        """Restore persisted cookies into the in-memory jar, dropping expired ones."""
        now = int(time.time())
        with self._lock:
            rows = self._conn.execute("SELECT * FROM cookies").fetchall()
            expired = []
            for row in rows:
                if row["expires"] is not None and row["expires"] <= now:
                    expired.append((row["domain"], row["path"], row["name"]))
                    continue
                self._jar.set_cookie(create_cookie(
                    row["name"],
                    row["value"],
                    domain=row["domain"],
                    path=row["path"],
                    secure=bool(row["secure"]),
                    expires=row["expires"],
                    rest={"HttpOnly": None} if row["http_only"] else {},
                ))
            if expired:
                with self._conn:
                    self._conn.executemany(
                        "DELETE FROM cookies WHERE domain = ? AND path = ? AND name = ?",
                        expired,
                    )
            logger.debug(f"Restored {len(rows) - len(expired)} cookies ({len(expired)} expired)")

    def _discard_connection(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logger.debug(f"Error closing session db: {e}")
        self._conn = None

    # --- Authenticated flag ---

    def persist_authenticated(self) -> bool:
        """Record that a login succeeded. Returns False if storage refused the write."""
        with self._lock:
            if self._conn is None:
                return False
            try:
                with self._conn:
                    self._conn.execute(
                        "INSERT OR REPLACE INTO auth_state (key, value) VALUES (?, 'true')",
                        (AUTH_FLAG_KEY,),
                    )
                return True
            except sqlite3.Error as e:
                logger.error(f"Failed to persist authenticated flag: {e}")
                return False

    def clear_authenticated(self) -> bool:
        with self._lock:
            if self._conn is None:
                return True
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM auth_state WHERE key = ?", (AUTH_FLAG_KEY,))
                return True
            except sqlite3.Error as e:
                logger.error(f"Failed to clear authenticated flag: {e}")
                self._drop_storage()
                return False

    def is_authenticated_flag_set(self) -> bool:
        """Read the persisted flag. Unreadable storage counts as not set."""
        with self._lock:
            if self._conn is None:
                return False
            try:
                row = self._conn.execute(
                    "SELECT value FROM auth_state WHERE key = ?", (AUTH_FLAG_KEY,)
                ).fetchone()
            except sqlite3.Error as e:
                logger.warning(f"Failed to read authenticated flag: {e}")
                return False
            return row is not None and row["value"] == "true"

    # --- Cookies ---

    @property
    def epoch(self) -> int:
        with self._lock:
            return self._epoch

    def cookies(self, host: str) -> list[Cookie]:
        """Unexpired cookies that apply to ``host``."""
        with self._lock:
            return [
                cookie for cookie in self._jar
                if domain_matches(cookie.domain, host) and not cookie.is_expired()
            ]

    def snapshot(self, host: str) -> CookieSnapshot:
        """Copy of the cookies for ``host``, tagged with the current epoch."""
        with self._lock:
            jar = RequestsCookieJar()
            for cookie in self.cookies(host):
                jar.set_cookie(cookie)
            return CookieSnapshot(jar=jar, epoch=self._epoch)

    def store_response_cookies(self, cookies: Iterable[Cookie], epoch: int) -> bool:
        """Merge cookies set by a response.

        Returns False without touching anything if the session was cleared
        since the request was dispatched.
        """
        with self._lock:
            incoming = list(cookies)
            if epoch != self._epoch:
                logger.debug(
                    f"Discarding {len(incoming)} cookies from a request sent before the session was cleared"
                )
                return False
            if not incoming:
                return True

            upserts = []
            deletes = []
            for cookie in incoming:
                key = (cookie.domain, cookie.path, cookie.name)
                if cookie.is_expired():
                    try:
                        self._jar.clear(*key)
                    except KeyError:
                        pass
                    deletes.append(key)
                    continue
                self._jar.set_cookie(cookie)
                upserts.append((
                    cookie.domain,
                    cookie.path,
                    cookie.name,
                    cookie.value,
                    int(bool(cookie.secure)),
                    cookie.expires,
                    int(cookie.has_nonstandard_attr("HttpOnly")),
                ))

            if self._conn is None:
                return True
            try:
                with self._conn:
                    self._conn.executemany(
                        "DELETE FROM cookies WHERE domain = ? AND path = ? AND name = ?",
                        deletes,
                    )
                    self._conn.executemany(
                        """INSERT OR REPLACE INTO cookies
                           (domain, path, name, value, secure, expires, http_only)
                           VALUES (?, ?, ?, ?, ?, ?, ?)""",
                        upserts,
                    )
            except sqlite3.Error as e:
                logger.warning(f"Failed to persist cookies: {e}")
                return False
            logger.debug(f"Stored {len(upserts)} cookies, removed {len(deletes)}")
            return True

    def clear_all(self) -> bool:
        """Delete every cookie. The authenticated flag is left alone.

        Returns False if storage refused the delete. The database is then
        dropped so no stale cookie can be restored by a later run.
        """
        with self._lock:
            self._epoch += 1
            self._jar.clear()
            if self._conn is None:
                return True
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM cookies")
                return True
            except sqlite3.Error as e:
                logger.error(f"Failed to clear cookies: {e}")
                self._drop_storage()
                return False

    def clear_session(self) -> bool:
        """Delete the flag and every cookie in one transaction.

        On a storage failure the transaction rolls back, the database is
        dropped and the store runs in memory for the rest of the process,
        reporting "not authenticated". Returns False in that case.
        """
        with self._lock:
            self._epoch += 1
            self._jar.clear()
            if self._conn is None:
                return True
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM cookies")
                    self._conn.execute("DELETE FROM auth_state")
            except sqlite3.Error as e:
                logger.error(f"Failed to clear session: {e}")
                self._drop_storage()
                return False
            logger.info("Session cleared")
            return True

    def _drop_storage(self) -> None:
        """Close the connection and delete the database files."""
        self._discard_connection()
        for suffix in ("", "-journal", "-wal", "-shm"):
            path = self._db_path.with_name(self._db_path.name + suffix)
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Failed to remove session storage {path}: {e}")
        logger.warning("Session storage dropped; continuing in memory")

    def close(self) -> None:
        with self._lock:
            self._discard_connection()
