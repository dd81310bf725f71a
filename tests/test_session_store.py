"""Tests for SessionStore."""

import os
import sqlite3
import stat
import threading
import time

import pytest
from requests.cookies import create_cookie

from src.core.exceptions import SessionStoreError
from src.core.session_store import SessionStore, domain_matches


def make_cookie(name: str = "id", value: str = "session-1", domain: str = "oeee.cafe", **kwargs):
    """Helper to create a test cookie."""
    return create_cookie(name, value, domain=domain, path=kwargs.pop("path", "/"), **kwargs)


def deny_flag_delete(store):
    """Make every DELETE on auth_state abort, as a locked-down database would."""
    store._conn.execute(
        "CREATE TRIGGER deny_flag_delete BEFORE DELETE ON auth_state "
        "BEGIN SELECT RAISE(ABORT, 'denied'); END"
    )
    store._conn.commit()


class TestSessionStoreInit:
    """Test store initialization."""

    def test_creates_db_file(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        assert tmp_db_path.exists()
        store.close()

    def test_creates_parent_directory(self, tmp_dir):
        db_path = tmp_dir / "sub" / "dir" / "session.db"
        store = SessionStore(db_path)
        assert db_path.exists()
        store.close()

    def test_owner_only_permissions(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        mode = stat.S_IMODE(os.stat(tmp_db_path).st_mode)
        assert mode & (stat.S_IRWXG | stat.S_IRWXO) == 0
        store.close()

    def test_raises_without_path(self):
        with pytest.raises(SessionStoreError):
            SessionStore(None)

    def test_unopenable_storage_fails_closed(self, tmp_dir):
        # A directory cannot be opened as a database file
        db_path = tmp_dir / "not_a_file"
        db_path.mkdir()
        store = SessionStore(db_path)
        assert store.is_authenticated_flag_set() is False
        assert store.persist_authenticated() is False
        assert store.is_authenticated_flag_set() is False

    def test_in_memory_cookies_work_without_storage(self, tmp_dir):
        db_path = tmp_dir / "not_a_file"
        db_path.mkdir()
        store = SessionStore(db_path)
        store.store_response_cookies([make_cookie()], store.epoch)
        assert [c.value for c in store.cookies("oeee.cafe")] == ["session-1"]


class TestAuthenticatedFlag:

    def test_flag_default_unset(self, session_store):
        assert session_store.is_authenticated_flag_set() is False

    def test_persist_and_clear(self, session_store):
        assert session_store.persist_authenticated() is True
        assert session_store.is_authenticated_flag_set() is True
        assert session_store.clear_authenticated() is True
        assert session_store.is_authenticated_flag_set() is False

    def test_flag_survives_restart(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        store.persist_authenticated()
        store.close()

        reopened = SessionStore(tmp_db_path)
        assert reopened.is_authenticated_flag_set() is True
        reopened.close()

    def test_read_failure_is_not_authenticated(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        store.persist_authenticated()
        store._conn.execute("DROP TABLE auth_state")
        assert store.is_authenticated_flag_set() is False
        store.close()


class TestCookies:

    def test_store_and_read(self, session_store):
        assert session_store.store_response_cookies([make_cookie()], session_store.epoch) is True
        cookies = session_store.cookies("oeee.cafe")
        assert [(c.name, c.value) for c in cookies] == [("id", "session-1")]

    def test_cookies_scoped_to_host(self, session_store):
        session_store.store_response_cookies(
            [make_cookie(), make_cookie("other", "x", domain="example.com")], session_store.epoch
        )
        assert {c.name for c in session_store.cookies("oeee.cafe")} == {"id"}
        assert {c.name for c in session_store.cookies("example.com")} == {"other"}

    def test_parent_domain_cookie_applies_to_subdomain(self, session_store):
        session_store.store_response_cookies([make_cookie(domain=".oeee.cafe")], session_store.epoch)
        assert len(session_store.cookies("r2.oeee.cafe")) == 1

    def test_overwrite_same_cookie(self, session_store):
        session_store.store_response_cookies([make_cookie(value="a")], session_store.epoch)
        session_store.store_response_cookies([make_cookie(value="b")], session_store.epoch)
        assert [c.value for c in session_store.cookies("oeee.cafe")] == ["b"]

    def test_expired_cookie_removes_existing(self, session_store):
        session_store.store_response_cookies([make_cookie()], session_store.epoch)
        session_store.store_response_cookies(
            [make_cookie(value="", expires=int(time.time()) - 60)], session_store.epoch
        )
        assert session_store.cookies("oeee.cafe") == []

    def test_cookies_survive_restart(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        store.store_response_cookies(
            [make_cookie(secure=True, expires=int(time.time()) + 3600)], store.epoch
        )
        store.close()

        reopened = SessionStore(tmp_db_path)
        cookies = reopened.cookies("oeee.cafe")
        assert [(c.name, c.value, bool(c.secure)) for c in cookies] == [("id", "session-1", True)]
        reopened.close()

    def test_expired_cookies_dropped_on_load(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        store.store_response_cookies([make_cookie(expires=int(time.time()) + 3600)], store.epoch)
        store._conn.execute("UPDATE cookies SET expires = 1")
        store._conn.commit()
        store.close()

        reopened = SessionStore(tmp_db_path)
        assert reopened.cookies("oeee.cafe") == []
        count = reopened._conn.execute("SELECT COUNT(*) FROM cookies").fetchone()[0]
        assert count == 0
        reopened.close()

    def test_snapshot_is_a_copy(self, session_store):
        session_store.store_response_cookies([make_cookie()], session_store.epoch)
        snapshot = session_store.snapshot("oeee.cafe")
        session_store.clear_all()
        assert len(snapshot.jar) == 1
        assert session_store.cookies("oeee.cafe") == []


class TestClearing:

    def test_clear_all_keeps_flag(self, session_store):
        session_store.persist_authenticated()
        session_store.store_response_cookies([make_cookie()], session_store.epoch)
        assert session_store.clear_all() is True
        assert session_store.cookies("oeee.cafe") == []
        assert session_store.is_authenticated_flag_set() is True

    def test_clear_session_clears_flag_and_cookies(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        store.persist_authenticated()
        store.store_response_cookies([make_cookie()], store.epoch)
        assert store.clear_session() is True
        store.close()

        reopened = SessionStore(tmp_db_path)
        assert reopened.is_authenticated_flag_set() is False
        assert reopened.cookies("oeee.cafe") == []
        reopened.close()

    def test_clear_bumps_epoch(self, session_store):
        before = session_store.epoch
        session_store.clear_session()
        assert session_store.epoch == before + 1

    def test_stale_epoch_cookies_discarded(self, session_store):
        snapshot = session_store.snapshot("oeee.cafe")
        session_store.clear_session()
        assert session_store.store_response_cookies([make_cookie()], snapshot.epoch) is False
        assert session_store.cookies("oeee.cafe") == []

    def test_failed_clear_drops_storage(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        store.persist_authenticated()
        store.store_response_cookies([make_cookie()], store.epoch)
        deny_flag_delete(store)

        assert store.clear_session() is False
        assert store.is_authenticated_flag_set() is False
        assert store.cookies("oeee.cafe") == []
        assert not tmp_db_path.exists()
        # Later clears have nothing durable left to fail on
        assert store.clear_session() is True
        store.close()

        reopened = SessionStore(tmp_db_path)
        assert reopened.is_authenticated_flag_set() is False
        assert reopened.cookies("oeee.cafe") == []
        reopened.close()

    def test_failed_flag_clear_fails_closed(self, tmp_db_path):
        store = SessionStore(tmp_db_path)
        store.persist_authenticated()
        deny_flag_delete(store)
        assert store.clear_authenticated() is False
        assert store.is_authenticated_flag_set() is False
        store.close()

        reopened = SessionStore(tmp_db_path)
        assert reopened.is_authenticated_flag_set() is False
        reopened.close()

    def test_concurrent_clear_and_store(self, session_store):
        """Clears interleaved with stores never leave cookies from an older epoch."""
        errors = []

        def writer():
            try:
                for i in range(200):
                    snapshot = session_store.snapshot("oeee.cafe")
                    session_store.store_response_cookies([make_cookie(value=str(i))], snapshot.epoch)
            except sqlite3.Error as e:
                errors.append(e)

        thread = threading.Thread(target=writer)
        thread.start()
        for _ in range(50):
            session_store.clear_session()
        thread.join()

        final_epoch = session_store.epoch
        session_store.clear_session()
        assert errors == []
        assert session_store.epoch == final_epoch + 1
        assert session_store.cookies("oeee.cafe") == []


class TestDomainMatching:

    @pytest.mark.parametrize("cookie_domain,host,expected", [
        ("oeee.cafe", "oeee.cafe", True),
        (".oeee.cafe", "oeee.cafe", True),
        ("oeee.cafe", "www.oeee.cafe", True),
        ("oeee.cafe", "evil-oeee.cafe", False),
        ("localhost.local", "localhost", True),
        ("", "oeee.cafe", False),
    ])
    def test_domain_matches(self, cookie_domain, host, expected):
        assert domain_matches(cookie_domain, host) is expected
