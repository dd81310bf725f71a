"""Shared test fixtures for oeee.cafe client tests."""

import json
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import requests
import yaml
from requests.cookies import create_cookie

from src.adapters.http_client import TypedHTTPClient
from src.core.config_manager import ConfigManager, DEFAULT_CONFIG
from src.core.session_store import SessionStore
from src.services.api_config import ApiConfig


def build_response(status: int = 200, payload=None, body: bytes = None,
                   cookies=None, url: str = "https://oeee.cafe/api/v1/") -> requests.Response:
    """Build a fully-read requests.Response.

    ``payload`` is JSON-encoded unless a raw ``body`` is given. ``cookies``
    is a list of (name, value) pairs or Cookie objects set by the server.
    """
    response = requests.Response()
    response.status_code = status
    if body is None:
        body = b"" if payload is None else json.dumps(payload).encode("utf-8")
    response._content = body
    response._content_consumed = True
    response.url = url
    response.headers["Content-Type"] = "application/json"
    for cookie in cookies or []:
        if isinstance(cookie, tuple):
            cookie = create_cookie(cookie[0], cookie[1], domain="oeee.cafe", path="/")
        response.cookies.set_cookie(cookie)
    return response


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def config_file(tmp_dir):
    """Create a temporary settings.yaml and return its path."""
    config_dir = tmp_dir / "config"
    config_dir.mkdir(parents=True)
    config_path = config_dir / "settings.yaml"

    config = ConfigManager._deep_copy(DEFAULT_CONFIG)
    config["session"]["db_path"] = str(tmp_dir / "data" / "session.db")
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)

    return config_path


@pytest.fixture
def tmp_db_path(tmp_dir):
    """Provide a temporary database path."""
    return tmp_dir / "session.db"


@pytest.fixture
def locale_dir(tmp_dir):
    """Create temporary locale directory with test JSON files."""
    loc_dir = tmp_dir / "locales"
    loc_dir.mkdir(parents=True)

    ko_data = {
        "app": {"title": "오에카페"},
        "error": {"not_found": "찾을 수 없습니다"},
        "notification": {"follow": "{actor}님이 팔로우했습니다"},
    }
    en_data = {
        "app": {"title": "oeee cafe"},
        "error": {"not_found": "Not found", "empty": ""},
        "notification": {"follow": "{actor} followed you"},
    }

    with open(loc_dir / "ko_KR.json", "w", encoding="utf-8") as f:
        json.dump(ko_data, f, ensure_ascii=False)
    with open(loc_dir / "en_US.json", "w", encoding="utf-8") as f:
        json.dump(en_data, f, ensure_ascii=False)

    return loc_dir


@pytest.fixture
def config(config_file):
    return ConfigManager(config_file)


@pytest.fixture
def session_store(tmp_db_path):
    store = SessionStore(tmp_db_path)
    yield store
    store.close()


@pytest.fixture
def api_config(config, session_store):
    return ApiConfig(config, session_store)


@pytest.fixture
def client(api_config, session_store):
    http = TypedHTTPClient(api_config, session_store, request_timeout=5, resource_timeout=10)
    yield http
    http.close()


@pytest.fixture
def mock_send():
    """Patch requests.Session.send; set .return_value / .side_effect per test."""
    with patch.object(requests.Session, "send", autospec=True) as send:
        yield send


@pytest.fixture
def make_response():
    return build_response
