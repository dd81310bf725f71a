"""Tests for I18nManager and localized server errors."""

import json

from src.core.exceptions import ServerError
from src.core.i18n_manager import I18nManager, LOCALE_DIR


class TestI18nManagerLoadLocale:
    """Test locale loading."""

    def test_default_locale_before_loading(self, locale_dir):
        mgr = I18nManager(locale_dir)
        assert mgr.locale == "en_US"
        assert mgr.get("app.title") == "app.title"

    def test_load_valid_locale(self, locale_dir):
        mgr = I18nManager(locale_dir)
        mgr.load_locale("ko_KR")
        assert mgr.locale == "ko_KR"
        assert mgr.get("app.title") == "오에카페"

    def test_load_missing_locale_keeps_current(self, locale_dir):
        """Loading non-existent locale should not crash, keeps current data."""
        mgr = I18nManager(locale_dir)
        mgr.load_locale("ko_KR")
        mgr.load_locale("xx_XX")
        assert mgr.locale == "ko_KR"
        assert mgr.get("app.title") == "오에카페"

    def test_invalid_json_keeps_current(self, locale_dir):
        (locale_dir / "ja_JP.json").write_text("{not json", encoding="utf-8")
        mgr = I18nManager(locale_dir)
        mgr.load_locale("en_US")
        mgr.load_locale("ja_JP")
        assert mgr.locale == "en_US"

    def test_shipped_locales_parse(self):
        for locale in ("en_US", "ko_KR", "ja_JP"):
            with open(LOCALE_DIR / f"{locale}.json", encoding="utf-8") as f:
                data = json.load(f)
            assert "error" in data
            assert "notification" in data


class TestI18nManagerGet:
    """Test key lookup and formatting."""

    def test_missing_key_returns_key(self, locale_dir):
        mgr = I18nManager(locale_dir)
        mgr.load_locale("en_US")
        assert mgr.get("error.unknown_code") == "error.unknown_code"

    def test_non_leaf_key_returns_key(self, locale_dir):
        mgr = I18nManager(locale_dir)
        mgr.load_locale("en_US")
        assert mgr.get("error") == "error"

    def test_placeholder_substitution(self, locale_dir):
        mgr = I18nManager(locale_dir)
        mgr.load_locale("en_US")
        assert mgr.get("notification.follow", actor="kim") == "kim followed you"

    def test_missing_placeholder_returns_template(self, locale_dir):
        mgr = I18nManager(locale_dir)
        mgr.load_locale("en_US")
        assert mgr.get("notification.follow", other="x") == "{actor} followed you"

    def test_has(self, locale_dir):
        mgr = I18nManager(locale_dir)
        mgr.load_locale("en_US")
        assert mgr.has("error.not_found") is True
        assert mgr.has("error.empty") is False
        assert mgr.has("error.missing") is False


class TestServerErrorLocalization:

    def test_localized_by_code(self, locale_dir):
        mgr = I18nManager(locale_dir)
        mgr.load_locale("ko_KR")
        error = ServerError("NOT_FOUND", "Post not found", status_code=404)
        assert error.localized_message(mgr) == "찾을 수 없습니다"

    def test_falls_back_to_server_message(self, locale_dir):
        mgr = I18nManager(locale_dir)
        mgr.load_locale("en_US")
        error = ServerError("SOMETHING_NEW", "Server says no")
        assert error.localized_message(mgr) == "Server says no"

    def test_falls_back_to_code_then_generic(self):
        assert ServerError("ONLY_CODE", "").localized_message() == "ONLY_CODE"
        assert ServerError("", "").localized_message() == "Server error"
