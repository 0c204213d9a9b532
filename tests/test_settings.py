"""설정 테스트: AppSettings 우선순위, 최근 서고 기록."""

from pathlib import Path

import pytest

import core.app_config as app_config
from core.library import init_library
from core.settings import AppSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("AUTH_SECRET", "WENBAI_COOKIE_SECURE", "WENBAI_AUTOSAVE_SECONDS"):
        monkeypatch.delenv(name, raising=False)


class TestAppSettings:
    def test_defaults(self):
        settings = AppSettings()
        assert settings.get_int("token_ttl_seconds") == 604800
        assert settings.get_int("autosave_seconds") == 30
        assert settings.get_bool("cookie_secure") is False
        assert settings.get("missing", "fallback") == "fallback"

    def test_library_dotenv(self, tmp_path: Path):
        (tmp_path / ".env").write_text(
            "# 서고 설정\nAUTH_SECRET='from-dotenv'\nWENBAI_COOKIE_SECURE=true\nnot a pair\n",
            encoding="utf-8",
        )
        settings = AppSettings(library_root=tmp_path)
        assert settings.get_auth_secret() == "from-dotenv"
        assert settings.get_bool("cookie_secure") is True

    def test_environment_wins(self, tmp_path: Path, monkeypatch):
        (tmp_path / ".env").write_text("WENBAI_AUTOSAVE_SECONDS=10\n", encoding="utf-8")
        monkeypatch.setenv("WENBAI_AUTOSAVE_SECONDS", "5")
        assert AppSettings(library_root=tmp_path).get_int("autosave_seconds") == 5

    def test_missing_secret(self):
        assert AppSettings().get_auth_secret() is None


class TestRecentLibraries:
    @pytest.fixture(autouse=True)
    def home(self, tmp_path, monkeypatch):
        monkeypatch.setattr(app_config, "CONFIG_DIR", tmp_path / "home")

    def test_empty(self):
        assert app_config.load_app_config() == {}
        assert app_config.get_last_library() is None

    def test_remember_moves_to_front(self, tmp_path):
        first = init_library(tmp_path / "a")
        second = init_library(tmp_path / "b")
        app_config.remember_library(first)
        app_config.remember_library(second)
        app_config.remember_library(first)

        recent = app_config.get_recent_libraries()
        assert [r["path"] for r in recent] == [str(first), str(second)]
        assert app_config.get_last_library() == str(first)

    def test_vanished_library_skipped(self, tmp_path):
        gone = tmp_path / "gone"
        gone.mkdir()
        app_config.remember_library(gone)
        assert app_config.get_recent_libraries() == []

    def test_broken_config_file(self, tmp_path):
        app_config.config_path().parent.mkdir(parents=True)
        app_config.config_path().write_text("{not json", encoding="utf-8")
        assert app_config.load_app_config() == {}
