"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from padeliga.config import Settings


class TestSessionSecret:
    def test_development_generates_secret(self) -> None:
        settings = Settings(padeliga_env="development", session_secret_key="")
        assert len(settings.session_secret_key) >= 32

    def test_production_requires_secret(self) -> None:
        with pytest.raises(ValidationError, match="SESSION_SECRET_KEY must be set"):
            Settings(padeliga_env="production", session_secret_key="")

    def test_production_with_secret(self) -> None:
        settings = Settings(
            padeliga_env="production",
            session_secret_key="test-secret-key-for-production-tests",
        )
        assert settings.session_secret_key == "test-secret-key-for-production-tests"


class TestEnvironment:
    def test_unknown_environment_rejected(self) -> None:
        with pytest.raises(ValidationError, match="PADELIGA_ENV must be one of"):
            Settings(padeliga_env="qa")

    def test_reads_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PADELIGA_DEFAULT_POINTS_PER_WIN", "2")
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        settings = Settings()
        assert settings.padeliga_default_points_per_win == 2
        assert settings.database_url == "sqlite+aiosqlite:///:memory:"


class TestAdminUserIds:
    def test_parsed_from_comma_list(self) -> None:
        settings = Settings(padeliga_admin_user_ids=" u-1, u-2 ,,")
        assert settings.admin_user_ids == frozenset({"u-1", "u-2"})

    def test_empty_by_default(self) -> None:
        assert Settings(padeliga_admin_user_ids="").admin_user_ids == frozenset()
