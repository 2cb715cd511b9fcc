"""
Unit Tests for configuration parsing
"""
import pytest

from grantsportal.core.config import (
    Settings,
    parse_cors_origins,
    parse_duration_minutes,
)


class TestDurationParsing:
    """JWT_EXPIRE accepts minutes or unit-suffixed durations"""

    @pytest.mark.parametrize("value,expected", [
        (60, 60),
        ("45", 45),
        ("30m", 30),
        ("1h", 60),
        ("7d", 10080),
        ("120s", 2),
    ])
    def test_valid_durations(self, value, expected):
        assert parse_duration_minutes(value) == expected

    def test_invalid_duration(self):
        with pytest.raises(ValueError):
            parse_duration_minutes("soon")


class TestCorsOrigins:
    """Test CORS origin parsing"""

    def test_comma_separated(self):
        assert parse_cors_origins("http://a.test, http://b.test,") == ["http://a.test", "http://b.test"]

    def test_json_list(self):
        assert parse_cors_origins('["http://a.test"]') == ["http://a.test"]

    def test_frontend_url_is_always_allowed(self):
        settings = Settings(_env_file=None, FRONTEND_URL="http://portal.test", CORS_ORIGINS_STR="http://a.test")

        assert settings.CORS_ORIGINS == ["http://portal.test", "http://a.test"]


class TestSettings:
    """Test environment-driven settings"""

    def test_legacy_database_variable(self, monkeypatch):
        """Test that MONGODB_URI is still honoured as the database URL"""
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("MONGODB_URI", "sqlite+aiosqlite:///./legacy.db")

        assert Settings(_env_file=None).DATABASE_URL == "sqlite+aiosqlite:///./legacy.db"

    def test_jwt_expire_from_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_EXPIRE", "2h")

        assert Settings(_env_file=None).JWT_EXPIRE == 120

    def test_is_production(self):
        assert Settings(_env_file=None, ENVIRONMENT="production").is_production is True
        assert Settings(_env_file=None, ENVIRONMENT="development").is_production is False
