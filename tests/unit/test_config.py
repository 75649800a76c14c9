"""
Unit Tests for Client Settings
"""

import pytest
from pydantic import ValidationError

from config import Settings, get_settings
from utils.error_handlers import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's TLC_* variables and .env file"""
    for name in ("TLC_API_BASE_URL", "TLC_ENVIRONMENT", "TLC_GET_RETRIES", "TLC_RECEIPT_MODE",
                 "TLC_OVERDUE_FAIL_CLOSED", "TLC_CONNECT_TIMEOUT", "TLC_READ_TIMEOUT",
                 "TLC_UPLOAD_READ_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Settings validation"""

    def test_defaults(self):
        settings = Settings()

        assert settings.api_base_url == "http://localhost:8001"
        assert settings.timeout == (3.0, 30.0)
        assert settings.upload_timeout == (3.0, 300.0)
        assert settings.receipt_mode == "file"
        assert settings.overdue_fail_closed is False

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TLC_API_BASE_URL", "https://library.example.org/")
        monkeypatch.setenv("TLC_OVERDUE_FAIL_CLOSED", "true")

        settings = Settings()

        assert settings.api_base_url == "https://library.example.org"
        assert settings.overdue_fail_closed is True

    def test_production_requires_https(self):
        with pytest.raises(ValidationError, match="HTTPS"):
            Settings(api_base_url="http://library.example.org", environment="production")

    def test_production_allows_localhost(self):
        assert Settings(api_base_url="http://127.0.0.1:8001", environment="production").is_local_backend
        assert Settings(api_base_url="http://localhost:8001", environment="production").is_local_backend

    @pytest.mark.parametrize("url", [
        "http://localhost.attacker.com",
        "http://127.0.0.1.nip.io:8001",
        "http://library.example.org/localhost",
    ])
    def test_production_rejects_lookalike_hosts(self, url):
        assert Settings(api_base_url=url).is_local_backend is False
        with pytest.raises(ValidationError, match="HTTPS"):
            Settings(api_base_url=url, environment="production")

    @pytest.mark.parametrize("field, value", [
        ("api_base_url", "   "),
        ("get_retries", -1),
        ("receipt_mode", "email"),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})


class TestGetSettings:
    """get_settings() caching and error wrapping"""

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_invalid_environment_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("TLC_ENVIRONMENT", "staging")

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert exc_info.value.user_message == "Invalid client configuration"
