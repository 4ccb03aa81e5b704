"""
Tests for configuration loading
"""

import pytest
from pydantic import ValidationError

from src.config import (
    ApiSettings,
    AppSettings,
    GeminiSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def clean_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestGeminiSettings:
    """Tests for the optional Gemini configuration."""

    def test_unconfigured_without_key(self, monkeypatch):
        """Test that a missing key disables AI."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        assert GeminiSettings().is_configured is False

    def test_blank_key_is_unconfigured(self):
        """Test that whitespace is not a key."""
        assert GeminiSettings(api_key="   ").is_configured is False

    def test_env_prefix(self, monkeypatch):
        """Test loading from GEMINI_* variables."""
        monkeypatch.setenv("GEMINI_API_KEY", "abc")
        monkeypatch.setenv("GEMINI_TIMEOUT_SECONDS", "5")

        settings = GeminiSettings()
        assert settings.is_configured is True
        assert settings.timeout_seconds == 5.0

    def test_timeout_bounds(self):
        """Test that a zero timeout is rejected."""
        with pytest.raises(ValidationError):
            GeminiSettings(timeout_seconds=0)


class TestOtherSettings:
    """Tests for storage, API and app settings."""

    def test_unknown_backend_rejected(self):
        """Test the backend choice."""
        with pytest.raises(ValidationError):
            StorageSettings(backend="redis")

    @pytest.mark.parametrize("raw,expected", [
        ("/api", "/api"),
        ("api/", "/api"),
        ("/v1/api/", "/v1/api"),
        ("/", ""),
    ])
    def test_prefix_normalized(self, raw, expected):
        """Test API prefix normalization."""
        assert ApiSettings(prefix=raw).prefix == expected

    def test_log_level_uppercased(self):
        """Test log level parsing."""
        assert AppSettings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            AppSettings(log_level="chatty")


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_reports_missing_gemini_key(self, monkeypatch):
        """Test that a missing key is reported but other sections pass."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)

        results = validate_all_settings()

        assert results["gemini"] is False
        assert "GEMINI_API_KEY" in results["gemini_error"]
        assert results["storage"] is True
        assert results["api"] is True
        assert results["app"] is True

    def test_reports_invalid_section(self, monkeypatch):
        """Test that a bad value is reported, not raised."""
        monkeypatch.setenv("STORAGE_BACKEND", "redis")
        results = validate_all_settings()
        assert results["storage"] is False
        assert "storage_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
