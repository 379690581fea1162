"""Tests for Settings."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from unwrap_or_ai.settings import DEFAULT_BASE_URL, DEFAULT_MODEL, Settings, settings


class TestSettings:
    """Test Settings configuration."""

    def test_default_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test defaults when no env vars or .env file are present."""
        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, clear=True):
            s = Settings()

        assert s.openai_base_url == DEFAULT_BASE_URL
        assert s.openai_api_key == ""
        assert s.fallback_model == DEFAULT_MODEL
        assert s.fallback_max_attempts == 3
        assert s.fallback_transport_attempts == 3
        assert s.fallback_retry_delay_seconds == 0.5
        assert s.fallback_deadline_seconds == 120.0
        assert s.fallback_structured_output is True
        assert s.lmnr_project_api_key == ""

    @patch.dict(
        os.environ,
        {
            "OPENAI_BASE_URL": "https://api.openai.com/v1",
            "OPENAI_API_KEY": "sk-test123",
            "FALLBACK_MODEL": "gpt-4o-mini",
            "FALLBACK_MAX_ATTEMPTS": "5",
            "FALLBACK_STRUCTURED_OUTPUT": "false",
            "LMNR_PROJECT_API_KEY": "lmnr-key789",
        },
    )
    def test_env_variable_loading(self):
        """Test loading settings from environment variables."""
        s = Settings()
        assert s.openai_base_url == "https://api.openai.com/v1"
        assert s.openai_api_key == "sk-test123"
        assert s.fallback_model == "gpt-4o-mini"
        assert s.fallback_max_attempts == 5
        assert s.fallback_structured_output is False
        assert s.lmnr_project_api_key == "lmnr-key789"

    @patch.dict(os.environ, {"OPENAI_API_KEY": "test-key", "UNKNOWN_SETTING": "should-be-ignored"})
    def test_extra_env_ignored(self):
        """Test that unknown environment variables are ignored."""
        s = Settings()
        assert s.openai_api_key == "test-key"
        assert not hasattr(s, "unknown_setting")

    @patch.dict(os.environ, {"FALLBACK_MAX_ATTEMPTS": "0"})
    def test_invalid_attempt_bound_rejected(self):
        with pytest.raises(ValidationError):
            Settings()

    def test_settings_singleton(self):
        """Test that the module provides a settings singleton."""
        assert isinstance(settings, Settings)

        from unwrap_or_ai.settings import settings as settings2

        assert settings is settings2

    def test_env_file_loading(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test loading from .env file."""
        (tmp_path / ".env").write_text("OPENAI_API_KEY=from-env-file\nFALLBACK_DEADLINE_SECONDS=15\n")
        monkeypatch.chdir(tmp_path)

        with patch.dict(os.environ, clear=True):
            s = Settings()

        assert s.openai_api_key == "from-env-file"
        assert s.fallback_deadline_seconds == 15.0

    @patch.dict(os.environ, {"OPENAI_API_KEY": "from-env-var"})
    def test_env_var_overrides_env_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that environment variables override .env file."""
        (tmp_path / ".env").write_text("OPENAI_API_KEY=from-env-file")
        monkeypatch.chdir(tmp_path)

        assert Settings().openai_api_key == "from-env-var"

    def test_settings_immutable_config(self):
        """Test that Settings is frozen."""
        s = Settings()
        with pytest.raises(ValidationError) as exc_info:
            s.openai_api_key = "new-key"
        assert "frozen" in str(exc_info.value).lower()

    def test_model_config_attributes(self):
        assert Settings.model_config.get("env_file") == ".env"
        assert Settings.model_config.get("env_file_encoding") == "utf-8"
        assert Settings.model_config.get("extra") == "ignore"
        assert Settings.model_config.get("frozen") is True
