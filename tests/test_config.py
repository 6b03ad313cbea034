"""Tests for configuration parsing and the missing-credential warning."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from video_analyzer_mcp.config import (
    DEFAULT_DEMO_PROMPT,
    DEFAULT_DEMO_VIDEO_URL,
    AnalyzerConfig,
    get_config,
    update_config,
    warn_if_unconfigured,
)


class TestFromEnv:
    def test_defaults(self, monkeypatch):
        for var in ("GEMINI_MODEL", "GEMINI_TEMPERATURE", "DEMO_VIDEO_URL", "DEMO_PROMPT"):
            monkeypatch.delenv(var, raising=False)
        cfg = AnalyzerConfig.from_env()
        assert cfg.default_model == "gemini-2.5-pro"
        assert cfg.default_temperature is None
        assert cfg.demo_video_url == DEFAULT_DEMO_VIDEO_URL
        assert cfg.demo_prompt == DEFAULT_DEMO_PROMPT
        assert cfg.has_api_key is True

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("GEMINI_MODEL", "gemini-2.5-flash")
        monkeypatch.setenv("GEMINI_TEMPERATURE", "0.4")
        monkeypatch.setenv("MAX_SESSIONS", "3")
        monkeypatch.setenv("DEMO_MAX_BYTES", "1024")
        cfg = AnalyzerConfig.from_env()
        assert cfg.default_model == "gemini-2.5-flash"
        assert cfg.default_temperature == 0.4
        assert cfg.max_sessions == 3
        assert cfg.demo_max_bytes == 1024

    def test_invalid_max_sessions_rejected(self, monkeypatch):
        monkeypatch.setenv("MAX_SESSIONS", "0")
        with pytest.raises(ValidationError):
            AnalyzerConfig.from_env()

    def test_temperature_out_of_range_rejected(self, monkeypatch):
        monkeypatch.setenv("GEMINI_TEMPERATURE", "3.5")
        with pytest.raises(ValidationError):
            AnalyzerConfig.from_env()

    def test_tracing_requires_tracking_uri(self, monkeypatch):
        monkeypatch.delenv("GEMINI_TRACING_ENABLED", raising=False)
        monkeypatch.setenv("MLFLOW_TRACKING_URI", "http://localhost:5000")
        assert AnalyzerConfig.from_env().tracing_enabled is True
        monkeypatch.setenv("GEMINI_TRACING_ENABLED", "false")
        assert AnalyzerConfig.from_env().tracing_enabled is False


class TestSingleton:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_update_config_patches_fields(self):
        cfg = update_config(default_model="gemini-test", default_temperature=None)
        assert cfg.default_model == "gemini-test"
        assert get_config().default_model == "gemini-test"

    def test_env_file_is_loaded(self, tmp_path, monkeypatch):
        env = tmp_path / ".env"
        env.write_text("DEMO_PROMPT=From the file\n")
        monkeypatch.setenv("DEMO_PROMPT", "")
        monkeypatch.setattr("video_analyzer_mcp.env.DEFAULT_ENV_PATH", env)
        assert get_config().demo_prompt == "From the file"


class TestMissingApiKey:
    def test_warns_but_does_not_fail(self, monkeypatch, caplog):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with caplog.at_level(logging.WARNING, logger="video_analyzer_mcp.config"):
            assert warn_if_unconfigured() is False
        assert "GEMINI_API_KEY is not set" in caplog.text

    def test_silent_when_configured(self, caplog):
        with caplog.at_level(logging.WARNING, logger="video_analyzer_mcp.config"):
            assert warn_if_unconfigured() is True
        assert caplog.text == ""
