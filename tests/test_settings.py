"""Tests for engine settings: defaults, YAML files and environment overrides."""

import pytest

from HttpGet.errors import ConfigurationError
from HttpGet.policy import ACCEPT_ENCODING, HTTP_TIMEOUT, MAX_REDIRECT_HOPS
from HttpGet.settings import (
    EngineSettings,
    get_settings,
    load_settings,
    reset_settings,
)


class TestDefaults:
    def test_policy_defaults(self):
        settings = load_settings()

        assert settings.timeout_sec == HTTP_TIMEOUT
        assert settings.max_redirects == MAX_REDIRECT_HOPS == 10
        assert settings.accept_encoding == ACCEPT_ENCODING
        assert settings.user_agent.startswith("http-get/")
        assert settings.log_level == "INFO"

    def test_log_level_is_normalised(self):
        assert EngineSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            EngineSettings(log_level="chatty")

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValueError):
            EngineSettings(retries=3)


class TestYaml:
    def test_top_level_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("timeout_sec: 5\nmax_redirects: 3\n", encoding="utf-8")

        settings = load_settings(path)

        assert settings.timeout_sec == 5
        assert settings.max_redirects == 3

    def test_http_get_section(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("http_get:\n  user_agent: custom/1.0\n", encoding="utf-8")

        assert load_settings(path).user_agent == "custom/1.0"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("timeout_sec: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_settings(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("max_redirects: -1\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid engine settings"):
            load_settings(path)


class TestEnvironment:
    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("timeout_sec: 5\n", encoding="utf-8")
        monkeypatch.setenv("HTTP_GET_TIMEOUT_SEC", "7.5")
        monkeypatch.setenv("HTTP_GET_MAX_REDIRECTS", "2")

        settings = load_settings(path)

        assert settings.timeout_sec == 7.5
        assert settings.max_redirects == 2

    def test_invalid_environment_value(self, monkeypatch):
        monkeypatch.setenv("HTTP_GET_MAX_REDIRECTS", "many")

        with pytest.raises(ConfigurationError, match="HTTP_GET_"):
            load_settings()


class TestMemoisation:
    def test_get_settings_is_cached(self):
        reset_settings()
        assert get_settings() is get_settings()

    def test_reset_with_explicit_settings(self):
        custom = EngineSettings(max_redirects=1)
        reset_settings(custom)

        assert get_settings() is custom

    def test_reset_picks_up_environment(self, monkeypatch):
        reset_settings()
        monkeypatch.setenv("HTTP_GET_USER_AGENT", "env-agent/2")
        reset_settings()

        assert get_settings().user_agent == "env-agent/2"
