"""Tests for perftrack.config."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import keyring.errors
import pytest

from perftrack.config import (
    APIKeyError,
    APIKeyManager,
    APIKeyNotFoundError,
    AppConfig,
    ConfigFileError,
    KeySource,
    get_api_key,
    get_config,
    load_config,
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep real config files and keys out of every test."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in ("API_KEY", "GEMINI_API_KEY", "PERFTRACK_AI__PROXY_URL", "PERFTRACK_DEFAULT_USER"):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config()
        assert config.ai.model_name == "gemini-2.5-flash"
        assert config.ai.proxy_url is None
        assert config.reports.default_tone == "Manager-ready"
        assert config.importer.fallback_list_title == "Imported Tasks"
        assert not config.uses_proxy()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(
            "ai:\n"
            "  proxy_url: https://perf.example.com/\n"
            "reports:\n"
            "  default_tone: Concise\n"
            "default_user: ada\n"
        )
        config = load_config(path)
        assert config.ai.proxy_url == "https://perf.example.com"
        assert config.reports.default_tone == "Concise"
        assert config.default_user == "ada"
        assert config.uses_proxy()

    def test_file_in_working_directory_is_found(self, tmp_path):
        (tmp_path / "perftrack.yaml").write_text("default_user: from-cwd\n")
        assert load_config().default_user == "from-cwd"

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("ai:\n  proxy_url: https://file.example.com\n  model_name: file-model\n")
        monkeypatch.setenv("PERFTRACK_AI__PROXY_URL", "https://env.example.com")

        config = load_config(path)
        assert config.ai.proxy_url == "https://env.example.com"
        assert config.ai.model_name == "file-model"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigFileError):
            load_config(tmp_path / "nope.yaml")

    def test_explicit_malformed_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("ai: [unclosed\n")
        with pytest.raises(ConfigFileError):
            load_config(path)

    def test_searched_malformed_file_falls_back(self, tmp_path):
        (tmp_path / "perftrack.yaml").write_text("ai: [unclosed\n")
        assert load_config().ai.model_name == "gemini-2.5-flash"

    def test_get_config_is_cached(self):
        assert get_config() is get_config()


class TestAPIKey:
    def test_environment_key(self, monkeypatch):
        monkeypatch.setenv("API_KEY", "  env-key  ")
        manager = APIKeyManager()
        assert manager.get_key().get_secret_value() == "env-key"
        assert manager.get_key_source() == KeySource.ENVIRONMENT

    def test_gemini_variable_also_accepted(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "gem-key")
        assert get_api_key().get_secret_value() == "gem-key"

    def test_keyring_key(self):
        with patch("perftrack.config.keyring.get_password", return_value="ring-key"):
            manager = APIKeyManager()
            assert manager.get_key().get_secret_value() == "ring-key"
        assert manager.get_key_source() == KeySource.KEYRING

    def test_missing_key_raises(self):
        with patch("perftrack.config.keyring.get_password", return_value=None):
            with pytest.raises(APIKeyNotFoundError):
                get_api_key()

    def test_keyring_failure_treated_as_missing(self):
        with patch(
            "perftrack.config.keyring.get_password", side_effect=keyring.errors.NoKeyringError()
        ):
            assert APIKeyManager().get_key() is None

    def test_key_never_in_repr(self, monkeypatch):
        monkeypatch.setenv("API_KEY", "super-secret-value")
        assert "super-secret-value" not in repr(get_api_key())

    def test_store_key(self):
        with patch("perftrack.config.keyring.set_password") as set_password:
            manager = APIKeyManager()
            manager.store_key(" new-key ")
        set_password.assert_called_once_with("perftrack", "gemini", "new-key")
        assert manager.get_key_source() == KeySource.KEYRING

    @pytest.mark.parametrize("bad", ["", "   ", "has space"])
    def test_store_key_rejects_bad_values(self, bad):
        with pytest.raises(APIKeyError):
            APIKeyManager().store_key(bad)


def test_paths_expand_user():
    config = AppConfig(paths={"data_dir": "~/data", "log_dir": "~/logs"})
    assert "~" not in str(config.paths.data_dir)
    assert isinstance(config.paths.log_dir, Path)
