"""Tests for configuration loading (YAML + env overrides)."""

import os

import pytest
from pydantic import ValidationError

from skillsync import config as config_module
from skillsync.config import ServiceConfig, get_config, load_config, reload_config

SECRET_VARS = (
    "DATABASE_URL", "JWT_SECRET_KEY", "RESEND_API_KEY",
    "MONGODB_DATA_API_KEY", "MONGODB_DATA_API_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in SECRET_VARS:
        monkeypatch.delenv(var, raising=False)
    for var in [k for k in os.environ if k.startswith("CONFIG__")]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "skillsync.yml"
    path.write_text(
        "database:\n"
        "  url: sqlite:///tmp/test.db\n"
        "mirror:\n"
        "  enabled: false\n"
        "  max_attempts: 3\n"
        "cors:\n"
        "  allow_origins: [https://skillsync.example]\n"
    )
    return str(path)


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        config = load_config(str(tmp_path / "missing.yml"))
        assert config == ServiceConfig()
        assert config.mirror.enabled is False
        assert config.email.api_key == ""

    def test_yaml_values(self, config_file):
        config = load_config(config_file)
        assert config.database.url == "sqlite:///tmp/test.db"
        assert config.mirror.max_attempts == 3
        assert config.cors.allow_origins == ["https://skillsync.example"]

    def test_nested_env_override(self, config_file, monkeypatch):
        monkeypatch.setenv("CONFIG__MIRROR__ENABLED", "true")
        monkeypatch.setenv("CONFIG__MIRROR__QUEUE_SIZE", "50")
        config = load_config(config_file)
        assert config.mirror.enabled is True
        assert config.mirror.queue_size == 50

    def test_secret_env_vars_win(self, config_file, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/skillsync")
        monkeypatch.setenv("RESEND_API_KEY", "re_123")
        monkeypatch.setenv("MONGODB_DATA_API_KEY", "mongo-key")
        config = load_config(config_file)
        assert config.database.url == "postgresql://u:p@db/skillsync"
        assert config.email.api_key == "re_123"
        assert config.mirror.api_key == "mongo-key"

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("mirror:\n  max_attempts: 0\n")
        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_reload_replaces_singleton(self, config_file, monkeypatch):
        monkeypatch.setattr(config_module, "_config", None)
        loaded = reload_config(config_file)
        assert get_config() is loaded
        assert loaded.mirror.max_attempts == 3
