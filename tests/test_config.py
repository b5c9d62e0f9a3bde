"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from modwire.config import DEFAULT_HELIX_URL, Config
from modwire.exceptions import ConfigurationError

_ENV_KEYS = ("TWITCH_ACCESS_TOKEN", "TWITCH_CLIENT_ID", "TWITCH_API_URL")


@pytest.fixture(autouse=True)
def _clean_env():
    """Keep .env values loaded by one test from leaking into the next."""
    saved = {k: os.environ.pop(k) for k in _ENV_KEYS if k in os.environ}
    yield
    for k in _ENV_KEYS:
        os.environ.pop(k, None)
    os.environ.update(saved)


def _write_settings(config_dir: Path, text: str) -> Config:
    (config_dir / "settings.yaml").write_text(text)
    return Config(config_dir=config_dir)


class TestDefaults:

    def test_empty_config_dir(self, tmp_path):
        config = Config(config_dir=tmp_path)
        assert config.settings == {}
        assert config.twitch_api_url == DEFAULT_HELIX_URL
        assert config.web_server_port == 7472
        assert config.twitch_request_timeout == 10
        assert config.obs_settings is None
        assert config.obs_password == ""
        assert config.logging_level == "INFO"
        assert config.logging_backup_count == 5

    def test_user_data_dir_default(self, tmp_path):
        assert Config(config_dir=tmp_path).user_data_dir == Path.home() / ".modwire"


class TestTwitchSettings:

    def test_yaml_values(self, tmp_path):
        config = _write_settings(tmp_path, (
            "twitch:\n"
            "  client_id: abc\n"
            "  broadcaster_id: 1000\n"
            "  api_url: https://example.test/helix/\n"
        ))
        assert config.twitch_client_id == "abc"
        assert config.twitch_broadcaster_id == "1000"
        assert config.twitch_moderator_id == "1000"
        assert config.twitch_api_url == "https://example.test/helix"

    def test_explicit_moderator(self, tmp_path):
        config = _write_settings(tmp_path, "twitch:\n  broadcaster_id: '1'\n  moderator_id: '2'\n")
        assert config.twitch_moderator_id == "2"

    def test_token_from_dotenv_strips_oauth_prefix(self, tmp_path):
        (tmp_path / ".env").write_text("TWITCH_ACCESS_TOKEN=oauth:secret123\n")
        config = Config(config_dir=tmp_path)
        assert config.twitch_access_token == "secret123"

    def test_env_overrides_client_id(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TWITCH_CLIENT_ID", "from-env")
        config = _write_settings(tmp_path, "twitch:\n  client_id: from-yaml\n")
        assert config.twitch_client_id == "from-env"

    def test_require_credentials_raises(self, tmp_path):
        config = _write_settings(tmp_path, "twitch:\n  client_id: abc\n")
        with pytest.raises(ConfigurationError) as exc_info:
            config.require_twitch_credentials()
        assert exc_info.value.setting_name == "twitch.broadcaster_id"

    def test_require_credentials_passes(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TWITCH_ACCESS_TOKEN", "tok")
        config = _write_settings(tmp_path, "twitch:\n  client_id: abc\n  broadcaster_id: '1'\n")
        config.require_twitch_credentials()

    def test_validate_does_not_raise(self, tmp_path):
        config = _write_settings(tmp_path, "web_server_port: nope\n")
        config.validate()


class TestObsSettings:

    def test_obs_password(self, tmp_path):
        config = _write_settings(tmp_path, (
            "obs:\n"
            "  websocket_settings:\n"
            "    password: hunter2\n"
        ))
        assert config.obs_settings["websocket_settings"]["password"] == "hunter2"
        assert config.obs_password == "hunter2"
