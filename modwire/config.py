"""Configuration management for modwire.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Property getters provide safe access with
sensible defaults for every subsystem: Twitch Helix credentials, the
local overlay web server, the OBS integration and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = structlog.get_logger("modwire.app")

DEFAULT_HELIX_URL = "https://api.twitch.tv/helix"
DEFAULT_WEB_SERVER_PORT = 7472


class Config:
    """Central configuration manager for modwire.

    Loads settings.yaml and .env from the config directory. Provides
    typed property accessors for every configurable subsystem. No
    mutation after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = config_dir

        # Load environment variables
        env_file = config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                return yaml.safe_load(f) or {}
        return {}

    def validate(self):
        """Validate critical settings at startup.

        Logs warnings/errors but does not raise -- the assistant
        starts in degraded mode (every moderation command fails).
        """
        if not self.twitch_client_id:
            logger.warning("twitch_client_id_missing")
        if not self.twitch_broadcaster_id:
            logger.warning("twitch_broadcaster_id_missing")
        if not self.twitch_access_token:
            logger.warning("twitch_access_token_missing")

        port = self.settings.get("web_server_port")
        if port is not None and (
            not isinstance(port, int) or port < 1 or port > 65535
        ):
            logger.error(
                "config_invalid_value",
                key="web_server_port",
                value=port,
                valid="1-65535",
            )

    def require_twitch_credentials(self) -> None:
        """Raise ConfigurationError unless Helix calls can be authenticated."""
        for name, value in (
            ("twitch.client_id", self.twitch_client_id),
            ("twitch.broadcaster_id", self.twitch_broadcaster_id),
            ("TWITCH_ACCESS_TOKEN", self.twitch_access_token),
        ):
            if not value:
                raise ConfigurationError(
                    f"Missing required setting: {name}", setting_name=name
                )

    # --- Twitch ---

    @property
    def _twitch(self) -> dict:
        twitch = self.settings.get("twitch", {})
        return twitch if isinstance(twitch, dict) else {}

    @property
    def twitch_client_id(self) -> str:
        """Twitch application client id. Env var TWITCH_CLIENT_ID takes precedence."""
        return os.environ.get("TWITCH_CLIENT_ID") or str(self._twitch.get("client_id", ""))

    @property
    def twitch_access_token(self) -> str:
        """User OAuth token with moderation scopes (env only, never in YAML)."""
        token = os.environ.get("TWITCH_ACCESS_TOKEN", "")
        if token.startswith("oauth:"):
            token = token[len("oauth:"):]
        return token

    @property
    def twitch_broadcaster_id(self) -> str:
        """User id of the channel being moderated."""
        return str(self._twitch.get("broadcaster_id", ""))

    @property
    def twitch_moderator_id(self) -> str:
        """User id acting as moderator (defaults to the broadcaster)."""
        return str(self._twitch.get("moderator_id") or self.twitch_broadcaster_id)

    @property
    def twitch_api_url(self) -> str:
        """Helix base URL. Env var TWITCH_API_URL takes precedence."""
        return (
            os.environ.get("TWITCH_API_URL")
            or self._twitch.get("api_url", DEFAULT_HELIX_URL)
        ).rstrip("/")

    @property
    def twitch_request_timeout(self) -> int:
        """Total timeout in seconds for one Helix request (default 10)."""
        return self._twitch.get("request_timeout", 10)

    # --- Overlay web server ---

    @property
    def web_server_port(self) -> int:
        """Port of the local overlay web server (default 7472)."""
        return self.settings.get("web_server_port", DEFAULT_WEB_SERVER_PORT)

    @property
    def user_data_dir(self) -> Path:
        """Directory holding overlay.html and other user data."""
        configured = self.settings.get("user_data_dir")
        if configured:
            return Path(configured).expanduser()
        return Path.home() / ".modwire"

    # --- OBS ---

    @property
    def obs_settings(self) -> Optional[dict]:
        """Raw OBS integration user settings, or None when not configured."""
        obs = self.settings.get("obs")
        return obs if isinstance(obs, dict) else None

    @property
    def obs_password(self) -> str:
        """OBS websocket password, used to redact it from logs."""
        obs = self.obs_settings or {}
        ws = obs.get("websocket_settings", {}) or {}
        return str(ws.get("password", "") or "")

    # --- Logging ---

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"twitch": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
