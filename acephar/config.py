"""Configuration management for acephar.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Property getters provide safe access with
sensible defaults for the command runtime, the messaging gateway,
owner/premium identities, and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = structlog.get_logger("acephar.bot")

DEFAULT_PREFIX = "!"
WHATSAPP_USER_SUFFIX = "@s.whatsapp.net"


def number_to_jid(number: str) -> str:
    """Turn a bare phone number (any formatting) into a user JID."""
    number = number.split("@", 1)[0].split(":", 1)[0]
    digits = "".join(ch for ch in number if ch.isdigit())
    return f"{digits}{WHATSAPP_USER_SUFFIX}"


class Config:
    """Central configuration manager for acephar.

    Loads settings.yaml and .env from the config directory. Provides
    typed property accessors for every configurable subsystem.
    Environment variables take precedence over settings.yaml.

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

        An empty command prefix would turn every message into a
        command, so it raises. Everything else is logged and the bot
        starts in degraded mode.
        """
        if not self.command_prefix:
            raise ConfigurationError(
                "Command prefix must not be empty", setting_name="prefix"
            )
        if any(ch.isspace() for ch in self.command_prefix):
            logger.warning("prefix_contains_whitespace", prefix=self.command_prefix)

        if not self.owner_number:
            logger.warning("no_owner_number", msg="Owner-only commands will be denied")
        elif not self.owner_number.lstrip("+").isdigit():
            logger.error("invalid_owner_number_format", number="..." + self.owner_number[-4:])

        premium = self.settings.get("premium_numbers")
        if premium is not None and not isinstance(premium, list):
            logger.error("premium_numbers_invalid_type", type=type(premium).__name__)

    # --- Command runtime ---

    @property
    def command_prefix(self) -> str:
        """Command prefix. COMMAND_PREFIX, then PREFIX, then settings, then "!"."""
        for var in ("COMMAND_PREFIX", "PREFIX"):
            value = os.environ.get(var)
            if value:
                return value
        return self.settings.get("prefix") or DEFAULT_PREFIX

    @property
    def owner_number(self) -> str:
        """Owner phone number. Env var OWNER_NUMBER takes precedence."""
        return os.environ.get("OWNER_NUMBER") or str(self.settings.get("owner_number", ""))

    @property
    def owner_jid(self) -> Optional[str]:
        """Normalised owner JID, or None if no owner is configured."""
        if not self.owner_number:
            return None
        return number_to_jid(self.owner_number)

    @property
    def premium_numbers(self) -> List[str]:
        """Numbers entitled to premium commands (empty means no entitlement check)."""
        numbers = self.settings.get("premium_numbers", [])
        if not isinstance(numbers, list):
            return []
        return [str(n) for n in numbers]

    @property
    def bot_name(self) -> str:
        return os.environ.get("BOT_NAME") or self.settings.get("bot_name", "ACEPHAR Bot")

    @property
    def bot_version(self) -> str:
        return os.environ.get("BOT_VERSION") or self.settings.get("bot_version", "2.1.0")

    @property
    def bot_signature_enabled(self) -> bool:
        """Whether outgoing texts get the bot signature appended."""
        env = os.environ.get("BOT_SIGNATURE_ENABLED")
        if env is not None:
            return env.lower() == "true"
        return bool(self.settings.get("bot_signature", {}).get("enabled", False))

    @property
    def bot_signature_text(self) -> str:
        return (
            os.environ.get("BOT_SIGNATURE_TEXT")
            or self.settings.get("bot_signature", {}).get("text", " | Bot")
        )

    @property
    def react_on_success(self) -> bool:
        """React to the invoking message after a command completes (default True)."""
        return bool(self.settings.get("react_on_success", True))

    # --- Inbound automation ---

    @property
    def status_view_notification_enabled(self) -> bool:
        """DM the author after auto-viewing their status (default False)."""
        env = os.environ.get("SEND_STATUS_VIEW_NOTIFICATION_ENABLED")
        if env is not None:
            return env.lower() == "true"
        return bool(self.settings.get("status_view_notification", {}).get("enabled", False))

    @property
    def status_view_notification_text(self) -> str:
        return (
            os.environ.get("STATUS_VIEW_NOTIFICATION_TEXT")
            or self.settings.get("status_view_notification", {}).get(
                "text", "Just viewed your status. -Bot"
            )
        )

    @property
    def auto_view_channels(self) -> bool:
        """Mark channel (newsletter) posts as read (default False)."""
        env = os.environ.get("AUTO_VIEW_CHANNELS_ENABLED")
        if env is not None:
            return env.lower() == "true"
        return bool(self.settings.get("auto_view_channels", False))

    # --- Messaging gateway ---

    @property
    def gateway_api_url(self) -> str:
        """Gateway base URL. Env var WHATSAPP_GATEWAY_URL takes precedence."""
        url = os.environ.get("WHATSAPP_GATEWAY_URL") or self.settings.get(
            "gateway_api_url", "http://127.0.0.1:3000"
        )
        return url.rstrip("/")

    @property
    def gateway_api_token(self) -> str:
        """Bearer token for the gateway (optional)."""
        return os.environ.get("WHATSAPP_GATEWAY_TOKEN", "")

    @property
    def gateway_timeout(self) -> float:
        """Per-request timeout for gateway calls in seconds (default 15)."""
        return float(self.settings.get("gateway_timeout", 15))

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
        return os.environ.get("LOG_LEVEL") or log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"commands": "DEBUG"}."""
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
    """Get or create the global Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
