"""Tests for configuration loading."""

import pytest

from acephar.config import DEFAULT_PREFIX, Config, number_to_jid
from acephar.exceptions import ConfigurationError

_ENV_VARS = (
    "COMMAND_PREFIX", "PREFIX", "OWNER_NUMBER", "BOT_NAME", "BOT_SIGNATURE_ENABLED",
    "BOT_SIGNATURE_TEXT", "WHATSAPP_GATEWAY_URL", "WHATSAPP_GATEWAY_TOKEN", "LOG_LEVEL",
    "SEND_STATUS_VIEW_NOTIFICATION_ENABLED", "STATUS_VIEW_NOTIFICATION_TEXT",
    "AUTO_VIEW_CHANNELS_ENABLED",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def _config(tmp_path, yaml_text=""):
    (tmp_path / "settings.yaml").write_text(yaml_text)
    return Config(config_dir=tmp_path)


def test_defaults_without_settings(tmp_path):
    config = Config(config_dir=tmp_path)
    assert config.command_prefix == DEFAULT_PREFIX
    assert config.owner_jid is None
    assert config.premium_numbers == []
    assert config.gateway_api_url == "http://127.0.0.1:3000"
    assert config.react_on_success is True
    assert config.bot_signature_enabled is False


def test_prefix_precedence(tmp_path, monkeypatch):
    config = _config(tmp_path, 'prefix: "."\n')
    assert config.command_prefix == "."

    monkeypatch.setenv("PREFIX", "#")
    assert config.command_prefix == "#"

    monkeypatch.setenv("COMMAND_PREFIX", "/")
    assert config.command_prefix == "/"


def test_owner_jid_normalised(tmp_path, monkeypatch):
    config = _config(tmp_path, 'owner_number: "+254 712 345 678"\n')
    assert config.owner_jid == "254712345678@s.whatsapp.net"

    monkeypatch.setenv("OWNER_NUMBER", "254700000000")
    assert config.owner_jid == "254700000000@s.whatsapp.net"


def test_gateway_url_trailing_slash_removed(tmp_path, monkeypatch):
    monkeypatch.setenv("WHATSAPP_GATEWAY_URL", "https://gw.example.com/")
    assert Config(config_dir=tmp_path).gateway_api_url == "https://gw.example.com"


def test_signature_settings(tmp_path, monkeypatch):
    config = _config(tmp_path, "bot_signature:\n  enabled: true\n  text: ' ~ acephar'\n")
    assert config.bot_signature_enabled is True
    assert config.bot_signature_text == " ~ acephar"

    monkeypatch.setenv("BOT_SIGNATURE_ENABLED", "false")
    assert config.bot_signature_enabled is False


def test_premium_numbers_must_be_a_list(tmp_path):
    assert _config(tmp_path, "premium_numbers: 12345\n").premium_numbers == []
    assert _config(tmp_path, "premium_numbers: [254712345678]\n").premium_numbers == ["254712345678"]


def test_logging_settings(tmp_path, monkeypatch):
    config = _config(
        tmp_path,
        "logging:\n  level: WARNING\n  subsystem_levels:\n    commands: DEBUG\n  backup_count: 2\n",
    )
    assert config.logging_level == "WARNING"
    assert config.logging_subsystem_levels == {"commands": "DEBUG"}
    assert config.logging_backup_count == 2
    assert config.logging_max_file_size_mb == 10

    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    assert config.logging_level == "ERROR"


def test_validate_passes_with_defaults(tmp_path):
    Config(config_dir=tmp_path).validate()


def test_validate_rejects_empty_prefix(tmp_path, monkeypatch):
    config = _config(tmp_path)
    monkeypatch.setattr(Config, "command_prefix", property(lambda self: ""))
    with pytest.raises(ConfigurationError) as exc_info:
        config.validate()
    assert exc_info.value.setting_name == "prefix"


@pytest.mark.parametrize("raw,expected", [
    ("254712345678", "254712345678@s.whatsapp.net"),
    ("+254 712-345-678", "254712345678@s.whatsapp.net"),
    ("254712345678:7@s.whatsapp.net", "254712345678@s.whatsapp.net"),
    ("254712345678@s.whatsapp.net", "254712345678@s.whatsapp.net"),
])
def test_number_to_jid(raw, expected):
    assert number_to_jid(raw) == expected


def test_inbound_automation_defaults(tmp_path):
    config = Config(config_dir=tmp_path)
    assert config.auto_view_channels is False
    assert config.status_view_notification_enabled is False
    assert config.status_view_notification_text == "Just viewed your status. -Bot"


def test_inbound_automation_env_overrides(tmp_path, monkeypatch):
    config = _config(tmp_path, "auto_view_channels: true\nstatus_view_notification:\n  enabled: true\n")
    assert config.auto_view_channels is True
    assert config.status_view_notification_enabled is True

    monkeypatch.setenv("AUTO_VIEW_CHANNELS_ENABLED", "false")
    monkeypatch.setenv("STATUS_VIEW_NOTIFICATION_TEXT", "👀")
    assert config.auto_view_channels is False
    assert config.status_view_notification_text == "👀"
