"""Tests for settings loading and bot attributes."""

import pytest
from pydantic import ValidationError

from chainbot.attributes import Attributes
from chainbot.config import Config
from chainbot.exceptions import ConfigurationError, ErrorCategory


def _write_settings(tmp_path, text):
    (tmp_path / "settings.yaml").write_text(text)
    return Config(config_dir=tmp_path)


def test_attribute_defaults():
    """Attributes defaults match the documented configuration surface."""
    attrs = Attributes()
    assert attrs.advanced_functionality is False
    assert attrs.help_command == "help"
    assert attrs.command_doesnt_exist_message is None
    assert attrs.no_permission_message is None
    assert attrs.spaces_allowed is False
    assert (
        attrs.previous, attrs.chain_delimiter, attrs.chain_args_delim,
        attrs.sub_chain_start, attrs.sub_chain_end, attrs.quote_start, attrs.quote_end,
    ) == ("~", ">", ":", "[", "]", '"', '"')


def test_attributes_are_frozen():
    """Attributes cannot be changed after construction."""
    attrs = Attributes()
    with pytest.raises(ValidationError):
        attrs.previous = "^"


@pytest.mark.parametrize("field", ["previous", "chain_delimiter", "quote_end"])
@pytest.mark.parametrize("value", ["", ">>"])
def test_symbols_must_be_single_characters(field, value):
    """Empty or multi-character symbols raise ConfigurationError naming the field."""
    with pytest.raises(ConfigurationError) as exc_info:
        Attributes.from_options(**{field: value})
    assert exc_info.value.setting_name == field
    assert exc_info.value.category == ErrorCategory.INFRASTRUCTURE


def test_from_options_none_means_default():
    """None options fall back to their defaults."""
    attrs = Attributes.from_options(previous=None, help_command=None, spaces_allowed=None)
    assert attrs.previous == "~"
    assert attrs.help_command == "help"
    assert attrs.spaces_allowed is False


def test_from_options_rejects_unknown_option():
    """Unknown option names are configuration errors."""
    with pytest.raises(ConfigurationError):
        Attributes.from_options(colour="blue")


def test_help_command_names():
    """help_command accepts a name, a list of aliases or False."""
    assert Attributes().help_command_names == ("help",)
    assert Attributes(help_command=["help", "h"]).help_command_names == ("help", "h")
    assert Attributes.from_options(help_command=False).help_command_names == ()


def test_max_chain_depth_must_be_positive():
    """max_chain_depth below one is rejected."""
    with pytest.raises(ConfigurationError):
        Attributes.from_options(max_chain_depth=0)


def test_config_defaults_without_files(tmp_path, monkeypatch):
    """Missing settings files give the built-in defaults."""
    monkeypatch.delenv("CHAINBOT_PREFIX", raising=False)
    monkeypatch.delenv("CHAINBOT_LOG_LEVEL", raising=False)
    config = Config(config_dir=tmp_path)
    assert config.settings == {}
    assert config.prefix == "!"
    assert config.shutdown_timeout == 10
    assert config.logging_level == "INFO"
    assert config.logging_backup_count == 5
    assert config.attributes() == Attributes()


def test_config_reads_settings(tmp_path, monkeypatch):
    """Values from settings.yaml reach the properties and attributes."""
    monkeypatch.delenv("CHAINBOT_PREFIX", raising=False)
    config = _write_settings(
        tmp_path,
        "prefix: ['!', '?']\n"
        "advanced_functionality: true\n"
        "command_doesnt_exist_message: 'No such command: %command%'\n"
        "chain_delimiter: '|'\n"
        "log_dir: /tmp/chainbot-logs\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  subsystem_levels:\n"
        "    parser: WARNING\n",
    )
    assert config.prefix == ["!", "?"]
    attrs = config.attributes()
    assert attrs.advanced_functionality is True
    assert attrs.chain_delimiter == "|"
    assert attrs.command_doesnt_exist_message == "No such command: %command%"
    assert str(config.log_dir) == "/tmp/chainbot-logs"
    assert config.logging_level == "DEBUG"
    assert config.logging_subsystem_levels == {"parser": "WARNING"}


def test_env_overrides(tmp_path, monkeypatch):
    """CHAINBOT_PREFIX and CHAINBOT_LOG_LEVEL override settings.yaml."""
    monkeypatch.setenv("CHAINBOT_PREFIX", "$")
    monkeypatch.setenv("CHAINBOT_LOG_LEVEL", "WARNING")
    config = _write_settings(tmp_path, "prefix: '!'\n")
    assert config.prefix == "$"
    assert config.logging_level == "WARNING"


def test_dotenv_file_loaded(tmp_path, monkeypatch):
    """config/.env is loaded into the environment."""
    monkeypatch.delenv("CHAINBOT_PREFIX", raising=False)
    (tmp_path / ".env").write_text("CHAINBOT_PREFIX=%\n")
    config = Config(config_dir=tmp_path)
    assert config.prefix == "%"


def test_invalid_symbol_in_settings_raises_on_use(tmp_path):
    """validate() only logs; attributes() raises on a bad symbol."""
    config = _write_settings(tmp_path, "previous: 'ab'\n")
    config.validate()  # logs only
    with pytest.raises(ConfigurationError):
        config.attributes()
