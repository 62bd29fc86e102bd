"""Configuration management for chainbot.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a Config object. Property getters provide safe access with
defaults for the trigger prefix, chain grammar, reply templates,
shutdown behaviour and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import List, Optional, Union

import structlog
import yaml
from dotenv import load_dotenv

from .attributes import SYMBOL_FIELDS, Attributes

logger = structlog.get_logger("chainbot.bot")

DEFAULT_PREFIX = "!"

# settings.yaml keys passed straight through to Attributes
_ATTRIBUTE_KEYS = (
    "advanced_functionality",
    "help_command",
    "command_doesnt_exist_message",
    "no_permission_message",
    "spaces_allowed",
    "parse_self",
    "max_chain_depth",
) + SYMBOL_FIELDS


class Config:
    """Central configuration manager for chainbot.

    Loads settings.yaml and .env from the config directory. Read-only
    after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``./config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path.cwd() / "config"
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
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
        """Log problems with critical settings at startup.

        Does not raise; attributes() raises ConfigurationError when
        the values are actually used.
        """
        prefix = self.settings.get("prefix")
        if prefix is not None and not isinstance(prefix, (str, list)):
            logger.error("config_invalid_type", key="prefix", type=type(prefix).__name__)
        for key in SYMBOL_FIELDS:
            value = self.settings.get(key)
            if value is not None and (not isinstance(value, str) or len(value) != 1):
                logger.error("config_invalid_value", key=key, value=value, valid="one character")
        depth = self.settings.get("max_chain_depth")
        if depth is not None and (not isinstance(depth, int) or depth < 1):
            logger.error("config_invalid_value", key="max_chain_depth", value=depth, valid=">= 1")

    @property
    def prefix(self) -> Union[str, List[str]]:
        """Trigger prefix. Env var CHAINBOT_PREFIX takes precedence."""
        return os.environ.get("CHAINBOT_PREFIX") or self.settings.get("prefix", DEFAULT_PREFIX)

    @property
    def shutdown_timeout(self) -> float:
        """Seconds to wait for in-flight chains on shutdown (default 10)."""
        return self.settings.get("shutdown_timeout", 10)

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path.cwd() / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Env var CHAINBOT_LOG_LEVEL takes precedence."""
        log_config = self.settings.get("logging", {})
        return os.environ.get("CHAINBOT_LOG_LEVEL") or log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"parser": "DEBUG"}."""
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

    def attributes(self) -> Attributes:
        """Build the bot attributes from settings.

        Raises:
            ConfigurationError: If a setting has an invalid value.
        """
        options = {k: self.settings[k] for k in _ATTRIBUTE_KEYS if k in self.settings}
        return Attributes.from_options(**options)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
