"""Logging setup: structlog on top of stdlib logging.

Every module logs through ``structlog.get_logger("chainbot.<subsystem>")``.
setup_logging() gives each subsystem its own rotating file, collects
everything in ``chainbot.log`` and echoes to stderr. Events pass
through sanitize_secrets() first, because chain text is arbitrary
user input and may carry bot tokens.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

import structlog

SUBSYSTEMS = ("bot", "parser", "dispatch", "permissions", "scheduler", "transport")

LOGGER_PREFIX = "chainbot"

_REDACTED = "***REDACTED***"

_TOKEN_RE = re.compile(
    r"(?:Bot|Bearer)\s+[a-zA-Z0-9_./-]{20,}"  # authorization header values
    r"|[A-Za-z0-9_-]{20,}\.[A-Za-z0-9_-]{5,}\.[A-Za-z0-9_-]{20,}"  # dotted bot tokens
    r"|CHAINBOT_TOKEN=\S+"
)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return _TOKEN_RE.sub(_REDACTED, value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor replacing bot tokens with a placeholder.

    Strings are scrubbed at the top level and one level into lists,
    tuples and dicts.
    """
    for key, value in event_dict.items():
        if isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(_scrub(v) for v in value)
        elif isinstance(value, dict):
            event_dict[key] = {k: _scrub(v) for k, v in value.items()}
        else:
            event_dict[key] = _scrub(value)
    return event_dict


class _LogSettings(NamedTuple):
    log_dir: Path
    level: int
    subsystem_levels: Dict[str, str]
    max_bytes: int
    backup_count: int


def _level(name: Optional[str], default: int) -> int:
    if not name:
        return default
    return getattr(logging, name.upper(), default)


def _settings(config) -> _LogSettings:
    if config is None:
        return _LogSettings(Path.cwd() / "logs", logging.INFO, {}, 10 * 1024 * 1024, 5)
    return _LogSettings(
        log_dir=config.log_dir,
        level=_level(config.logging_level, logging.INFO),
        subsystem_levels=config.logging_subsystem_levels,
        max_bytes=config.logging_max_file_size_mb * 1024 * 1024,
        backup_count=config.logging_backup_count,
    )


def _reset(name: Optional[str], level: int) -> logging.Logger:
    log = logging.getLogger(name)
    log.handlers.clear()
    log.setLevel(level)
    log.propagate = True
    return log


def _file_handler(
    path: Path, level: int, settings: _LogSettings, formatter: logging.Formatter
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config=None) -> None:
    """Configure console and per-subsystem file logging.

    Called once with no argument at startup and again once the Config
    has loaded; only the second call lets structlog cache loggers. If
    the log directory cannot be created, logging stays console-only.
    """
    settings = _settings(config)

    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        files = True
    except OSError as exc:
        print(
            f"WARNING: Cannot create log directory {settings.log_dir}: {exc}. "
            "Logging to the console only.",
            file=sys.stderr,
        )
        files = False

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(settings.level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    _reset(None, logging.DEBUG).addHandler(console)

    combined = _reset(LOGGER_PREFIX, logging.DEBUG)
    if files:
        combined.addHandler(
            _file_handler(settings.log_dir / "chainbot.log", settings.level, settings, formatter)
        )

    for subsystem in SUBSYSTEMS:
        level = _level(settings.subsystem_levels.get(subsystem), settings.level)
        sub_logger = _reset(f"{LOGGER_PREFIX}.{subsystem}", level)
        if files:
            sub_logger.addHandler(
                _file_handler(settings.log_dir / f"{subsystem}.log", level, settings, formatter)
            )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )
