"""Logging configuration for acephar.

Provides subsystem-level log file routing, secret sanitization,
and structlog + stdlib integration.

Subsystem hierarchy (stdlib dotted names, structlog wraps them):
    root              → ConsoleHandler (terminal)
      └─ acephar      → RotatingFileHandler → acephar.log (combined)
           ├─ acephar.bot       → RFH → bot.log
           ├─ acephar.commands  → RFH → commands.log
           ├─ acephar.state     → RFH → state.log
           └─ acephar.transport → RFH → transport.log
"""

import logging
import logging.handlers
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

# Subsystem names; each gets its own RotatingFileHandler
SUBSYSTEMS = ("bot", "commands", "state", "transport")

# stdlib logger name prefix for hierarchy-based propagation
LOGGER_PREFIX = "acephar"

# ---------------------------------------------------------------------------
# Secret sanitization
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    # Bearer token values in headers
    re.compile(r"Bearer\s+[a-zA-Z0-9_./-]{20,}"),
    # Base64 session blobs (WHATSAPP_SESSION style)
    re.compile(r"eyJ[a-zA-Z0-9_=+/-]{40,}"),
]

# JIDs (2547...@s.whatsapp.net) and bare E.164-ish numbers
_JID_PATTERN = re.compile(r"\+?(\d{7,15})(@s\.whatsapp\.net|@lid)?")

_REDACTED = "***REDACTED***"


def _mask_number(match: "re.Match") -> str:
    return "..." + match.group(1)[-4:] + (match.group(2) or "")


def _scrub_value(value: str) -> str:
    """Scrub secrets and phone numbers from a single string value."""
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return _JID_PATTERN.sub(_mask_number, value)


def mask_jid(jid: str) -> str:
    """Mask a JID for log output, keeping the last 4 digits.

    A device suffix ("2547...:12@s.whatsapp.net") is dropped.
    """
    if not jid:
        return ""
    user, _, server = jid.partition("@")
    user = user.split(":", 1)[0]
    masked = "..." + user[-4:]
    return f"{masked}@{server}" if server else masked


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that scrubs tokens and full phone numbers.

    Walks all string values in the event dict and replaces matches
    with redacted placeholders. Phone numbers and JIDs are masked to
    their last 4 digits ("...5678@s.whatsapp.net").
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _scrub_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(
                _scrub_value(v) if isinstance(v, str) else v
                for v in value
            )
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _scrub_value(v) if isinstance(v, str) else v
                for k, v in value.items()
            }
    return event_dict


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

_DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"


@dataclass(frozen=True)
class LogSettings:
    """Resolved logging options.

    ``from_config(None)`` gives the phase-one defaults used before
    settings.yaml is read; loggers are not cached in that phase so the
    second call can still reconfigure them.
    """
    log_dir: Path = _DEFAULT_LOG_DIR
    level: int = logging.INFO
    subsystem_levels: Dict[str, int] = field(default_factory=dict)
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    cache_loggers: bool = False

    @classmethod
    def from_config(cls, config=None) -> "LogSettings":
        if config is None:
            return cls()
        level = _level(config.logging_level, logging.INFO)
        return cls(
            log_dir=config.log_dir,
            level=level,
            subsystem_levels={
                name: _level(value, level)
                for name, value in config.logging_subsystem_levels.items()
                if name in SUBSYSTEMS
            },
            max_bytes=int(config.logging_max_file_size_mb) * 1024 * 1024,
            backup_count=int(config.logging_backup_count),
            cache_loggers=True,
        )

    def level_for(self, subsystem: str) -> int:
        return self.subsystem_levels.get(subsystem, self.level)


def _level(name: Any, default: int) -> int:
    """Map "debug"/"INFO"/... to a logging level, falling back to ``default``."""
    if not name:
        return default
    value = getattr(logging, str(name).upper(), None)
    return value if isinstance(value, int) else default


def _file_handler(path: Path, level: int, settings: LogSettings, formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _reset_logger(name: Optional[str], level: int) -> logging.Logger:
    target = logging.getLogger(name)
    target.setLevel(level)
    target.handlers.clear()
    target.propagate = name is not None
    return target


def setup_logging(config=None) -> None:
    """Configure structlog on top of stdlib logging.

    Every event goes to the console and to ``acephar.log``; events from
    ``acephar.<subsystem>`` loggers also land in ``<subsystem>.log``.
    Called twice by the entry point: once with defaults, then again
    with the loaded Config.
    """
    settings = LogSettings.from_config(config)

    files_enabled = True
    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        files_enabled = False
        print(
            f"WARNING: cannot create log directory {settings.log_dir} ({exc}); "
            "logging to the console only.",
            file=sys.stderr,
        )

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    # Root: console; handlers filter by level
    root = _reset_logger(None, logging.DEBUG)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root.addHandler(console)

    app = _reset_logger(LOGGER_PREFIX, logging.DEBUG)
    if files_enabled:
        app.addHandler(_file_handler(
            settings.log_dir / f"{LOGGER_PREFIX}.log", settings.level, settings, file_formatter
        ))

    for subsystem in SUBSYSTEMS:
        level = settings.level_for(subsystem)
        sub = _reset_logger(f"{LOGGER_PREFIX}.{subsystem}", level)
        if files_enabled:
            sub.addHandler(_file_handler(
                settings.log_dir / f"{subsystem}.log", level, settings, file_formatter
            ))

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
        cache_logger_on_first_use=settings.cache_loggers,
    )
