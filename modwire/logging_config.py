"""Logging for modwire: structlog on top of stdlib handlers.

Every event reaches the console (stderr, so stdout stays free for
command replies), the combined ``modwire.log`` and the file of the
subsystem that emitted it:

    modwire.app      -> app.log       (config, startup, shutdown)
    modwire.commands -> commands.log  (slash-command dispatch)
    modwire.twitch   -> twitch.log    (Helix requests)
    modwire.obs      -> obs.log       (OBS integration)

Access tokens and registered secrets are scrubbed before rendering.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import structlog

SUBSYSTEMS = ("app", "commands", "twitch", "obs")

LOGGER_PREFIX = "modwire"

DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"

# ---------------------------------------------------------------------------
# Secret sanitization
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    # Chat-style OAuth tokens
    re.compile(r"oauth:[a-zA-Z0-9]{20,}"),
    # Authorization header values sent to Helix
    re.compile(r"Bearer\s+[a-zA-Z0-9_./-]{20,}"),
]

_REDACTED = "***REDACTED***"

# Literal secrets registered at runtime (e.g. the OBS websocket password)
_extra_secrets: set = set()


def register_secrets(values: Iterable[Optional[str]]) -> None:
    """Add literal values that must never appear in log output."""
    _extra_secrets.update(v for v in values if v)


def _scrub(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    for secret in _extra_secrets:
        value = value.replace(secret, _REDACTED)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that redacts tokens and registered secrets.

    Strings are scrubbed at the top level and one level down inside
    lists, tuples and dicts (request params, header maps).
    """
    for key, value in event_dict.items():
        if isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(_scrub(v) for v in value)
        elif isinstance(value, dict):
            event_dict[key] = {k: _scrub(v) for k, v in value.items()}
        else:
            event_dict[key] = _scrub(value)
    return event_dict


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _level(name: Optional[str], default: int) -> int:
    if not name:
        return default
    return getattr(logging, name.upper(), default)


def _file_handler(
    path: Path, level: int, max_bytes: int, backup_count: int,
    formatter: logging.Formatter,
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _ensure_log_dir(log_dir: Path) -> bool:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(
            f"WARNING: Cannot create log directory {log_dir}: {exc}. "
            "Logging to the console only.",
            file=sys.stderr,
        )
        return False
    return True


def setup_logging(config=None) -> None:
    """Install console, combined and per-subsystem handlers.

    Called twice by the entry point: once with no config so that
    startup messages are visible, then again with the loaded Config,
    which also registers the access token and OBS password as secrets.
    Logger caching is only switched on for the second call.
    """
    if config is not None:
        log_dir = config.log_dir
        root_level = _level(config.logging_level, logging.INFO)
        subsystem_levels = config.logging_subsystem_levels
        max_bytes = config.logging_max_file_size_mb * 1024 * 1024
        backup_count = config.logging_backup_count
        register_secrets([config.twitch_access_token, config.obs_password])
    else:
        log_dir = DEFAULT_LOG_DIR
        root_level = logging.INFO
        subsystem_levels = {}
        max_bytes = 10 * 1024 * 1024
        backup_count = 5

    write_files = _ensure_log_dir(log_dir)
    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(root_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    )
    root_logger.addHandler(console_handler)

    # logger name -> (logger level, file level, file name)
    targets = {LOGGER_PREFIX: (logging.DEBUG, root_level, f"{LOGGER_PREFIX}.log")}
    for subsystem in SUBSYSTEMS:
        level = _level(subsystem_levels.get(subsystem), root_level)
        targets[f"{LOGGER_PREFIX}.{subsystem}"] = (level, level, f"{subsystem}.log")

    for name, (logger_level, handler_level, filename) in targets.items():
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.setLevel(logger_level)
        stdlib_logger.handlers.clear()
        stdlib_logger.propagate = True
        if write_files:
            stdlib_logger.addHandler(
                _file_handler(
                    log_dir / filename, handler_level, max_bytes,
                    backup_count, file_formatter,
                )
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
