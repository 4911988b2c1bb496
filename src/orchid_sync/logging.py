"""Logging for the sync engine, built on loguru.

Every record emitted through ``get_logger``/``bind_issue``/``bind_reply``
carries a ``name`` plus whichever entity ids are in play, and the console
line shows those ids next to the message so one sync can be followed
across the guard, the retry scheduler and the worker. Records from
githubkit's httpx transport and from SQLAlchemy are routed through
``InterceptHandler`` into the same sinks.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
Environment = Literal["development", "staging", "production"]

ENTITY_KEYS = ("issue_id", "reply_id", "entity_id")
"""Extra keys rendered as entity context on console lines."""


class InterceptHandler(logging.Handler):
    """Route stdlib records (httpx, SQLAlchemy) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _entity_context(record: Record) -> str:
    extra = record["extra"]
    parts = [f"{key.removesuffix('_id')}={extra[key]}" for key in ENTITY_KEYS if key in extra]
    return f" [{' '.join(parts)}]" if parts else ""


def _console_format(record: Record) -> str:
    """Console line: time, level, source, entity ids, message."""
    source = record["extra"].get("name", record["name"])
    context = _entity_context(record).replace("{", "{{").replace("}", "}}")
    source = str(source).replace("{", "{{").replace("}", "}}")
    return (
        "<dim>{time:HH:mm:ss}</dim> | "
        "<level>{level: <8}</level> | "
        f"<cyan>{source}</cyan>{context} - "
        "<level>{message}</level>\n{exception}"
    )


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    environment: Environment = "development",
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure the console sink and, optionally, a rotating file sink.

    Args:
        level: Base log level from config
        verbose: Use DEBUG (wins over quiet)
        quiet: Use WARNING
        environment: Production turns off variable values in tracebacks
        log_file: Optional path of a rotating log file
        rotation: When to rotate the log file
        retention: How long rotated files are kept
        serialize: Write the file sink as JSON lines

    Returns:
        The configured loguru logger
    """
    effective_level: LogLevel = "DEBUG" if verbose else "WARNING" if quiet else level
    diagnose = environment != "production"

    logger.remove()
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_console_format,
        colorize=True,
        backtrace=diagnose,
        diagnose=diagnose,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra} | {message}",
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
            diagnose=diagnose,
        )

    _route_stdlib(effective_level)
    return logger


def _route_stdlib(level: LogLevel) -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    debugging = level in ("TRACE", "DEBUG")
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debugging else logging.WARNING)
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.DEBUG if debugging else logging.WARNING)


def get_logger(name: str) -> Logger:
    """Logger with ``name`` bound, for module-level use."""
    return logger.bind(name=name)


def bind_issue(issue_id: str) -> Logger:
    """Logger for work on one local issue."""
    return logger.bind(name="sync", issue_id=issue_id)


def bind_reply(reply_id: str, issue_id: str | None = None) -> Logger:
    """Logger for work on one reply.

    Args:
        reply_id: Local reply id
        issue_id: Parent issue id, when known

    Returns:
        Logger with reply (and issue) context bound
    """
    if issue_id is None:
        return logger.bind(name="sync", reply_id=reply_id)
    return logger.bind(name="sync", reply_id=reply_id, issue_id=issue_id)


def reset_logging() -> None:
    """Drop every sink (used between tests)."""
    logger.remove()
