"""
Rivet Logging Infrastructure.

Provides unified logging for the query and record layers, with:
- Structured JSONL file output (one JSON object per line, easy to tail/parse)
- Console output for human monitoring
- Component tags (SQL, ORM, EAGER, N+1) on every record

Log Format Design:
- Primary file: .rivet/logs/rivet.log (JSONL)
- Each line carries timestamp, level, component, message and optional context
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

# =============================================================================
# Terminal Colors (respects NO_COLOR)
# =============================================================================

_NO_COLOR = os.environ.get("NO_COLOR") or not sys.stdout.isatty()


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "" if _NO_COLOR else "\033[0m"
    DIM = "" if _NO_COLOR else "\033[2m"

    # Log levels
    DEBUG = "" if _NO_COLOR else "\033[36m"  # Cyan
    INFO = "" if _NO_COLOR else "\033[32m"  # Green
    WARNING = "" if _NO_COLOR else "\033[33m"  # Yellow
    ERROR = "" if _NO_COLOR else "\033[31m"  # Red
    CRITICAL = "" if _NO_COLOR else "\033[35m"  # Magenta

    # Components
    SQL = "" if _NO_COLOR else "\033[34m"  # Blue
    ORM = "" if _NO_COLOR else "\033[35m"  # Magenta
    EAGER = "" if _NO_COLOR else "\033[36m"  # Cyan
    DIAGNOSTICS = "" if _NO_COLOR else "\033[33m"  # Yellow


# =============================================================================
# JSONL Formatter
# =============================================================================


class JSONLFormatter(logging.Formatter):
    """
    Formats log records as JSON Lines.

    Each log entry is a single JSON object on one line containing:
    - timestamp: ISO 8601 format
    - level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - component: SQL, ORM, EAGER, N+1
    - message: The log message
    - context: Additional structured data (optional)
    - source: Source file/location info (warnings and above)

    Example output:
    {"timestamp":"2024-01-15T10:30:45.123Z","level":"WARNING","component":"N+1","message":"Possible N+1 query","context":{"model":"Post","relation":"user"}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "component": getattr(record, "component", "ORM"),
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            source_info: dict[str, Any] = {}
            if record.pathname:
                source_info["file"] = record.pathname
            if record.lineno:
                source_info["line"] = record.lineno
            if record.funcName and record.funcName != "<module>":
                source_info["function"] = record.funcName
            if source_info:
                entry["source"] = source_info

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DEBUG,
        logging.INFO: Colors.INFO,
        logging.WARNING: Colors.WARNING,
        logging.ERROR: Colors.ERROR,
        logging.CRITICAL: Colors.CRITICAL,
    }

    def format(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", "ORM")
        component_color = getattr(record, "component_color", Colors.ORM)

        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level_color = self.LEVEL_COLORS.get(record.levelno, "")

        if _NO_COLOR:
            prefix = f"[{timestamp}] [{component}]"
        else:
            prefix = (
                f"{Colors.DIM}{timestamp}{Colors.RESET} "
                f"{component_color}[{component}]{Colors.RESET}"
            )

        # Add level for non-INFO messages
        if record.levelno != logging.INFO:
            level_name = record.levelname
            if not _NO_COLOR:
                level_name = f"{level_color}{level_name}{Colors.RESET}"
            prefix = f"{prefix} {level_name}:"

        return f"{prefix} {record.getMessage()}"


# =============================================================================
# Logger Setup
# =============================================================================


_loggers: dict[str, logging.Logger] = {}
_log_dir: Path | None = None
_file_handler: RotatingFileHandler | None = None

LOG_FILE_NAME = "rivet.log"


def setup_logging(
    log_dir: Path | str = ".rivet/logs",
    level: int | str = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    console: bool = True,
) -> Path:
    """
    Initialize the logging infrastructure.

    Creates:
    - .rivet/logs/rivet.log: JSONL format
    - Console output: Human-readable format

    Args:
        log_dir: Directory for log files
        level: Minimum log level (int or level name)
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep
        console: Attach a stdout handler as well

    Returns:
        Path to the log directory
    """
    global _log_dir, _file_handler

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    _log_dir = Path(log_dir)
    _log_dir.mkdir(parents=True, exist_ok=True)

    log_file = _log_dir / LOG_FILE_NAME
    _file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    _file_handler.setFormatter(JSONLFormatter())
    _file_handler.setLevel(level)

    root_logger = logging.getLogger("rivet")
    root_logger.setLevel(level)

    # Close handlers from a previous setup before replacing them
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ConsoleFormatter())
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    root_logger.addHandler(_file_handler)

    root_logger.debug(
        "Rivet logging initialized",
        extra={
            "component": "ORM",
            "context": {"log_format": "jsonl", "log_file": str(log_file)},
        },
    )

    return _log_dir


def get_logger(component: str, color: str = Colors.ORM) -> logging.Logger:
    """
    Get a logger for a specific component.

    Args:
        component: Component name (e.g., "SQL", "ORM", "EAGER")
        color: ANSI color code for the component tag

    Returns:
        Configured logger instance
    """
    if component in _loggers:
        return _loggers[component]

    safe_name = component.lower().replace(" ", "_").replace("+", "_plus_")
    logger = logging.getLogger(f"rivet.{safe_name}")

    # Add component info to all records via a filter
    class ComponentFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:
            if not hasattr(record, "component"):
                record.component = component
            if not hasattr(record, "component_color"):
                record.component_color = color
            return True

    logger.addFilter(ComponentFilter())
    _loggers[component] = logger

    return logger


# =============================================================================
# Contextual Logging
# =============================================================================


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a message with structured context data.

    Args:
        logger: Logger instance
        level: Logging level (logging.INFO, logging.ERROR, etc.)
        message: Human-readable message
        context: Structured context data (included in JSONL output)
        **kwargs: Additional context items
    """
    if not logger.isEnabledFor(level):
        return
    extra = {"context": {**(context or {}), **kwargs}} if (context or kwargs) else {}
    logger.log(level, message, extra=extra)


# =============================================================================
# Component Loggers
# =============================================================================


def get_sql_logger() -> logging.Logger:
    """Get logger for statement execution."""
    return get_logger("SQL", Colors.SQL)


def get_orm_logger() -> logging.Logger:
    """Get logger for record persistence."""
    return get_logger("ORM", Colors.ORM)


def get_eager_logger() -> logging.Logger:
    """Get logger for eager loading."""
    return get_logger("EAGER", Colors.EAGER)


def get_diagnostics_logger() -> logging.Logger:
    """Get logger for N+1 diagnostics."""
    return get_logger("N+1", Colors.DIAGNOSTICS)


# =============================================================================
# Utility Functions
# =============================================================================


def get_log_dir() -> Path | None:
    """Get the current log directory."""
    return _log_dir


def get_log_file() -> Path | None:
    """Get the path to the main log file."""
    if _log_dir:
        return _log_dir / LOG_FILE_NAME
    return None
