"""Logging configuration for the pipeline and catalog service.

Provides structured logging with both console and file output. The file
handler writes one JSON object per line so pipeline runs, quality gate
results and cache refreshes can be inspected after the fact.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = [
    "setup_logging",
    "get_logger",
    "log_pipeline_event",
    "LOG_DIR",
]

LOG_DIR = Path(__file__).parent.parent / "logs"


class JSONLFileHandler(logging.Handler):
    """Handler that appends structured JSONL entries to a daily file."""

    def __init__(self, log_dir: Path, prefix: str = "pipeline"):
        super().__init__()
        self.log_dir = log_dir
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix

    def _get_log_file(self) -> Path:
        """Get log file path, rotating daily."""
        today = datetime.now().strftime("%Y%m%d")
        return self.log_dir / f"{self.prefix}_{today}.jsonl"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "timestamp": datetime.now().isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }

            if hasattr(record, "event_type"):
                entry["event_type"] = record.event_type
            if hasattr(record, "extra_data"):
                entry.update(record.extra_data)
            if record.exc_info:
                entry["exception"] = self.formatException(record.exc_info)

            with open(self._get_log_file(), "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")

        except Exception:
            self.handleError(record)

    def formatException(self, exc_info) -> str:
        return logging.Formatter().formatException(exc_info)


class ColoredConsoleHandler(logging.StreamHandler):
    """Console handler with colored output for better readability."""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if hasattr(self.stream, "isatty") and self.stream.isatty():
            color = self.COLORS.get(record.levelname, "")
            if color:
                message = message.replace(
                    f"[{record.levelname}]", f"[{color}{record.levelname}{self.RESET}]", 1
                )
        return message


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
    logger_name: str = "pipeline",
) -> logging.Logger:
    """Set up logging for a top-level package logger.

    Args:
        level: Logging level (default: INFO)
        log_to_file: Whether to log to JSONL file
        log_to_console: Whether to log to console
        log_dir: Custom log directory (default: project logs/)
        logger_name: Package logger to configure ("pipeline" or "web")

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_to_console:
        console_handler = ColoredConsoleHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")
        )
        logger.addHandler(console_handler)

    if log_to_file:
        file_handler = JSONLFileHandler(log_dir or LOG_DIR, prefix=logger_name)
        file_handler.setLevel(logging.DEBUG)  # Capture all levels to file
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "pipeline") -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (will be prefixed with 'pipeline.')
    """
    if name == "pipeline" or name.startswith("pipeline."):
        return logging.getLogger(name)
    return logging.getLogger(f"pipeline.{name}")


def log_pipeline_event(
    event_type: str,
    data: Dict[str, Any],
    level: int = logging.INFO,
    logger_name: str = "pipeline",
) -> None:
    """Log a structured event.

    Args:
        event_type: Type of event (e.g., 'run_complete', 'quality_gates', 'cache_refresh')
        data: Event-specific data; a 'message' key becomes the log message
        level: Log level
        logger_name: Logger to use
    """
    logger = logging.getLogger(logger_name)
    if not logger.isEnabledFor(level):
        return

    record = logger.makeRecord(
        logger.name,
        level,
        "(event)",
        0,
        data.get("message", event_type),
        (),
        None,
    )
    record.event_type = event_type
    record.extra_data = {k: v for k, v in data.items() if k != "message"}

    logger.handle(record)
