"""
Structured logging configuration for the replay tool.

Provides JSON-formatted logs with a `stream` field so log lines from several
concurrent replays can be told apart.

Environment Variables:
    REPLAY_LOG_LEVEL: Log level (TRACE, DEBUG, INFO, WARNING, ERROR) - default: INFO
    REPLAY_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from replayer.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, stream="taxi-trip-events")
    logger.info("Starting to populate stream")
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

# Per-event and per-watermark logs, below DEBUG.
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure root logger with structured logging.

    Arguments override the environment:
    - REPLAY_LOG_LEVEL: TRACE, DEBUG, INFO, WARNING, ERROR (default: INFO)
    - REPLAY_LOG_FORMAT: json, text (default: json)
    """
    level_name = (level or os.getenv("REPLAY_LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.getenv("REPLAY_LOG_FORMAT", "json")).lower()
    resolved = LEVELS.get(level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.addFilter(StreamFilter())

    if fmt == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(stream)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [stream=%(stream)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str, stream: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger tagged with the destination stream name.

    Example:
        logger = get_logger(__name__, stream="taxi-trip-events")
        logger.info("send watermark")
        # Output (JSON): {"timestamp": "...", "level": "INFO", "message": "send watermark", "stream": "taxi-trip-events"}
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"stream": stream or "N/A"})


class StreamFilter(logging.Filter):
    """Ensures every record has a `stream` field, even without a LoggerAdapter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "stream"):
            record.stream = "N/A"  # type: ignore
        return True
