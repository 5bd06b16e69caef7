"""Logging configuration utilities."""

import logging

from pythonjsonlogger.json import JsonFormatter

NOISY_LOGGERS = ("botocore", "aiobotocore", "aioboto3", "httpx", "httpcore", "PIL")

JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_formatter(log_format: str = "json") -> logging.Formatter:
    """
    Build the formatter for a log format name.

    'json' renders one object per record with time, level, logger and message
    keys plus any `extra` fields; anything else renders a plain text line.
    """
    if log_format == "json":
        return JsonFormatter(
            JSON_FIELDS,
            rename_fields={"asctime": "time", "levelname": "level", "name": "logger"},
            json_ensure_ascii=False,
        )
    return logging.Formatter(TEXT_FORMAT)


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Format type ('json' or 'text')
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(log_format))
    logging.basicConfig(level=level, handlers=[handler])

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger = logging.getLogger(__name__)
    logger.info("Logging configured", extra={"log_level": log_level, "log_format": log_format})
