"""Engine logging: structured JSON records or plain text, chosen by LOG_FORMAT"""

import logging
import sys
from pythonjsonlogger.json import JsonFormatter

from homedelivery.config import settings

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty libraries kept at WARNING regardless of LOG_LEVEL
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg")


class EngineJsonFormatter(JsonFormatter):
    """Stamps every record with its level, logger and the running engine build"""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["environment"] = settings.ENVIRONMENT
        log_record["app_name"] = settings.APP_NAME
        log_record["app_version"] = settings.APP_VERSION
        # Set by callers tracing one billing or commission run
        if hasattr(record, "correlation_id"):
            log_record["correlation_id"] = record.correlation_id


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return EngineJsonFormatter(fmt="%(asctime)s %(level)s %(name)s %(message)s", datefmt=DATE_FORMAT)
    return logging.Formatter(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt=DATE_FORMAT)


def setup_logging() -> None:
    """Route engine logs to stdout at LOG_LEVEL"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(settings.LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
