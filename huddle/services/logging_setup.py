"""Process-wide logging: a rotating server log plus console output."""

import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "[%(asctime)s] [%(name)s] %(message)s"
LOG_DATEFMT = "%H:%M:%S"

_MAX_BYTES = 5_000_000
_BACKUP_COUNT = 3
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _console_level() -> int:
    name = os.environ.get("HUDDLE_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _handlers(log_path: str, console_level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATEFMT)

    file_handler = RotatingFileHandler(
        log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.name = "huddle_file"

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(console_level)
    stream_handler.name = "huddle_stream"

    for handler in (file_handler, stream_handler):
        handler.setFormatter(formatter)
    return [file_handler, stream_handler]


def _install(logger: logging.Logger, handlers: list[logging.Handler], level: int) -> None:
    for old in logger.handlers[:]:
        logger.removeHandler(old)
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def configure_logging(logs_dir: Optional[str] = None) -> str:
    """
    Route the root and uvicorn loggers to logs/server_<timestamp>.log and stderr.

    The file gets everything from DEBUG up; the console level comes from
    HUDDLE_LOG_LEVEL (INFO when unset or unknown).

    Returns:
        Path of the log file for this process
    """
    logs_dir = logs_dir or os.path.join(os.getcwd(), "logs")
    os.makedirs(logs_dir, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    log_path = os.path.join(logs_dir, f"server_{stamp}.log")

    handlers = _handlers(log_path, _console_level())
    _install(logging.getLogger(), handlers, logging.DEBUG)
    for name in _SERVER_LOGGERS:
        _install(logging.getLogger(name), handlers, logging.INFO)

    logging.getLogger("huddle.boot").info("Logging initialized: %s", log_path)
    return log_path
