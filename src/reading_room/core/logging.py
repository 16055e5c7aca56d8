"""
Logging configuration and utilities.

All package loggers hang off the "reading_room" logger, so setting up
logging never touches the handlers of the host application. Provider
URLs carry API keys and tokens in their query strings; every handler
installed here masks them before a record is written.
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "reading_room"

# Third-party loggers that are chatty at INFO (httpx logs every request URL)
QUIET_LOGGERS = ("httpx", "httpcore", "yfinance", "hpack")

_SECRET_PARAM = re.compile(
    r"(?P<key>\b(?:apikey|api_key|token|appkey|appsecret|access_token|key)=)[^&\s'\"]+",
    re.IGNORECASE,
)
_BEARER = re.compile(r"(?P<key>Bearer\s+)[A-Za-z0-9._\-]+")

MASK = "***"


def redact(text: str) -> str:
    """Mask credential values in query strings and bearer headers."""
    text = _SECRET_PARAM.sub(lambda m: m.group("key") + MASK, text)
    return _BEARER.sub(lambda m: m.group("key") + MASK, text)


class RedactingFilter(logging.Filter):
    """Rewrites the rendered message of each record with secrets masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class LogFormatter(logging.Formatter):
    """Plain formatter for non-TTY and file output."""

    SIMPLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
    DETAILED_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        super().__init__(fmt or self.SIMPLE_FORMAT, datefmt)


class LoggingManager:
    """Configure the package logger from the `logging` config section."""

    def __init__(self, config: Optional[dict] = None):
        self.config = config or {}
        self._loggers: dict[str, logging.Logger] = {}
        self._filter = RedactingFilter()

    def setup(self) -> None:
        package_logger = logging.getLogger(ROOT_LOGGER)
        package_logger.setLevel(logging.DEBUG)
        package_logger.handlers = []
        package_logger.propagate = False

        handlers = []
        console_config = self.config.get("console", {})
        if console_config.get("enabled", True):
            handlers.append(self._console_handler(console_config))

        file_config = self.config.get("file", {})
        if file_config.get("enabled", False):
            handlers.append(self._file_handler(file_config))

        for handler in handlers:
            handler.addFilter(self._filter)
            package_logger.addHandler(handler)

        for component, level in self.config.get("components", {}).items():
            logging.getLogger(f"{ROOT_LOGGER}.{component}").setLevel(level.upper())

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    def _console_handler(self, config: dict) -> logging.Handler:
        level = config.get("level", self.config.get("level", "INFO")).upper()

        # Logs go to stderr so command output on stdout stays parseable
        if config.get("colors", True) and sys.stderr.isatty():
            handler: logging.Handler = RichHandler(
                console=Console(stderr=True),
                show_time=True,
                show_path=False,
                rich_tracebacks=True,
            )
        else:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(LogFormatter(datefmt="%H:%M:%S"))

        handler.setLevel(level)
        return handler

    def _file_handler(self, config: dict) -> logging.Handler:
        log_path = Path(config.get("path", "reading_room.log")).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handler = RotatingFileHandler(
            log_path,
            maxBytes=config.get("max_size_mb", 20) * 1024 * 1024,
            backupCount=config.get("backup_count", 3),
            encoding="utf-8",
        )
        handler.setLevel(config.get("level", "DEBUG").upper())
        handler.setFormatter(
            LogFormatter(fmt=LogFormatter.DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        full_name = f"{ROOT_LOGGER}.{name}"
        if full_name not in self._loggers:
            self._loggers[full_name] = logging.getLogger(full_name)
        return self._loggers[full_name]


_logging_manager: Optional[LoggingManager] = None


def setup_logging(config: Optional[dict] = None) -> None:
    """Setup logging from configuration."""
    global _logging_manager
    _logging_manager = LoggingManager(config)
    _logging_manager.setup()


def get_logger(name: str) -> logging.Logger:
    """Logger for a component: get_logger("fetch.cascade") -> reading_room.fetch.cascade."""
    if _logging_manager:
        return _logging_manager.get_logger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
