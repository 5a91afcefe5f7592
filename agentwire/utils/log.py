"""Logging utilities for agentwire."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, MutableMapping, Optional, Tuple

LOGGER_NAME = "agentwire"
LOG_LEVEL_ENV_VAR = "AGENTWIRE_LOG_LEVEL"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Formatter with UTC ISO timestamps and ``extra`` fields as trailing JSON."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return timestamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return message
        try:
            rendered = json.dumps(context, sort_keys=True, default=str)
        except (TypeError, ValueError):
            rendered = repr(context)
        return f"{message} | {rendered}"


def level_from_env(default: int = logging.WARNING) -> int:
    """Console level named by AGENTWIRE_LOG_LEVEL, or ``default``."""
    name = os.getenv(LOG_LEVEL_ENV_VAR, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


class AgentwireLogger(logging.LoggerAdapter):
    """Package logger.

    Wraps the ``agentwire`` stdlib logger. Module loggers inside the package
    (``logging.getLogger(__name__)``) propagate into it, so the console
    handler and an optional file handler see all package output. The
    logger itself does not propagate to the root logger.
    """

    def __init__(self, name: str = LOGGER_NAME, log_file: Optional[Path] = None):
        base = logging.getLogger(name)
        base.setLevel(logging.DEBUG)
        base.propagate = False
        super().__init__(base, {})

        self._console_handler = self._find_console_handler()
        if self._console_handler is None:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(level_from_env())
            handler.setFormatter(StructuredFormatter("%(levelname)s: %(message)s"))
            base.addHandler(handler)
            self._console_handler = handler

        self._file_handler: Optional[logging.FileHandler] = None
        if log_file is not None:
            self.attach_file_handler(log_file)

    def _find_console_handler(self) -> Optional[logging.Handler]:
        for handler in self.logger.handlers:
            if type(handler) is logging.StreamHandler:
                return handler
        return None

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        # Call-site extras win over the adapter's own.
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def set_console_level(self, level: int) -> None:
        if self._console_handler is not None:
            self._console_handler.setLevel(level)

    @property
    def log_file(self) -> Optional[Path]:
        if self._file_handler is None:
            return None
        return Path(self._file_handler.baseFilename)

    def attach_file_handler(self, log_file: Path) -> Path:
        """Write debug-level output to ``log_file``, replacing any previous file."""
        log_file = log_file.resolve()
        if self.log_file == log_file:
            return log_file

        self.detach_file_handler()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(StructuredFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        self.logger.addHandler(handler)
        self._file_handler = handler
        return log_file

    def detach_file_handler(self) -> None:
        if self._file_handler is None:
            return
        self.logger.removeHandler(self._file_handler)
        self._file_handler.close()
        self._file_handler = None


_logger: Optional[AgentwireLogger] = None


def get_logger() -> AgentwireLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = AgentwireLogger()
    return _logger


def init_logger(log_file: Optional[Path] = None) -> AgentwireLogger:
    """Re-create the global logger, optionally writing to ``log_file``."""
    global _logger
    if _logger is not None:
        _logger.detach_file_handler()
    _logger = AgentwireLogger(log_file=log_file)
    return _logger
