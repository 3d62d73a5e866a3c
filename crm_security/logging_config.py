"""
Logging Configuration
=====================

Console and rotating-file logging for the security core, with an optional
structured JSON format.

Author: jetgause
Created: 2025-12-12
"""

import sys
import json
import logging
import logging.handlers
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, asdict, field


ROOT_LOGGER_NAME = "crm_security"
CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class LogEntry:
    """Structured log entry."""
    timestamp: str
    level: str
    message: str
    logger_name: str
    module: str
    function: str
    line_number: int
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), default=str)


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = LogEntry(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname,
            message=record.getMessage(),
            logger_name=record.name,
            module=record.module,
            function=record.funcName,
            line_number=record.lineno,
            extra=dict(getattr(record, 'extra', {}) or {})
        )

        if record.exc_info:
            log_entry.extra['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return log_entry.to_json()


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False
) -> logging.Logger:
    """
    Configure the package logger.

    Calling it again replaces the handlers it installed earlier.

    Args:
        level: Log level name
        log_file: Optional path for a rotating log file
        json_format: Emit JSON lines instead of plain text

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, '_crm_security', False):
            logger.removeHandler(handler)
            handler.close()

    formatter = JSONFormatter() if json_format else logging.Formatter(CONSOLE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler._crm_security = True
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._crm_security = True
        logger.addHandler(file_handler)

    return logger


__all__ = [
    'LogEntry',
    'JSONFormatter',
    'configure_logging',
    'ROOT_LOGGER_NAME',
]
