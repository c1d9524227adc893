"""Logging configuration for PDF Agent."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Attributes every LogRecord carries; anything else was passed via `extra=`
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields if present
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """
    Configure the root logger.

    Args:
        log_level: Level name such as "INFO" or "DEBUG"
        log_format: "json" for structured output, anything else for plain text
    """
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # Replace handlers so repeated setup (reload, tests) does not duplicate output
    root_logger.handlers = [handler]
