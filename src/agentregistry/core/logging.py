import json
import logging
import sys
from typing import IO, Any

# Default Logger Name
LOGGER_NAME = "agentregistry"

# Attributes a call log record may carry via ``extra=``
CALL_FIELDS = ("sender", "contract", "agent_id", "block_height", "code")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with any call fields attached to the record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for field in CALL_FIELDS:
            if hasattr(record, field):
                payload[field] = getattr(record, field)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Configure the agentregistry logger.

    Args:
        level: Logging level (e.g., logging.INFO, "DEBUG")
        json_format: Emit JSON lines (for log shippers) instead of plain text
        stream: Output stream, stdout by default

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Re-configuring replaces, never stacks, handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
    logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a child logger of agentregistry."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
