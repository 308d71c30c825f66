"""
Logging setup for the revenue scheduling package.

Only the ``revenue_scheduling`` logger tree is configured, so an embedding
application keeps its own root handlers. Engine log calls pass
``entity_id``, ``period`` and ``actor_id`` extras; the JSON formatter lifts
them into top-level keys and the text formatter appends them.
"""
import logging
import json
import sys
from datetime import datetime, timezone

PACKAGE_LOGGER = "revenue_scheduling"
EXTRA_FIELDS = ("entity_id", "period", "actor_id")


def _extras(record):
    return {name: getattr(record, name) for name in EXTRA_FIELDS if hasattr(record, name)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with engine extras as top-level keys."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        log_entry.update(_extras(record))
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__("%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    def format(self, record):
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging(level: str = "INFO", json_output: bool = True) -> logging.Logger:
    """
    Configure the package logger. Calling it again swaps the formatter and
    level on the existing handler instead of adding another one.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    handler = next((h for h in logger.handlers if getattr(h, "_revenue_scheduling", False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler._revenue_scheduling = True
        logger.addHandler(handler)
    handler.setFormatter(JSONFormatter() if json_output else TextFormatter())

    # Request lines duplicate the API's own error logging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return logger
