"""Logging configuration and setup."""

import json
import logging
import os
import sys
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from order_automation.config.constants import DEFAULT_BUSINESS_TIMEZONE

# Get log level from environment
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Create logs directory
log_dir = Path(os.getenv("LOG_DIR", "logs"))
log_dir.mkdir(parents=True, exist_ok=True)

# Business timezone for log timestamps
LOG_TZ = ZoneInfo(os.getenv("BUSINESS_TIMEZONE", DEFAULT_BUSINESS_TIMEZONE))

# Generate session ID (for distinguishing multiple app starts on same day)
SESSION_ID = str(uuid.uuid4())[:8]

# Create date-based log filename with session ID
LOG_DATE = datetime.now(LOG_TZ).strftime("%Y-%m-%d")
LOG_FILENAME = f"automation_{LOG_DATE}_{SESSION_ID}.log"

# Record attributes passed through `extra=` that end up in the JSON line
EXTRA_FIELDS = ("order_id", "rule_id", "email_type", "recipient", "pass_id")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON (business timezone)."""
        log_data = {
            "timestamp": datetime.now(LOG_TZ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


# Configure root logger once
root_logger = logging.getLogger()
root_logger.setLevel(logging.DEBUG)

# Skip if already configured
if not root_logger.handlers:
    file_handler = logging.FileHandler(log_dir / LOG_FILENAME)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    console_handler.setFormatter(JSONFormatter())

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)


def setup_logger(name: str) -> logging.Logger:
    """Get logger for a module."""
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger


logger = setup_logger("order_automation")
