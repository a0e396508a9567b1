"""
Logging setup for the API process and scheduled jobs
"""
import logging
import sys
from datetime import datetime

from adpulse.core.config import settings


class ReadableFormatter(logging.Formatter):
    """Human readable console formatter"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        logger_name = record.name
        if logger_name.startswith("adpulse."):
            logger_name = logger_name[len("adpulse."):]

        formatted = f"{timestamp} {record.levelname:8} [{logger_name}] {record.getMessage()}"
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


def configure_logging() -> None:
    """Configure the root logger once (safe to call repeatedly)"""
    root_logger = logging.getLogger()
    if any(getattr(h, "_adpulse", False) for h in root_logger.handlers):
        return

    root_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ReadableFormatter())
    console_handler._adpulse = True
    root_logger.addHandler(console_handler)

    # Reduce third-party noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.INFO)
