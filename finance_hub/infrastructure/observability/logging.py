"""Structured JSON logging"""

import logging
import sys
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from finance_hub.config import settings
from finance_hub.utils.date_utils import utc_now


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = utc_now().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_sync_outcome(strategy: str, success: bool, message: str, duration_ms: float) -> None:
    """Log structured outcome of one composite sync"""
    logging.getLogger("finance_hub.sync").log(
        logging.INFO if success else logging.WARNING,
        "Sync completed" if success else "Sync failed",
        extra={
            "step": "sync_complete",
            "strategy": strategy,
            "outcome": "success" if success else "failure",
            "detail": message,
            "duration_ms": duration_ms,
        },
    )
