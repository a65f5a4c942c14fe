"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger.json import JsonFormatter

from budget_copilot.config import settings


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_decision(
    request_id: str,
    user_id: str,
    risk_level: str,
    command_type: str,
    is_new: bool,
    duration_ms: float,
) -> None:
    """Log structured decision outcome for analysis"""
    logging.info(
        "Decision served",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "decision_served",
            "risk_level": risk_level,
            "command_type": command_type,
            "is_new": is_new,
            "duration_ms": duration_ms,
        },
    )
