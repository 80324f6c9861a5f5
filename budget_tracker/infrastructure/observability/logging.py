"""Structured JSON logging for production observability"""

import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence
from pythonjsonlogger import jsonlogger

from budget_tracker.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
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


def log_project_created(owner_id: str, project_id: uuid.UUID, payment_type: str, installments_count: int) -> None:
    logging.info(
        "Project created",
        extra={
            "owner_id": owner_id,
            "project_id": str(project_id),
            "step": "project_created",
            "payment_type": payment_type,
            "installments_count": installments_count,
        },
    )


def log_transaction_recorded(
    owner_id: str,
    transaction_id: uuid.UUID,
    project_id: uuid.UUID,
    installment_id: Optional[uuid.UUID],
    amount_cents: int,
    warnings: Sequence[str],
) -> None:
    """Log a stored payment; overage warnings raise the level so they stand out"""
    level = logging.WARNING if warnings else logging.INFO
    logging.log(
        level,
        "Transaction recorded",
        extra={
            "owner_id": owner_id,
            "transaction_id": str(transaction_id),
            "project_id": str(project_id),
            "installment_id": str(installment_id) if installment_id else None,
            "step": "transaction_recorded",
            "amount_cents": amount_cents,
            "warnings": list(warnings),
        },
    )


def log_compensating_rollback(owner_id: str, project_id: uuid.UUID, reason: str) -> None:
    logging.error(
        "Installment insert failed, removing project",
        extra={
            "owner_id": owner_id,
            "project_id": str(project_id),
            "step": "compensating_rollback",
            "reason": reason,
        },
    )


def log_partial_success(owner_id: str, project_id: uuid.UUID, step: str, reason: str) -> None:
    """A secondary step failed after the primary write committed"""
    logging.warning(
        "Project saved with a failed follow-up step",
        extra={
            "owner_id": owner_id,
            "project_id": str(project_id),
            "step": step,
            "reason": reason,
        },
    )
