"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from installment_planner.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger"""
    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    logger.addHandler(handler)


def log_plan_created(
    request_id: str,
    plan_id: str,
    student_id: str,
    frequency: str,
    total_amount_cents: int,
    number_of_installments: int,
) -> None:
    logging.info(
        "Payment plan created",
        extra={
            "request_id": request_id,
            "plan_id": plan_id,
            "student_id": student_id,
            "step": "plan_created",
            "frequency": frequency,
            "total_amount_cents": total_amount_cents,
            "number_of_installments": number_of_installments,
        },
    )


def log_payment_recorded(
    request_id: str,
    installment_id: str,
    payment_id: str,
    amount_cents: int,
    status: str,
    plan_completed: bool,
) -> None:
    logging.info(
        "Installment payment recorded",
        extra={
            "request_id": request_id,
            "installment_id": installment_id,
            "payment_id": payment_id,
            "step": "payment_recorded",
            "amount_cents": amount_cents,
            "installment_status": status,
            "plan_completed": plan_completed,
        },
    )


def log_plan_modified(
    request_id: str,
    plan_id: str,
    modification_type: str,
    reason: str,
) -> None:
    logging.info(
        "Payment plan modified",
        extra={
            "request_id": request_id,
            "plan_id": plan_id,
            "step": "plan_modified",
            "modification_type": modification_type,
            "reason": reason,
        },
    )
