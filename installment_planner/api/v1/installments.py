"""Installment endpoints - payment recording, payment history and overdue tracking"""

import logging
import uuid
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from installment_planner.api.dependencies import get_request_id, get_settings, get_today
from installment_planner.api.v1.payment_plans import to_installment_schema
from installment_planner.api.v1.schemas import (
    OverdueInstallmentSchema,
    OverdueListResponse,
    OverdueRefreshResponse,
    PaymentListResponse,
    PaymentSchema,
    RecordPaymentRequest,
    RecordPaymentResponse,
)
from installment_planner.config import Settings
from installment_planner.domain.exceptions import ConcurrentPaymentError, InvalidPaymentError, InvalidPlanRequest
from installment_planner.domain.installments import to_cents
from installment_planner.domain.models import cents_to_decimal
from installment_planner.domain.payments import apply_payment, ensure_plan_accepts_payments
from installment_planner.infrastructure.database.models import InstallmentPayment
from installment_planner.infrastructure.database.repositories import (
    InstallmentRepository,
    PaymentPlanRepository,
    to_installment_state,
)
from installment_planner.infrastructure.database.session import get_db
from installment_planner.infrastructure.observability.logging import log_payment_recorded
from installment_planner.infrastructure.observability.metrics import overdue_marked_counter, payment_counter

router = APIRouter()


def to_payment_schema(payment: InstallmentPayment) -> PaymentSchema:
    return PaymentSchema(
        payment_id=str(payment.id),
        installment_id=str(payment.installment_id),
        amount=cents_to_decimal(payment.amount_cents),
        currency=payment.currency,
        payment_date=payment.payment_date,
        payment_method=payment.payment_method,
        receipt_number=payment.receipt_number,
        transaction_id=payment.transaction_id,
        notes=payment.notes,
    )


def parse_installment_id(installment_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(installment_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid installment ID format")


@router.post("/installments/{installment_id}/payments", response_model=RecordPaymentResponse)
def record_payment(
    installment_id: str,
    request_body: RecordPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
    today: date = Depends(get_today),
):
    """
    Record a full or partial payment against one installment.

    The installment row is locked for the rest of the transaction, every
    payment is stored as its own row, and the plan is marked completed once
    every installment is paid.
    """
    request_id = get_request_id(request)
    installment_uuid = parse_installment_id(installment_id)

    installment_repo = InstallmentRepository(db)
    installment = installment_repo.get_installment_by_id(installment_uuid, for_update=True)
    if not installment:
        db.rollback()
        raise HTTPException(status_code=404, detail="لم يتم العثور على القسط / Installment not found")

    payment_date = request_body.payment_date or today
    try:
        ensure_plan_accepts_payments(installment.plan.status)
        amount_cents = to_cents(request_body.amount, "amount")
        outcome = apply_payment(to_installment_state(installment), amount_cents, payment_date)
    except (InvalidPaymentError, InvalidPlanRequest) as e:
        db.rollback()
        payment_counter.labels(outcome="rejected").inc()
        logging.warning(f"Payment rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    try:
        payment = installment_repo.record_payment(
            installment,
            outcome,
            amount_cents=amount_cents,
            payment_date=payment_date,
            payment_method=request_body.payment_method,
            receipt_number=request_body.receipt_number or f"REC-{uuid.uuid4().hex[:12].upper()}",
            currency=config.currency,
            transaction_id=request_body.transaction_id,
            notes=request_body.notes,
        )
        plan = installment.plan
        plan_completed = PaymentPlanRepository(db).complete_if_fully_paid(plan)
        db.commit()
    except ConcurrentPaymentError as e:
        db.rollback()
        payment_counter.labels(outcome="conflict").inc()
        logging.warning(f"Payment conflict: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to record payment: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    payment_counter.labels(outcome=outcome.status.value).inc()
    log_payment_recorded(
        request_id, installment_id, str(payment.id), amount_cents, outcome.status.value, plan_completed
    )

    return RecordPaymentResponse(
        payment=to_payment_schema(payment),
        installment=to_installment_schema(installment),
        plan_id=str(plan.id),
        plan_status=plan.status,
    )


@router.get("/installments/{installment_id}/payments", response_model=PaymentListResponse)
def list_payments(installment_id: str, db: Session = Depends(get_db)):
    """Every payment collected against an installment, oldest first"""
    installment_uuid = parse_installment_id(installment_id)

    installment_repo = InstallmentRepository(db)
    if not installment_repo.get_installment_by_id(installment_uuid):
        raise HTTPException(status_code=404, detail="لم يتم العثور على القسط / Installment not found")

    return PaymentListResponse(
        payments=[to_payment_schema(payment) for payment in installment_repo.list_payments(installment_uuid)]
    )


@router.post("/installments/overdue/refresh", response_model=OverdueRefreshResponse)
def refresh_overdue(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Mark unpaid installments past their grace period as overdue"""
    updated = InstallmentRepository(db).refresh_overdue(today)
    db.commit()

    overdue_marked_counter.inc(updated)
    logging.info("Overdue installments refreshed", extra={"updated_count": updated})
    return OverdueRefreshResponse(updated_count=updated)


@router.get("/installments/overdue", response_model=OverdueListResponse)
def list_overdue(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Overdue installments, oldest due date first"""
    installments = InstallmentRepository(db).list_overdue(limit=limit)

    return OverdueListResponse(
        installments=[
            OverdueInstallmentSchema(
                **to_installment_schema(inst).model_dump(),
                plan_id=str(inst.plan_id),
                student_id=inst.plan.student_id,
            )
            for inst in installments
        ]
    )
