"""Payment plan endpoints - preview, eligibility, creation, lookup and modification"""

import logging
import uuid
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from installment_planner.api.v1.schemas import (
    CreatePlanRequest,
    DurationSchema,
    EligibilityRequest,
    EligibilityResponse,
    InstallmentLineSchema,
    InstallmentSchema,
    ModificationListResponse,
    ModificationSchema,
    ModifyPlanRequest,
    PaymentPlanListResponse,
    PaymentPlanResponse,
    PlanPreviewRequest,
    PlanPreviewResponse,
    PlanStatusChangeRequest,
)
from installment_planner.api.dependencies import get_request_id, get_settings, get_today
from installment_planner.config import Settings
from installment_planner.domain.eligibility import validate_eligibility
from installment_planner.domain.exceptions import InvalidPlanModification, InvalidPlanRequest, InvalidStatusTransition
from installment_planner.domain.installments import compute_preview, to_cents
from installment_planner.domain.models import Frequency, PlanPreview, PlanStatus, ScheduleChange, cents_to_decimal
from installment_planner.domain.plan_changes import (
    apply_schedule_changes,
    change_frequency,
    ensure_modifiable,
    validate_status_transition,
)
from installment_planner.infrastructure.database.models import PaymentInstallment, PaymentPlan, PaymentPlanModification
from installment_planner.infrastructure.database.repositories import PaymentPlanRepository, to_installment_state
from installment_planner.infrastructure.database.session import get_db
from installment_planner.infrastructure.observability.logging import log_plan_created, log_plan_modified
from installment_planner.infrastructure.observability.metrics import (
    invalid_request_counter,
    plan_modified_counter,
    preview_counter,
    record_plan_created,
)

router = APIRouter()


def to_preview_response(preview: PlanPreview) -> PlanPreviewResponse:
    return PlanPreviewResponse(
        installments=[
            InstallmentLineSchema(
                installment_number=line.installment_number,
                amount=line.amount,
                due_date=line.due_date,
            )
            for line in preview.installments
        ],
        total_amount=preview.total_amount,
        average_installment_amount=preview.average_installment_amount,
        duration=DurationSchema(weeks=preview.duration_weeks, months=preview.duration_months),
    )


def to_installment_schema(installment: PaymentInstallment) -> InstallmentSchema:
    return InstallmentSchema(
        installment_id=str(installment.id),
        installment_number=installment.installment_number,
        amount=cents_to_decimal(installment.amount_cents),
        paid_amount=cents_to_decimal(installment.paid_amount_cents or 0),
        due_date=installment.due_date,
        paid_date=installment.paid_date,
        status=installment.status,
        payment_method=installment.payment_method,
        receipt_number=installment.receipt_number,
    )


def to_plan_response(plan: PaymentPlan) -> PaymentPlanResponse:
    return PaymentPlanResponse(
        plan_id=str(plan.id),
        invoice_id=plan.invoice_id,
        student_id=plan.student_id,
        total_amount=cents_to_decimal(plan.total_amount_cents),
        number_of_installments=plan.number_of_installments,
        frequency=plan.frequency,
        start_date=plan.start_date,
        status=plan.status,
        payment_method=plan.payment_method,
        terms_accepted=plan.terms_accepted,
        grace_period_days=plan.grace_period_days,
        installments=[to_installment_schema(inst) for inst in plan.installments],
        created_at=plan.created_at.isoformat(),
    )


@router.post("/payment-plans/preview", response_model=PlanPreviewResponse)
def preview_plan(request_body: PlanPreviewRequest, request: Request):
    """
    Compute an installment schedule without persisting anything.

    Called on every edit of the plan form, so it touches neither the
    database nor the clock.
    """
    try:
        preview = compute_preview(request_body.to_domain())
    except InvalidPlanRequest as e:
        invalid_request_counter.inc()
        logging.info(f"Invalid plan request: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=422, detail=str(e))

    preview_counter.labels(frequency=preview.frequency.value).inc()
    return to_preview_response(preview)


@router.post("/payment-plans/eligibility", response_model=EligibilityResponse)
def check_eligibility(
    request_body: EligibilityRequest,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    """Check whether an invoice balance can be split for this student"""
    history = PaymentPlanRepository(db).get_student_history(request_body.student_id)
    result = validate_eligibility(request_body.invoice_amount, history, config)

    return EligibilityResponse(
        eligible=result.eligible,
        reasons=result.reasons,
        max_installments=result.max_installments,
        min_installment_amount=result.min_installment_amount,
        recommended_frequency=result.recommended_frequency.value,
    )


@router.post("/payment-plans", response_model=PaymentPlanResponse, status_code=201)
def create_plan(
    request_body: CreatePlanRequest,
    request: Request,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
    today: date = Depends(get_today),
):
    """
    Create and persist a payment plan.

    Flow:
    1. Require accepted terms
    2. Compute the schedule with the calculator
    3. Reject start dates in the past
    4. Persist plan + installments in one transaction
    """
    request_id = get_request_id(request)

    if not request_body.terms_accepted:
        raise HTTPException(
            status_code=400,
            detail="يجب قبول الشروط والأحكام / Terms and conditions must be accepted",
        )

    try:
        preview = compute_preview(request_body.to_domain())
    except InvalidPlanRequest as e:
        invalid_request_counter.inc()
        logging.info(f"Invalid plan request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    if preview.installments[0].due_date < today:
        raise HTTPException(
            status_code=400,
            detail="تاريخ البداية يجب أن يكون في المستقبل / Start date must not be in the past",
        )

    try:
        plan = PaymentPlanRepository(db).create_plan(
            preview=preview,
            invoice_id=request_body.invoice_id,
            student_id=request_body.student_id,
            terms_accepted=request_body.terms_accepted,
            payment_method=request_body.payment_method,
            notes=request_body.notes,
            late_fees_enabled=config.late_fees_enabled,
            late_fee_amount_cents=to_cents(config.late_fee_amount, "late_fee_amount"),
            grace_period_days=config.grace_period_days,
        )
        db.commit()
        db.refresh(plan)
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to persist payment plan: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_plan_created(plan.frequency, plan.number_of_installments)
    log_plan_created(
        request_id,
        str(plan.id),
        plan.student_id,
        plan.frequency,
        plan.total_amount_cents,
        plan.number_of_installments,
    )

    return to_plan_response(plan)


@router.get("/payment-plans", response_model=PaymentPlanListResponse)
def list_plans(
    student_id: Optional[str] = Query(None, alias="studentId"),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    plans = PaymentPlanRepository(db).list_plans(student_id=student_id, status=status)
    return PaymentPlanListResponse(plans=[to_plan_response(plan) for plan in plans])


def load_plan(repo: PaymentPlanRepository, plan_id: str, for_update: bool = False) -> PaymentPlan:
    try:
        plan_uuid = uuid.UUID(plan_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid plan ID format")

    plan = repo.get_plan_by_id(plan_uuid, for_update=for_update)
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan


def to_modification_schema(modification: PaymentPlanModification) -> ModificationSchema:
    return ModificationSchema(
        modification_id=str(modification.id),
        modification_type=modification.modification_type,
        previous_value=modification.previous_value,
        new_value=modification.new_value,
        reason=modification.reason,
        reason_ar=modification.reason_ar,
        created_at=modification.created_at.isoformat(),
    )


@router.get("/payment-plans/{plan_id}", response_model=PaymentPlanResponse)
def get_plan(plan_id: str, db: Session = Depends(get_db)):
    """Retrieve a payment plan with its installment schedule"""
    return to_plan_response(load_plan(PaymentPlanRepository(db), plan_id))


@router.post("/payment-plans/{plan_id}/modifications", response_model=PaymentPlanResponse)
def modify_plan(
    plan_id: str,
    request_body: ModifyPlanRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Change the amounts or due dates of pending installments, or move them
    to another frequency.

    The plan total never changes, and every change is written to the
    plan's modification log in the same transaction.
    """
    request_id = get_request_id(request)
    repo = PaymentPlanRepository(db)
    plan = load_plan(repo, plan_id, for_update=True)

    if (request_body.changes is None) == (request_body.frequency is None):
        db.rollback()
        raise HTTPException(status_code=422, detail="Provide either changes or frequency")

    schedule = {inst.installment_number: to_installment_state(inst) for inst in plan.installments}
    try:
        ensure_modifiable(plan.status)
        if request_body.frequency is not None:
            lines = change_frequency(schedule, plan.frequency, request_body.frequency)
            new_frequency = Frequency(request_body.frequency)
        else:
            new_frequency = None
            changes = [
                ScheduleChange(
                    installment_number=change.installment_number,
                    amount_cents=to_cents(change.amount, "amount") if change.amount is not None else None,
                    due_date=change.due_date,
                )
                for change in request_body.changes
            ]
            lines = apply_schedule_changes(schedule, changes, plan.total_amount_cents)
    except InvalidStatusTransition as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except (InvalidPlanModification, InvalidPlanRequest) as e:
        db.rollback()
        logging.info(f"Invalid plan modification: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    try:
        modification = repo.reschedule(
            plan,
            lines,
            reason=request_body.reason,
            reason_ar=request_body.reason_ar,
            frequency=new_frequency,
        )
        db.commit()
        db.refresh(plan)
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to modify payment plan: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    plan_modified_counter.labels(modification_type=modification.modification_type).inc()
    log_plan_modified(request_id, plan_id, modification.modification_type, request_body.reason)

    return to_plan_response(plan)


@router.post("/payment-plans/{plan_id}/status", response_model=PaymentPlanResponse)
def change_plan_status(
    plan_id: str,
    request_body: PlanStatusChangeRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Cancel, default or reactivate a plan.

    Allowed: active -> cancelled | defaulted, defaulted -> active | cancelled.
    Completed and cancelled plans are final.
    """
    request_id = get_request_id(request)
    repo = PaymentPlanRepository(db)
    plan = load_plan(repo, plan_id, for_update=True)

    try:
        modification_type = validate_status_transition(plan.status, request_body.status)
    except InvalidStatusTransition as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidPlanModification as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    try:
        repo.change_status(
            plan,
            PlanStatus(request_body.status),
            modification_type,
            reason=request_body.reason,
            reason_ar=request_body.reason_ar,
        )
        db.commit()
        db.refresh(plan)
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to change plan status: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    plan_modified_counter.labels(modification_type=modification_type.value).inc()
    log_plan_modified(request_id, plan_id, modification_type.value, request_body.reason)

    return to_plan_response(plan)


@router.get("/payment-plans/{plan_id}/modifications", response_model=ModificationListResponse)
def list_plan_modifications(plan_id: str, db: Session = Depends(get_db)):
    """Audit trail of schedule changes and status transitions, oldest first"""
    repo = PaymentPlanRepository(db)
    plan = load_plan(repo, plan_id)
    return ModificationListResponse(
        modifications=[to_modification_schema(m) for m in repo.list_modifications(plan.id)]
    )
