"""Data access layer for payment plans and installments"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import func, update
from sqlalchemy.orm import Session
from installment_planner.infrastructure.database.models import (
    InstallmentPayment,
    PaymentInstallment,
    PaymentPlan,
    PaymentPlanModification,
)
from installment_planner.domain.exceptions import ConcurrentPaymentError
from installment_planner.domain.models import (
    Frequency,
    InstallmentLine,
    InstallmentState,
    InstallmentStatus,
    ModificationType,
    PaymentOutcome,
    PlanPreview,
    PlanStatus,
    StudentPaymentHistory,
)
from installment_planner.domain.payments import is_overdue, plan_is_complete


def _line_snapshot(installment_number: int, amount_cents: int, due_date: date) -> Dict[str, Any]:
    return {"installment_number": installment_number, "amount_cents": amount_cents, "due_date": due_date.isoformat()}


def to_installment_state(installment: PaymentInstallment) -> InstallmentState:
    return InstallmentState(
        amount_cents=installment.amount_cents,
        due_date=installment.due_date,
        status=InstallmentStatus(installment.status),
        paid_amount_cents=installment.paid_amount_cents or 0,
        paid_date=installment.paid_date,
    )


class PaymentPlanRepository:
    """Repository for payment plans"""

    def __init__(self, db: Session):
        self.db = db

    def create_plan(
        self,
        preview: PlanPreview,
        invoice_id: str,
        student_id: str,
        terms_accepted: bool,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
        late_fees_enabled: bool = True,
        late_fee_amount_cents: int = 0,
        grace_period_days: int = 7,
    ) -> PaymentPlan:
        """Persist plan header plus one installment row per preview line"""
        db_plan = PaymentPlan(
            invoice_id=invoice_id,
            student_id=student_id,
            total_amount_cents=preview.total_cents,
            number_of_installments=len(preview.installments),
            installment_amount_cents=preview.installments[0].amount_cents,
            frequency=preview.frequency.value,
            start_date=preview.installments[0].due_date,
            status=PlanStatus.ACTIVE.value,
            payment_method=payment_method,
            terms_accepted=terms_accepted,
            terms_accepted_at=datetime.now(timezone.utc) if terms_accepted else None,
            late_fees_enabled=late_fees_enabled,
            late_fee_amount_cents=late_fee_amount_cents,
            grace_period_days=grace_period_days,
            notes=notes,
        )
        self.db.add(db_plan)
        self.db.flush()  # Get ID without committing

        for line in preview.installments:
            db_plan.installments.append(
                PaymentInstallment(
                    plan_id=db_plan.id,
                    installment_number=line.installment_number,
                    amount_cents=line.amount_cents,
                    due_date=line.due_date,
                    paid_amount_cents=0,
                    status=InstallmentStatus.PENDING.value,
                )
            )
        self.db.flush()

        return db_plan

    def get_plan_by_id(self, plan_id: uuid.UUID, for_update: bool = False) -> Optional[PaymentPlan]:
        """Fetch plan with installments; ``for_update`` locks the plan row until commit"""
        query = self.db.query(PaymentPlan).filter(PaymentPlan.id == plan_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def list_plans(
        self,
        student_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
    ) -> List[PaymentPlan]:
        query = self.db.query(PaymentPlan)
        if student_id:
            query = query.filter(PaymentPlan.student_id == student_id)
        if status:
            query = query.filter(PaymentPlan.status == status)
        return query.order_by(PaymentPlan.created_at.desc()).limit(limit).all()

    def complete_if_fully_paid(self, plan: PaymentPlan) -> bool:
        """Mark plan completed once every installment is paid"""
        if plan.status == PlanStatus.ACTIVE.value and plan_is_complete(i.status for i in plan.installments):
            plan.status = PlanStatus.COMPLETED.value
            return True
        return False

    def reschedule(
        self,
        plan: PaymentPlan,
        lines: List[InstallmentLine],
        reason: str,
        reason_ar: Optional[str] = None,
        frequency: Optional[Frequency] = None,
    ) -> PaymentPlanModification:
        """Write a validated schedule back to the installment rows and audit the change"""
        by_number = {inst.installment_number: inst for inst in plan.installments}
        previous: List[Dict[str, Any]] = []
        new: List[Dict[str, Any]] = []

        for line in lines:
            installment = by_number[line.installment_number]
            if installment.amount_cents == line.amount_cents and installment.due_date == line.due_date:
                continue
            previous.append(_line_snapshot(installment.installment_number, installment.amount_cents, installment.due_date))
            new.append(_line_snapshot(line.installment_number, line.amount_cents, line.due_date))
            installment.amount_cents = line.amount_cents
            installment.due_date = line.due_date

        previous_value: Dict[str, Any] = {"installments": previous}
        new_value: Dict[str, Any] = {"installments": new}
        modification_type = ModificationType.SCHEDULE_CHANGE
        if frequency is not None:
            previous_value["frequency"] = plan.frequency
            new_value["frequency"] = frequency.value
            plan.frequency = frequency.value
            modification_type = ModificationType.FREQUENCY_CHANGE

        first = plan.installments[0]
        plan.installment_amount_cents = first.amount_cents
        plan.start_date = first.due_date

        return self._log_modification(plan, modification_type, previous_value, new_value, reason, reason_ar)

    def change_status(
        self,
        plan: PaymentPlan,
        status: PlanStatus,
        modification_type: ModificationType,
        reason: str,
        reason_ar: Optional[str] = None,
    ) -> PaymentPlanModification:
        previous_value = {"status": plan.status}
        plan.status = status.value
        return self._log_modification(
            plan, modification_type, previous_value, {"status": status.value}, reason, reason_ar
        )

    def list_modifications(self, plan_id: uuid.UUID) -> List[PaymentPlanModification]:
        return (
            self.db.query(PaymentPlanModification)
            .filter(PaymentPlanModification.plan_id == plan_id)
            .order_by(PaymentPlanModification.created_at.asc())
            .all()
        )

    def _log_modification(
        self,
        plan: PaymentPlan,
        modification_type: ModificationType,
        previous_value: Dict[str, Any],
        new_value: Dict[str, Any],
        reason: str,
        reason_ar: Optional[str],
    ) -> PaymentPlanModification:
        modification = PaymentPlanModification(
            plan_id=plan.id,
            modification_type=modification_type.value,
            previous_value=previous_value,
            new_value=new_value,
            reason=reason,
            reason_ar=reason_ar,
        )
        plan.modifications.append(modification)
        self.db.flush()
        return modification

    def get_student_history(self, student_id: str) -> StudentPaymentHistory:
        """Summarise a student's plans for eligibility checks"""
        status_counts = dict(
            self.db.query(PaymentPlan.status, func.count(PaymentPlan.id))
            .filter(PaymentPlan.student_id == student_id)
            .group_by(PaymentPlan.status)
            .all()
        )
        overdue_count = (
            self.db.query(func.count(PaymentInstallment.id))
            .join(PaymentPlan)
            .filter(PaymentPlan.student_id == student_id)
            .filter(PaymentInstallment.status == InstallmentStatus.OVERDUE.value)
            .scalar()
        )
        return StudentPaymentHistory(
            student_id=student_id,
            active_plans=status_counts.get(PlanStatus.ACTIVE.value, 0),
            defaulted_plans=status_counts.get(PlanStatus.DEFAULTED.value, 0),
            overdue_installments=overdue_count or 0,
        )


class InstallmentRepository:
    """Repository for individual installments"""

    def __init__(self, db: Session):
        self.db = db

    def get_installment_by_id(self, installment_id: uuid.UUID, for_update: bool = False) -> Optional[PaymentInstallment]:
        """Fetch an installment; ``for_update`` locks the row and reloads its balance"""
        query = self.db.query(PaymentInstallment).filter(PaymentInstallment.id == installment_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def record_payment(
        self,
        installment: PaymentInstallment,
        outcome: PaymentOutcome,
        amount_cents: int,
        payment_date: date,
        payment_method: str,
        receipt_number: str,
        currency: str,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> InstallmentPayment:
        """
        Write the result of apply_payment back to the installment and store the payment.

        The balance update only matches while paid_amount_cents still equals
        the value apply_payment started from, so two writers racing on the
        same installment cannot both succeed. The loser gets
        ConcurrentPaymentError and must roll back.
        """
        previous_paid_cents = outcome.paid_amount_cents - amount_cents
        values = {
            "paid_amount_cents": outcome.paid_amount_cents,
            "status": outcome.status.value,
            "paid_date": outcome.paid_date,
            "payment_method": payment_method,
            "receipt_number": receipt_number,
            "transaction_id": transaction_id,
        }
        if notes is not None:
            values["notes"] = notes

        result = self.db.execute(
            update(PaymentInstallment)
            .where(PaymentInstallment.id == installment.id)
            .where(PaymentInstallment.paid_amount_cents == previous_paid_cents)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentPaymentError(
                "تم تحديث القسط أثناء المعالجة / Installment balance changed, retry the payment"
            )
        self.db.refresh(installment)

        payment = InstallmentPayment(
            installment_id=installment.id,
            plan_id=installment.plan_id,
            amount_cents=amount_cents,
            currency=currency,
            payment_date=payment_date,
            payment_method=payment_method,
            receipt_number=receipt_number,
            transaction_id=transaction_id,
            notes=notes,
        )
        installment.payments.append(payment)
        self.db.flush()
        return payment

    def list_payments(self, installment_id: uuid.UUID) -> List[InstallmentPayment]:
        return (
            self.db.query(InstallmentPayment)
            .filter(InstallmentPayment.installment_id == installment_id)
            .order_by(InstallmentPayment.created_at.asc())
            .all()
        )

    def refresh_overdue(self, today: date) -> int:
        """Mark unpaid installments past their plan's grace period as overdue"""
        candidates = (
            self.db.query(PaymentInstallment)
            .join(PaymentPlan)
            .filter(PaymentPlan.status == PlanStatus.ACTIVE.value)
            .filter(
                PaymentInstallment.status.in_(
                    [InstallmentStatus.PENDING.value, InstallmentStatus.PARTIAL.value]
                )
            )
            .filter(PaymentInstallment.due_date < today)
            .all()
        )

        updated = 0
        for installment in candidates:
            if is_overdue(to_installment_state(installment), today, installment.plan.grace_period_days):
                installment.status = InstallmentStatus.OVERDUE.value
                updated += 1

        self.db.flush()
        return updated

    def list_overdue(self, limit: int = 100) -> List[PaymentInstallment]:
        return (
            self.db.query(PaymentInstallment)
            .filter(PaymentInstallment.status == InstallmentStatus.OVERDUE.value)
            .order_by(PaymentInstallment.due_date.asc())
            .limit(limit)
            .all()
        )
