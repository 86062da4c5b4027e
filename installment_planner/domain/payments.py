"""Payment application and overdue rules for installments"""

from datetime import date, timedelta
from typing import Iterable

from installment_planner.domain.exceptions import InvalidPaymentError
from installment_planner.domain.models import InstallmentState, InstallmentStatus, PaymentOutcome, PlanStatus


def ensure_plan_accepts_payments(plan_status: PlanStatus | str) -> None:
    """Cancelled plans take no further payments; defaulted plans still collect"""
    if PlanStatus(plan_status) == PlanStatus.CANCELLED:
        raise InvalidPaymentError("الخطة ملغاة / Payment plan is cancelled")


def apply_payment(installment: InstallmentState, amount_cents: int, payment_date: date) -> PaymentOutcome:
    """
    Apply a payment to an installment without mutating it.

    - Amount must be positive and no larger than the outstanding balance
    - Paid installments accept no further payments
    - Status becomes "paid" once fully covered, "partial" otherwise;
      paid_date is only set on full payment
    """
    if installment.status == InstallmentStatus.PAID:
        raise InvalidPaymentError("القسط مدفوع بالكامل / Installment already paid")

    if amount_cents <= 0:
        raise InvalidPaymentError("مبلغ الدفع يجب أن يكون أكبر من صفر / Payment amount must be greater than zero")

    if amount_cents > installment.outstanding_cents:
        raise InvalidPaymentError(
            "مبلغ الدفع أكبر من المبلغ المطلوب / Payment amount exceeds outstanding balance"
        )

    new_paid = installment.paid_amount_cents + amount_cents
    if new_paid >= installment.amount_cents:
        return PaymentOutcome(paid_amount_cents=new_paid, status=InstallmentStatus.PAID, paid_date=payment_date)

    return PaymentOutcome(
        paid_amount_cents=new_paid,
        status=InstallmentStatus.PARTIAL,
        paid_date=installment.paid_date,
    )


def is_overdue(installment: InstallmentState, today: date, grace_period_days: int = 0) -> bool:
    """Unpaid installment whose grace period has elapsed"""
    if installment.status not in (InstallmentStatus.PENDING, InstallmentStatus.PARTIAL):
        return False
    return installment.due_date + timedelta(days=grace_period_days) < today


def plan_is_complete(statuses: Iterable[InstallmentStatus | str]) -> bool:
    statuses = list(statuses)
    return bool(statuses) and all(InstallmentStatus(s) == InstallmentStatus.PAID for s in statuses)
