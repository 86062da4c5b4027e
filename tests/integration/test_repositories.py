"""Integration tests for the payment write path against the database"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import update
from sqlalchemy.orm import Session
from installment_planner.domain.exceptions import ConcurrentPaymentError
from installment_planner.domain.installments import compute_preview
from installment_planner.domain.models import PlanRequest
from installment_planner.domain.payments import apply_payment
from installment_planner.infrastructure.database.models import PaymentInstallment, PaymentPlan
from installment_planner.infrastructure.database.repositories import (
    InstallmentRepository,
    PaymentPlanRepository,
    to_installment_state,
)

PAY_DAY = date(2025, 1, 5)


def make_plan(db: Session) -> PaymentPlan:
    """100.00 over 2 monthly installments of 50.00"""
    preview = compute_preview(PlanRequest(Decimal("100"), 2, "monthly", "2025-01-01"))
    plan = PaymentPlanRepository(db).create_plan(preview, "inv-001", "student-001", terms_accepted=True)
    db.commit()
    return plan


def pay(repo: InstallmentRepository, installment: PaymentInstallment, amount_cents: int, receipt: str, **kwargs):
    outcome = apply_payment(to_installment_state(installment), amount_cents, PAY_DAY)
    return repo.record_payment(
        installment,
        outcome,
        amount_cents=amount_cents,
        payment_date=PAY_DAY,
        payment_method="cash",
        receipt_number=receipt,
        currency="SAR",
        **kwargs,
    )


def test_each_payment_is_stored(db: Session):
    plan = make_plan(db)
    installment = plan.installments[0]
    repo = InstallmentRepository(db)

    pay(repo, installment, 2000, "R-1", transaction_id="T-1")
    pay(repo, installment, 1000, "R-2")
    db.commit()

    payments = repo.list_payments(installment.id)
    assert [p.amount_cents for p in payments] == [2000, 1000]
    assert [p.receipt_number for p in payments] == ["R-1", "R-2"]
    assert [p.transaction_id for p in payments] == ["T-1", None]
    assert all(p.currency == "SAR" and p.plan_id == plan.id for p in payments)

    db.refresh(installment)
    assert installment.paid_amount_cents == 3000
    assert installment.status == "partial"
    assert installment.receipt_number == "R-2"


def test_stale_balance_rejects_payment(db: Session):
    plan = make_plan(db)
    installment = plan.installments[0]
    repo = InstallmentRepository(db)
    outcome = apply_payment(to_installment_state(installment), 3000, PAY_DAY)

    # A second writer pays 20.00 after the balance above was read
    db.execute(
        update(PaymentInstallment)
        .where(PaymentInstallment.id == installment.id)
        .values(paid_amount_cents=2000, status="partial")
    )

    with pytest.raises(ConcurrentPaymentError):
        repo.record_payment(
            installment,
            outcome,
            amount_cents=3000,
            payment_date=PAY_DAY,
            payment_method="cash",
            receipt_number="R-1",
            currency="SAR",
        )
    db.rollback()

    assert repo.list_payments(installment.id) == []
    assert repo.get_installment_by_id(installment.id, for_update=True).paid_amount_cents == 0


def test_locked_read_reloads_balance(db: Session):
    plan = make_plan(db)
    installment = plan.installments[0]
    repo = InstallmentRepository(db)
    assert installment.paid_amount_cents == 0

    db.execute(
        update(PaymentInstallment)
        .where(PaymentInstallment.id == installment.id)
        .values(paid_amount_cents=2000, status="partial")
        .execution_options(synchronize_session=False)
    )

    assert repo.get_installment_by_id(installment.id).paid_amount_cents == 0
    assert repo.get_installment_by_id(installment.id, for_update=True).paid_amount_cents == 2000
