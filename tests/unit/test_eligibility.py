"""Unit tests for payment plan eligibility rules"""

from decimal import Decimal
from installment_planner.config import Settings
from installment_planner.domain.eligibility import validate_eligibility
from installment_planner.domain.models import Frequency, StudentPaymentHistory

CONFIG = Settings(
    min_plan_amount=Decimal("500"),
    min_installment_amount=Decimal("50"),
    max_installments=12,
    max_overdue_installments=2,
    max_active_plans=3,
    monthly_recommendation_threshold=Decimal("3000"),
)


def clean_history() -> StudentPaymentHistory:
    return StudentPaymentHistory(student_id="student-001")


def test_eligible_with_clean_history():
    result = validate_eligibility(Decimal("1200"), clean_history(), CONFIG)

    assert result.eligible is True
    assert result.reasons == []
    assert result.max_installments == 12
    assert result.min_installment_amount == Decimal("50")
    assert result.recommended_frequency == Frequency.BIWEEKLY


def test_small_invoice_not_eligible():
    result = validate_eligibility(Decimal("300"), clean_history(), CONFIG)

    assert result.eligible is False
    assert len(result.reasons) == 1
    assert "minimum plan amount" in result.reasons[0]
    # 300 / 50 caps the installment count
    assert result.max_installments == 6


def test_defaulted_plan_blocks_eligibility():
    history = StudentPaymentHistory(student_id="student-002", defaulted_plans=1)

    result = validate_eligibility(Decimal("1200"), history, CONFIG)

    assert result.eligible is False
    assert any("defaulted" in reason for reason in result.reasons)


def test_overdue_and_active_limits_accumulate_reasons():
    history = StudentPaymentHistory(student_id="student-003", active_plans=3, overdue_installments=2)

    result = validate_eligibility(Decimal("1200"), history, CONFIG)

    assert result.eligible is False
    assert len(result.reasons) == 2


def test_large_invoice_recommends_monthly():
    result = validate_eligibility(Decimal("4500"), clean_history(), CONFIG)

    assert result.recommended_frequency == Frequency.MONTHLY


def test_reasons_are_bilingual():
    result = validate_eligibility(Decimal("100"), clean_history(), CONFIG)

    arabic, english = result.reasons[0].split(" / ")
    assert arabic
    assert english.startswith("Amount is below")
