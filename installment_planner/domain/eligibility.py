"""Payment plan eligibility rules"""

from decimal import Decimal
from typing import Optional

from installment_planner.config import Settings, settings as default_settings
from installment_planner.domain.models import EligibilityResult, Frequency, StudentPaymentHistory


def validate_eligibility(
    invoice_amount: Decimal,
    history: StudentPaymentHistory,
    config: Optional[Settings] = None,
) -> EligibilityResult:
    """
    Decide whether an invoice balance can be split into a payment plan.

    Thresholds (configurable):
    - invoice amount must reach min_plan_amount
    - no defaulted plans on record
    - fewer than max_overdue_installments currently overdue
    - fewer than max_active_plans already running

    Reasons are bilingual "<ar> / <en>" strings for display as-is.
    """
    config = config or default_settings
    reasons = []

    if invoice_amount < config.min_plan_amount:
        reasons.append(
            f"المبلغ أقل من الحد الأدنى لخطة التقسيط ({config.min_plan_amount}) / "
            f"Amount is below the minimum plan amount ({config.min_plan_amount})"
        )

    if history.defaulted_plans > 0:
        reasons.append("يوجد خطة دفع متعثرة سابقة / Student has a defaulted payment plan")

    if history.overdue_installments >= config.max_overdue_installments:
        reasons.append(
            f"يوجد {history.overdue_installments} أقساط متأخرة / "
            f"Student has {history.overdue_installments} overdue installments"
        )

    if history.active_plans >= config.max_active_plans:
        reasons.append(
            "تم الوصول إلى الحد الأقصى لخطط الدفع النشطة / "
            "Student has reached the maximum number of active payment plans"
        )

    # Cap so that no installment drops below the minimum installment amount
    affordable = int(invoice_amount // config.min_installment_amount) if invoice_amount > 0 else 0
    max_installments = max(0, min(config.max_installments, affordable))

    recommended = (
        Frequency.MONTHLY
        if invoice_amount >= config.monthly_recommendation_threshold
        else Frequency.BIWEEKLY
    )

    return EligibilityResult(
        eligible=not reasons,
        reasons=reasons,
        max_installments=max_installments,
        min_installment_amount=config.min_installment_amount,
        recommended_frequency=recommended,
    )
