"""Installment plan calculator - converts a plan request into a due-date/amount schedule"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from installment_planner.domain.exceptions import InvalidPlanRequest
from installment_planner.domain.models import Frequency, InstallmentLine, PlanPreview, PlanRequest, cents_to_decimal
from installment_planner.utils.date_utils import add_days, add_months

CENT = Decimal("0.01")

# Calendar dates only; fromisoformat alone also takes "20250101" or "2025-W01-3"
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# (weeks, months) covered by a single period
PERIOD_DURATION: Dict[Frequency, Tuple[Decimal, Decimal]] = {
    Frequency.WEEKLY: (Decimal("1"), Decimal("0.25")),
    Frequency.BIWEEKLY: (Decimal("2"), Decimal("0.5")),
    Frequency.MONTHLY: (Decimal("4.33"), Decimal("1")),
}


def to_cents(value, field_name: str) -> int:
    """Convert a monetary amount with at most 2 decimal places into minor units"""
    if isinstance(value, bool):
        raise InvalidPlanRequest(f"{field_name} must be a number")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        if not amount.is_finite() or amount != amount.quantize(CENT):
            raise InvalidPlanRequest(f"{field_name} must have at most 2 decimal places")
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidPlanRequest(f"{field_name} is not a valid amount") from e
    return int(amount * 100)


def parse_frequency(value) -> Frequency:
    try:
        return Frequency(value)
    except ValueError as e:
        raise InvalidPlanRequest(f"Unrecognized frequency: {value!r}") from e


def parse_start_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if not ISO_DATE.match(value):
            raise InvalidPlanRequest(f"Start date must be YYYY-MM-DD: {value!r}")
        try:
            return date.fromisoformat(value)
        except ValueError as e:
            raise InvalidPlanRequest(f"Invalid start date: {value!r}") from e
    raise InvalidPlanRequest(f"Invalid start date: {value!r}")


def split_amounts(
    total_cents: int,
    num_installments: int,
    first_payment_cents: Optional[int] = None,
) -> List[int]:
    """
    Split a total into installment amounts (in cents).

    Uniform case: every line gets floor(total / n) and the last installment
    absorbs the remainder, so the amounts always sum to the total exactly.

    Custom first payment: line 1 is the first payment, lines 2..n share the
    rest with the same floor rule, and the last line absorbs the difference.

    Example:
        1000.00 over 3 -> [333.33, 333.33, 333.34]
        1200.00 over 6 with first 400.00 -> [400.00, 160.00 x 5]
    """
    base_amount = total_cents // num_installments
    if base_amount <= 0:
        raise InvalidPlanRequest("Total amount is too small to split into the requested installments")

    amounts = [base_amount] * num_installments
    amounts[-1] += total_cents - base_amount * num_installments

    if first_payment_cents is not None and first_payment_cents != base_amount:
        remaining_cents = total_cents - first_payment_cents
        remaining_installments = num_installments - 1
        new_base = remaining_cents // remaining_installments
        if new_base <= 0:
            raise InvalidPlanRequest("First payment leaves too little to split across the remaining installments")

        amounts = [first_payment_cents] + [new_base] * remaining_installments
        difference = total_cents - sum(amounts)
        if difference:
            amounts[-1] += difference

    return amounts


def due_date_for(start_date: date, frequency: Frequency, index: int) -> date:
    """Due date of the installment at zero-based ``index``"""
    if frequency == Frequency.WEEKLY:
        return add_days(start_date, 7 * index)
    if frequency == Frequency.BIWEEKLY:
        return add_days(start_date, 14 * index)
    # Anchored on the start date so a short month never shifts later due dates
    return add_months(start_date, index)


def _validate_custom_amounts(custom_amounts: List, total_cents: int, num_installments: int) -> List[int]:
    if len(custom_amounts) != num_installments:
        raise InvalidPlanRequest(
            f"Expected {num_installments} custom amounts, got {len(custom_amounts)}"
        )
    amounts = [to_cents(amount, "custom_amounts") for amount in custom_amounts]
    if any(amount <= 0 for amount in amounts):
        raise InvalidPlanRequest("Custom amounts must be greater than zero")
    if sum(amounts) != total_cents:
        raise InvalidPlanRequest("Custom amounts must add up to the total amount")
    return amounts


def compute_preview(request: PlanRequest) -> PlanPreview:
    """
    Main entry point: validate the request and build the installment schedule.

    All validation happens before any schedule is built; invalid input
    raises InvalidPlanRequest and nothing is returned.
    """
    total_cents = to_cents(request.total_amount, "total_amount")
    if total_cents <= 0:
        raise InvalidPlanRequest("Total amount must be greater than zero")

    num_installments = request.number_of_installments
    if isinstance(num_installments, bool) or not isinstance(num_installments, int):
        raise InvalidPlanRequest("Number of installments must be an integer")
    if num_installments < 2:
        raise InvalidPlanRequest("Number of installments must be at least 2")

    frequency = parse_frequency(request.frequency)
    start_date = parse_start_date(request.start_date)

    first_payment_cents = None
    if request.first_payment_amount is not None:
        first_payment_cents = to_cents(request.first_payment_amount, "first_payment_amount")
        if first_payment_cents <= 0:
            raise InvalidPlanRequest("First payment amount must be greater than zero")
        if first_payment_cents >= total_cents:
            raise InvalidPlanRequest("First payment amount must be less than the total amount")

    if request.custom_amounts:
        amounts = _validate_custom_amounts(request.custom_amounts, total_cents, num_installments)
    else:
        amounts = split_amounts(total_cents, num_installments, first_payment_cents)

    installments = [
        InstallmentLine(
            installment_number=i + 1,
            amount_cents=amount,
            due_date=due_date_for(start_date, frequency, i),
        )
        for i, amount in enumerate(amounts)
    ]

    weeks_per_period, months_per_period = PERIOD_DURATION[frequency]

    return PlanPreview(
        installments=installments,
        total_amount=cents_to_decimal(total_cents),
        average_installment_amount=Decimal(total_cents) / Decimal(100 * num_installments),
        duration_weeks=weeks_per_period * num_installments,
        duration_months=months_per_period * num_installments,
        frequency=frequency,
    )
