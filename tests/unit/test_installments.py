"""Unit tests for the installment plan calculator"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from installment_planner.domain.exceptions import InvalidPlanRequest
from installment_planner.domain.installments import compute_preview, split_amounts
from installment_planner.domain.models import Frequency, PlanRequest
from installment_planner.utils.date_utils import add_months


def amounts(preview):
    return [line.amount for line in preview.installments]


def due_dates(preview):
    return [line.due_date for line in preview.installments]


def test_even_monthly_split():
    """1200 over 6 monthly installments"""
    preview = compute_preview(PlanRequest(Decimal("1200"), 6, "monthly", "2025-01-01"))

    assert amounts(preview) == [Decimal("200.00")] * 6
    assert due_dates(preview) == [
        date(2025, 1, 1),
        date(2025, 2, 1),
        date(2025, 3, 1),
        date(2025, 4, 1),
        date(2025, 5, 1),
        date(2025, 6, 1),
    ]
    assert preview.average_installment_amount == Decimal("200")
    assert preview.total_amount == Decimal("1200.00")


def test_last_installment_absorbs_remainder():
    """1000 / 3 truncates to 333.33, last line gets the extra cent"""
    preview = compute_preview(PlanRequest(Decimal("1000"), 3, Frequency.MONTHLY, "2025-01-01"))

    assert amounts(preview) == [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")]
    assert sum(amounts(preview)) == Decimal("1000.00")


def test_custom_first_payment():
    """First payment of 400, remaining 800 shared by 5 installments"""
    preview = compute_preview(
        PlanRequest(Decimal("1200"), 6, "monthly", "2025-01-01", first_payment_amount=Decimal("400"))
    )

    assert amounts(preview) == [Decimal("400.00")] + [Decimal("160.00")] * 5
    assert sum(amounts(preview)) == Decimal("1200.00")


def test_custom_first_payment_absorbs_one_cent_difference():
    """Residual of exactly one cent still lands on the last installment"""
    preview = compute_preview(
        PlanRequest(Decimal("100.00"), 3, "weekly", "2025-01-01", first_payment_amount=Decimal("50.01"))
    )

    # 49.99 over 2 -> 24.99 + 25.00
    assert amounts(preview) == [Decimal("50.01"), Decimal("24.99"), Decimal("25.00")]
    assert sum(amounts(preview)) == Decimal("100.00")


def test_first_payment_equal_to_base_is_uniform():
    preview = compute_preview(
        PlanRequest(Decimal("1000"), 3, "monthly", "2025-01-01", first_payment_amount=Decimal("333.33"))
    )

    assert amounts(preview) == [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")]


def test_weekly_two_installments():
    preview = compute_preview(PlanRequest(Decimal("100"), 2, "weekly", "2025-01-01"))

    assert amounts(preview) == [Decimal("50.00"), Decimal("50.00")]
    assert due_dates(preview) == [date(2025, 1, 1), date(2025, 1, 8)]


def test_biweekly_dates_are_14_days_apart():
    preview = compute_preview(PlanRequest(Decimal("400"), 4, "biweekly", date(2025, 3, 10)))

    dates = due_dates(preview)
    assert all(b - a == timedelta(days=14) for a, b in zip(dates, dates[1:]))
    assert preview.duration_weeks == Decimal("8")
    assert preview.duration_months == Decimal("2")


def test_monthly_end_of_month_clamps_to_last_day():
    """Jan 31 schedule stays anchored on the 31st, clamped in short months"""
    preview = compute_preview(PlanRequest(Decimal("400"), 4, "monthly", "2025-01-31"))

    assert due_dates(preview) == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
    ]


def test_add_months_leap_year_and_year_rollover():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)


def test_duration_statistics():
    weekly = compute_preview(PlanRequest(Decimal("800"), 8, "weekly", "2025-01-01"))
    monthly = compute_preview(PlanRequest(Decimal("1200"), 6, "monthly", "2025-01-01"))

    assert weekly.duration_weeks == Decimal("8")
    assert weekly.duration_months == Decimal("2")
    assert monthly.duration_weeks == Decimal("25.98")
    assert monthly.duration_months == Decimal("6")


def test_average_is_exact_mean_not_rounded_lines():
    preview = compute_preview(PlanRequest(Decimal("1000"), 3, "monthly", "2025-01-01"))

    assert preview.average_installment_amount == Decimal(1000) / Decimal(3)
    assert preview.average_installment_amount != Decimal("333.33")


@pytest.mark.parametrize(
    "total,count,frequency,first",
    [
        ("1000", 3, "monthly", None),
        ("99.99", 7, "weekly", None),
        ("12345.67", 12, "biweekly", None),
        ("0.05", 5, "weekly", None),
        ("1200", 6, "monthly", "400"),
        ("777.77", 9, "monthly", "100.05"),
    ],
)
def test_schedule_invariants(total, count, frequency, first):
    """Exact sum, numbering, count and strictly increasing dates"""
    request = PlanRequest(
        Decimal(total),
        count,
        frequency,
        "2025-01-31",
        first_payment_amount=Decimal(first) if first else None,
    )
    preview = compute_preview(request)

    assert len(preview.installments) == count
    assert sum(amounts(preview)) == Decimal(total)
    assert [line.installment_number for line in preview.installments] == list(range(1, count + 1))
    dates = due_dates(preview)
    assert all(b > a for a, b in zip(dates, dates[1:]))
    assert all(line.amount_cents > 0 for line in preview.installments)
    assert preview.average_installment_amount == Decimal(total) / count


def test_compute_preview_is_idempotent():
    request = PlanRequest(Decimal("1000"), 3, "monthly", "2025-01-31", first_payment_amount=Decimal("250.50"))

    assert compute_preview(request) == compute_preview(request)


def test_split_amounts_in_cents():
    assert split_amounts(40003, 4) == [10000, 10000, 10000, 10003]


def test_custom_amounts_used_verbatim():
    request = PlanRequest(
        Decimal("1000"),
        3,
        "monthly",
        "2025-01-01",
        custom_amounts=[Decimal("500"), Decimal("300"), Decimal("200")],
    )

    assert amounts(compute_preview(request)) == [Decimal("500.00"), Decimal("300.00"), Decimal("200.00")]


@pytest.mark.parametrize(
    "custom",
    [
        ["500", "500"],  # wrong count
        ["500", "300", "100"],  # wrong sum
        ["1000", "0", "0"],  # zero lines
    ],
)
def test_invalid_custom_amounts(custom):
    request = PlanRequest(
        Decimal("1000"), 3, "monthly", "2025-01-01", custom_amounts=[Decimal(c) for c in custom]
    )

    with pytest.raises(InvalidPlanRequest):
        compute_preview(request)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"number_of_installments": 1},
        {"total_amount": Decimal("0")},
        {"total_amount": Decimal("-50")},
        {"total_amount": Decimal("100.005")},
        {"frequency": "daily"},
        {"start_date": "2025-02-30"},
        {"start_date": "not-a-date"},
        {"start_date": "20250101"},
        {"start_date": "2025-W01-3"},
        {"first_payment_amount": Decimal("0")},
        {"first_payment_amount": Decimal("1200")},
        {"first_payment_amount": Decimal("1500")},
        {"total_amount": Decimal("0.01")},
    ],
)
def test_invalid_requests_raise(kwargs):
    params = {
        "total_amount": Decimal("1200"),
        "number_of_installments": 6,
        "frequency": "monthly",
        "start_date": "2025-01-01",
    }
    params.update(kwargs)

    with pytest.raises(InvalidPlanRequest):
        compute_preview(PlanRequest(**params))


def test_first_payment_leaving_less_than_a_cent_per_installment():
    with pytest.raises(InvalidPlanRequest):
        compute_preview(
            PlanRequest(Decimal("10.00"), 5, "weekly", "2025-01-01", first_payment_amount=Decimal("9.98"))
        )
