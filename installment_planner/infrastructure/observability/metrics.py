"""Prometheus metrics for plan creation and changes, payment collection and overdue tracking"""

from prometheus_client import Counter, Histogram

preview_counter = Counter(
    "installment_preview_total",
    "Installment plan previews computed",
    ["frequency"],
)

invalid_request_counter = Counter(
    "installment_invalid_request_total",
    "Plan requests rejected by validation",
)

plan_created_counter = Counter(
    "installment_plan_created_total",
    "Payment plans persisted",
    ["frequency"],
)

plan_installments_histogram = Histogram(
    "installment_plan_installments",
    "Number of installments per created plan",
    buckets=[2, 3, 4, 6, 9, 12, 18, 24],
)

payment_counter = Counter(
    "installment_payment_total",
    "Installment payments recorded",
    ["outcome"],  # paid | partial | rejected | conflict
)

overdue_marked_counter = Counter(
    "installment_overdue_marked_total",
    "Installments transitioned to overdue",
)

plan_modified_counter = Counter(
    "installment_plan_modified_total",
    "Plan schedule changes and status transitions",
    ["modification_type"],
)

request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_plan_created(frequency: str, number_of_installments: int) -> None:
    plan_created_counter.labels(frequency=frequency).inc()
    plan_installments_histogram.observe(number_of_installments)
