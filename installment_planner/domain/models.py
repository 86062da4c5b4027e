"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class Frequency(str, Enum):
    """Recurrence interval between installments"""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DEFAULTED = "defaulted"


class ModificationType(str, Enum):
    """Kind of change recorded in a plan's audit trail"""

    SCHEDULE_CHANGE = "schedule_change"
    FREQUENCY_CHANGE = "frequency_change"
    CANCELLATION = "cancellation"
    DEFAULT = "default"
    REACTIVATION = "reactivation"


def cents_to_decimal(cents: int) -> Decimal:
    """Convert minor units to a 2-place Decimal"""
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class PlanRequest:
    """Input to the installment calculator"""

    total_amount: Decimal
    number_of_installments: int
    frequency: Frequency | str
    start_date: date | str
    first_payment_amount: Optional[Decimal] = None
    custom_amounts: Optional[List[Decimal]] = None


@dataclass(frozen=True)
class InstallmentLine:
    """Single scheduled payment in a preview"""

    installment_number: int
    amount_cents: int
    due_date: date

    @property
    def amount(self) -> Decimal:
        return cents_to_decimal(self.amount_cents)


@dataclass(frozen=True)
class PlanPreview:
    """Computed schedule plus summary statistics"""

    installments: List[InstallmentLine]
    total_amount: Decimal
    average_installment_amount: Decimal
    duration_weeks: Decimal
    duration_months: Decimal
    frequency: Frequency

    @property
    def total_cents(self) -> int:
        return sum(line.amount_cents for line in self.installments)


@dataclass
class StudentPaymentHistory:
    """Payment behaviour summary used for eligibility"""

    student_id: str
    active_plans: int = 0
    defaulted_plans: int = 0
    overdue_installments: int = 0


@dataclass
class EligibilityResult:
    """Outcome of a payment plan eligibility check"""

    eligible: bool
    reasons: List[str] = field(default_factory=list)
    max_installments: int = 0
    min_installment_amount: Decimal = Decimal("0.00")
    recommended_frequency: Frequency = Frequency.MONTHLY


@dataclass
class InstallmentState:
    """Mutable payment state of a single installment"""

    amount_cents: int
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_amount_cents: int = 0
    paid_date: Optional[date] = None

    @property
    def outstanding_cents(self) -> int:
        return self.amount_cents - self.paid_amount_cents


@dataclass
class PaymentOutcome:
    """Result of applying a payment to an installment"""

    paid_amount_cents: int
    status: InstallmentStatus
    paid_date: Optional[date]


@dataclass(frozen=True)
class ScheduleChange:
    """Requested amount and/or due date for one pending installment"""

    installment_number: int
    amount_cents: Optional[int] = None
    due_date: Optional[date] = None
