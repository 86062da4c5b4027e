"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from installment_planner.domain.models import PlanRequest

# Decimal internally, JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlanPreviewRequest(CamelModel):
    """Request body for POST /v1/payment-plans/preview

    Field ranges are checked by the calculator so that every violation
    surfaces as the same InvalidPlanRequest.
    """

    total_amount: Decimal
    number_of_installments: int
    frequency: str
    start_date: str
    first_payment_amount: Optional[Decimal] = None
    custom_amounts: Optional[List[Decimal]] = None

    def to_domain(self) -> PlanRequest:
        return PlanRequest(
            total_amount=self.total_amount,
            number_of_installments=self.number_of_installments,
            frequency=self.frequency,
            start_date=self.start_date,
            first_payment_amount=self.first_payment_amount,
            custom_amounts=self.custom_amounts,
        )


class InstallmentLineSchema(CamelModel):
    installment_number: int
    amount: Money
    due_date: date


class DurationSchema(CamelModel):
    weeks: Money
    months: Money


class PlanPreviewResponse(CamelModel):
    """Response for POST /v1/payment-plans/preview"""

    installments: List[InstallmentLineSchema]
    total_amount: Money
    average_installment_amount: Money
    duration: DurationSchema


class EligibilityRequest(CamelModel):
    invoice_amount: Decimal
    student_id: str = Field(..., min_length=1)


class EligibilityResponse(CamelModel):
    eligible: bool
    reasons: List[str]
    max_installments: int
    min_installment_amount: Money
    recommended_frequency: str


class CreatePlanRequest(PlanPreviewRequest):
    """Request body for POST /v1/payment-plans"""

    invoice_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    terms_accepted: bool
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class InstallmentSchema(CamelModel):
    """Persisted installment with payment state"""

    installment_id: str
    installment_number: int
    amount: Money
    paid_amount: Money
    due_date: date
    paid_date: Optional[date] = None
    status: str
    payment_method: Optional[str] = None
    receipt_number: Optional[str] = None


class PaymentPlanResponse(CamelModel):
    """Response for GET /v1/payment-plans/{plan_id}"""

    plan_id: str
    invoice_id: str
    student_id: str
    total_amount: Money
    number_of_installments: int
    frequency: str
    start_date: date
    status: str
    payment_method: Optional[str] = None
    terms_accepted: bool
    grace_period_days: int
    installments: List[InstallmentSchema]
    created_at: str


class PaymentPlanListResponse(CamelModel):
    plans: List[PaymentPlanResponse]


class RecordPaymentRequest(CamelModel):
    """Request body for POST /v1/installments/{installment_id}/payments"""

    amount: Decimal
    payment_method: str = Field(..., min_length=1)
    payment_date: Optional[date] = None
    receipt_number: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentSchema(CamelModel):
    """Single payment collected against an installment"""

    payment_id: str
    installment_id: str
    amount: Money
    currency: str
    payment_date: date
    payment_method: str
    receipt_number: str
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentListResponse(CamelModel):
    payments: List[PaymentSchema]


class RecordPaymentResponse(CamelModel):
    payment: PaymentSchema
    installment: InstallmentSchema
    plan_id: str
    plan_status: str


class OverdueInstallmentSchema(InstallmentSchema):
    plan_id: str
    student_id: str


class OverdueListResponse(CamelModel):
    installments: List[OverdueInstallmentSchema]


class OverdueRefreshResponse(CamelModel):
    updated_count: int


class ScheduleChangeSchema(CamelModel):
    installment_number: int
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None


class ModifyPlanRequest(CamelModel):
    """Request body for POST /v1/payment-plans/{plan_id}/modifications

    Either ``changes`` (per-installment amount/due date) or ``frequency``
    (re-date every pending installment), not both.
    """

    changes: Optional[List[ScheduleChangeSchema]] = None
    frequency: Optional[str] = None
    reason: str = Field(..., min_length=1)
    reason_ar: Optional[str] = None


class PlanStatusChangeRequest(CamelModel):
    """Request body for POST /v1/payment-plans/{plan_id}/status"""

    status: str
    reason: str = Field(..., min_length=1)
    reason_ar: Optional[str] = None


class ModificationSchema(CamelModel):
    modification_id: str
    modification_type: str
    previous_value: Dict[str, Any]
    new_value: Dict[str, Any]
    reason: str
    reason_ar: Optional[str] = None
    created_at: str


class ModificationListResponse(CamelModel):
    modifications: List[ModificationSchema]
