"""SQLAlchemy ORM models for payment plans and their installments"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import JSON, Column, String, BigInteger, Boolean, DateTime, Date, Integer, ForeignKey, Text, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class PaymentPlan(Base):
    """Installment payment plan for an invoice balance"""

    __tablename__ = "payment_plan"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Text, nullable=False, index=True)
    student_id = Column(Text, nullable=False, index=True)
    total_amount_cents = Column(BigInteger, nullable=False)
    number_of_installments = Column(Integer, nullable=False)
    installment_amount_cents = Column(BigInteger, nullable=False)  # first line amount
    frequency = Column(String(20), nullable=False)
    start_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="active", index=True)
    payment_method = Column(Text, nullable=True)
    terms_accepted = Column(Boolean, nullable=False, default=False)
    terms_accepted_at = Column(DateTime(timezone=True), nullable=True)
    late_fees_enabled = Column(Boolean, nullable=False, default=True)
    late_fee_amount_cents = Column(BigInteger, nullable=False, default=0)
    grace_period_days = Column(Integer, nullable=False, default=7)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    installments = relationship(
        "PaymentInstallment",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PaymentInstallment.installment_number",
    )
    modifications = relationship(
        "PaymentPlanModification",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PaymentPlanModification.created_at",
    )


class PaymentInstallment(Base):
    """Individual installment within a payment plan"""

    __tablename__ = "payment_installment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("payment_plan.id", ondelete="CASCADE"), nullable=False)
    installment_number = Column(Integer, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    paid_amount_cents = Column(BigInteger, nullable=False, default=0)
    paid_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_method = Column(Text, nullable=True)
    transaction_id = Column(Text, nullable=True)
    receipt_number = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    plan = relationship("PaymentPlan", back_populates="installments")
    payments = relationship(
        "InstallmentPayment",
        back_populates="installment",
        cascade="all, delete-orphan",
        order_by="InstallmentPayment.created_at",
    )


class InstallmentPayment(Base):
    """One payment collected against an installment; rows are never updated"""

    __tablename__ = "installment_payment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    installment_id = Column(
        Uuid(as_uuid=True), ForeignKey("payment_installment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("payment_plan.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(Text, nullable=False)
    receipt_number = Column(Text, nullable=False)
    transaction_id = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    # Microsecond timestamps from Python keep same-second payments ordered
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    installment = relationship("PaymentInstallment", back_populates="payments")


class PaymentPlanModification(Base):
    """Audit trail entry for a schedule change or status transition"""

    __tablename__ = "payment_plan_modification"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("payment_plan.id", ondelete="CASCADE"), nullable=False, index=True)
    modification_type = Column(String(30), nullable=False, index=True)
    previous_value = Column(JSON, nullable=False)
    new_value = Column(JSON, nullable=False)
    reason = Column(Text, nullable=False)
    reason_ar = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    plan = relationship("PaymentPlan", back_populates="modifications")
