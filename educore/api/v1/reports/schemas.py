"""Report schemas: fee collection stats and the admin dashboard."""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from educore.core.enums import InvoiceStatus, PaymentMethod


class InvoiceStatusBreakdown(BaseModel):
    status: InvoiceStatus
    count: int
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal


class PaymentMethodBreakdown(BaseModel):
    payment_method: PaymentMethod
    count: int
    amount: Decimal


class RecentPayment(BaseModel):
    id: UUID
    receipt_number: str
    amount: Decimal
    payment_method: PaymentMethod
    paid_at: datetime
    invoice_id: UUID
    invoice_number: str
    learner_id: UUID
    learner_name: Optional[str] = None
    admission_number: Optional[str] = None


class FeeSummary(BaseModel):
    total_expected: Decimal
    total_collected: Decimal
    total_outstanding: Decimal


class FeeStatsResponse(BaseModel):
    total_invoices: int
    invoices_by_status: List[InvoiceStatusBreakdown]
    payments_by_method: List[PaymentMethodBreakdown]
    recent_payments: List[RecentPayment]
    summary: FeeSummary


class GradeCount(BaseModel):
    grade: str
    count: int


class AttendanceSummary(BaseModel):
    period: str
    start_date: date
    end_date: date
    by_status: Dict[str, int]
    average_attendance: float  # % of marked records that are PRESENT


class DashboardResponse(BaseModel):
    total_learners: int
    active_learners: int
    learners_by_grade: List[GradeCount]
    attendance: AttendanceSummary
    fees: FeeSummary
