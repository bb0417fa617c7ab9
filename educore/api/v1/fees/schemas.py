"""Fees schemas: fee structures, invoices, payments."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from educore.core.enums import InvoiceStatus, PaymentMethod, Term


# --- Fee Structure ---
class FeeStructureItemCreate(BaseModel):
    fee_type_id: UUID
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    mandatory: bool = True


class FeeStructureItemResponse(BaseModel):
    id: UUID
    fee_type_id: UUID
    amount: Decimal
    mandatory: bool

    class Config:
        from_attributes = True


class FeeStructureCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    grade: Optional[str] = Field(None, max_length=30)
    term: Optional[Term] = None
    academic_year: int = Field(..., ge=2000, le=2100)
    items: List[FeeStructureItemCreate] = Field(..., min_length=1)
    active: bool = True
    branch_id: Optional[UUID] = None


class FeeStructureUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    grade: Optional[str] = Field(None, max_length=30)
    term: Optional[Term] = None
    academic_year: Optional[int] = Field(None, ge=2000, le=2100)
    items: Optional[List[FeeStructureItemCreate]] = Field(None, min_length=1)
    active: Optional[bool] = None


class FeeStructureResponse(BaseModel):
    id: UUID
    school_id: UUID
    branch_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    grade: Optional[str] = None
    term: Optional[Term] = None
    academic_year: int
    active: bool
    archived: bool
    archived_at: Optional[datetime] = None
    total_amount: Decimal
    items: List[FeeStructureItemResponse]
    invoice_count: int = 0
    created_at: datetime
    updated_at: datetime


class FeeStructureDeleteResponse(BaseModel):
    id: UUID
    deleted: bool
    archived: bool


# --- Invoice ---
class InvoiceCreate(BaseModel):
    learner_id: UUID
    fee_structure_id: UUID
    term: Term
    academic_year: int = Field(..., ge=2000, le=2100)
    due_date: date


class BulkInvoiceCreate(BaseModel):
    fee_structure_id: UUID
    term: Term
    academic_year: int = Field(..., ge=2000, le=2100)
    due_date: date
    grade: str = Field(..., min_length=1, max_length=30)
    stream: Optional[str] = Field(None, max_length=50)


class InvoiceWaive(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class InvoiceResponse(BaseModel):
    id: UUID
    school_id: UUID
    branch_id: Optional[UUID] = None
    invoice_number: str
    learner_id: UUID
    fee_structure_id: UUID
    term: Term
    academic_year: int
    due_date: date
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: InvoiceStatus
    waived_at: Optional[datetime] = None
    waived_by: Optional[UUID] = None
    waiver_reason: Optional[str] = None
    generated_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BulkInvoiceResponse(BaseModel):
    invoices: List[InvoiceResponse]
    created_count: int
    skipped_count: int


# --- Payment ---
class PaymentCreate(BaseModel):
    invoice_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    payment_method: PaymentMethod
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def amount_must_be_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("amount must be a finite number")
        return v


class PaymentResponse(BaseModel):
    id: UUID
    school_id: UUID
    invoice_id: UUID
    receipt_number: str
    amount: Decimal
    payment_method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    paid_at: datetime
    received_by: Optional[UUID] = None

    class Config:
        from_attributes = True


class PaymentWithInvoiceResponse(BaseModel):
    payment: PaymentResponse
    invoice: InvoiceResponse
