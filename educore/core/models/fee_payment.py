"""Fee payment: append-only. Rows are never updated or deleted."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint, Uuid

from educore.db.session import Base


class FeePayment(Base):
    __tablename__ = "fee_payments"
    __table_args__ = (
        UniqueConstraint("school_id", "receipt_number", name="uq_fee_payment_school_receipt"),
        {"schema": "school"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("school.fee_invoices.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    receipt_number = Column(String(30), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(30), nullable=False)  # CASH, MPESA, BANK_TRANSFER, CHEQUE, CARD
    reference = Column(String(100), nullable=True)  # M-Pesa code, cheque number, bank ref
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    received_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
