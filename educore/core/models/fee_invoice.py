"""Fee invoice: one per learner, fee structure, term and academic year."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid

from educore.core.enums import InvoiceStatus
from educore.db.session import Base


class FeeInvoice(Base):
    """
    Learner invoice. total_amount is frozen from the structure at creation.
    balance == total_amount - paid_amount holds after every write.
    """

    __tablename__ = "fee_invoices"
    __table_args__ = (
        UniqueConstraint("school_id", "invoice_number", name="uq_fee_invoice_school_number"),
        UniqueConstraint(
            "learner_id", "fee_structure_id", "term", "academic_year",
            name="uq_fee_invoice_learner_structure_term_year",
        ),
        {"schema": "school"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Uuid(as_uuid=True), ForeignKey("core.branches.id", ondelete="SET NULL"), nullable=True)
    invoice_number = Column(String(30), nullable=False)
    learner_id = Column(Uuid(as_uuid=True), ForeignKey("core.learners.id", ondelete="RESTRICT"), nullable=False, index=True)
    fee_structure_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("school.fee_structures.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    term = Column(String(20), nullable=False)
    academic_year = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    balance = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=InvoiceStatus.PENDING.value)
    waived_at = Column(DateTime(timezone=True), nullable=True)
    waived_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    waiver_reason = Column(Text, nullable=True)
    generated_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

