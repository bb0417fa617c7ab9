"""Fee structure: named bundle of fee-type line items for a grade/term/year."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from educore.db.session import Base


class FeeStructure(Base):
    """
    Fee bundle per school (optionally per grade and term) for an academic year.
    Once an invoice references it, items are frozen and the structure can only be archived.
    """

    __tablename__ = "fee_structures"
    __table_args__ = {"schema": "school"}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Uuid(as_uuid=True), ForeignKey("core.branches.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    grade = Column(String(30), nullable=True)  # NULL = all grades
    term = Column(String(20), nullable=True)  # NULL = whole year
    academic_year = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    items = relationship(
        "FeeStructureItem",
        back_populates="fee_structure",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="FeeStructureItem.created_at",
    )

    @property
    def total_amount(self) -> Decimal:
        return sum((Decimal(str(i.amount)) for i in self.items), Decimal("0"))


class FeeStructureItem(Base):
    """One fee type line inside a fee structure."""

    __tablename__ = "fee_structure_items"
    __table_args__ = {"schema": "school"}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fee_structure_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("school.fee_structures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fee_type_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("school.fee_types.id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    mandatory = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    fee_structure = relationship("FeeStructure", back_populates="items")
