"""Per-school, per-year sequence counters for invoice and receipt numbers."""

import uuid

from sqlalchemy import Column, Integer, String, UniqueConstraint, Uuid, ForeignKey

from educore.db.session import Base


class DocumentCounter(Base):
    __tablename__ = "document_counters"
    __table_args__ = (
        UniqueConstraint("school_id", "document_type", "year", name="uq_document_counter_school_type_year"),
        {"schema": "school"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False)
    document_type = Column(String(20), nullable=False)  # INVOICE, RECEIPT
    year = Column(Integer, nullable=False)
    last_value = Column(Integer, nullable=False, default=0)
