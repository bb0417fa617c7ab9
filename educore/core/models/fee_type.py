"""Fee type master (Tuition, Transport, Boarding, Activity). School-scoped."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid

from educore.core.enums import FeeCategory
from educore.db.session import Base


class FeeType(Base):
    """School-scoped fee type. Cannot be deleted while a fee structure item uses it."""

    __tablename__ = "fee_types"
    __table_args__ = (
        UniqueConstraint("school_id", "code", name="uq_fee_type_school_code"),
        CheckConstraint(
            "category IN ('ACADEMIC','TRANSPORT','BOARDING','ACTIVITY','OTHER')",
            name="chk_fee_type_category",
        ),
        {"schema": "school"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(30), nullable=False, default=FeeCategory.ACADEMIC.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
