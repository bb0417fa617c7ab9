"""Learner register. Owned by the learner-records module; the fee ledger and reports only read it."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from educore.core.enums import LearnerStatus
from educore.db.session import Base


class Learner(Base):
    __tablename__ = "learners"
    __table_args__ = (
        UniqueConstraint("school_id", "admission_number", name="uq_learner_school_admission_number"),
        {"schema": "core"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Uuid(as_uuid=True), ForeignKey("core.branches.id", ondelete="SET NULL"), nullable=True)
    admission_number = Column(String(50), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    grade = Column(String(30), nullable=False)  # PP1, PP2, GRADE_1 ... GRADE_9
    stream = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, default=LearnerStatus.ACTIVE.value)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
