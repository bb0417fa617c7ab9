"""Daily learner attendance. One row per learner per date."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from educore.db.session import Base


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("learner_id", "date", name="uq_attendance_learner_date"),
        {"schema": "school"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    learner_id = Column(Uuid(as_uuid=True), ForeignKey("core.learners.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)  # PRESENT, ABSENT, LATE, EXCUSED
    marked_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
