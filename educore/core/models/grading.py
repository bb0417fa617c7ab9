"""Grading systems and their percentage bands (SUMMATIVE A-E, CBC EE1-BE2)."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from educore.db.session import Base


class GradingSystem(Base):
    """
    Named set of grade bands. At most one default per (school, type);
    the service clears the other defaults when one is promoted.
    """

    __tablename__ = "grading_systems"
    __table_args__ = {"schema": "school"}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Uuid(as_uuid=True), ForeignKey("core.branches.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)  # SUMMATIVE, CBC
    grade = Column(String(30), nullable=True)
    learning_area = Column(String(100), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    ranges = relationship(
        "GradingRange",
        back_populates="grading_system",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="GradingRange.min_percentage.desc()",
    )


class GradingRange(Base):
    __tablename__ = "grading_ranges"
    __table_args__ = {"schema": "school"}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    grading_system_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("school.grading_systems.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    min_percentage = Column(Float, nullable=False)
    max_percentage = Column(Float, nullable=False)
    label = Column(String(20), nullable=False)  # A, B, EE1, ME2 ...
    points = Column(Integer, nullable=True)
    summative_grade = Column(String(5), nullable=True)
    rubric_rating = Column(String(10), nullable=True)  # EE, ME, AE, BE
    color = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    grading_system = relationship("GradingSystem", back_populates="ranges")
