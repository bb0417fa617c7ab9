"""Per-school score aggregation rules keyed by (assessment type, grade, learning area)."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Uuid

from educore.core.enums import AggregationStrategy
from educore.db.session import Base


class AggregationConfig(Base):
    """
    NULL key columns mean "any". The row with all three NULL is the school default.
    Uniqueness of the key tuple is checked in the service since NULLs never collide in SQL.
    """

    __tablename__ = "aggregation_configs"
    __table_args__ = {"schema": "school"}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    assessment_type = Column(String(20), nullable=True)
    grade = Column(String(30), nullable=True)
    learning_area = Column(String(100), nullable=True)
    strategy = Column(String(30), nullable=False, default=AggregationStrategy.SIMPLE_AVERAGE.value)
    n_value = Column(Integer, nullable=True)
    weight = Column(Float, nullable=False, default=1.0)
    active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
