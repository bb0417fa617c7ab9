import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from educore.db.session import Base


class School(Base):
    """
    Tenant in the multi-tenant platform.

    Every fee, grading and learner row carries school_id; nothing is ever read
    across schools.
    """

    __tablename__ = "schools"
    __table_args__ = {"schema": "core"}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    # Short public code (e.g. "KPS"); identification only, never used as FK
    code = Column(String(20), unique=True, nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    branches = relationship("Branch", back_populates="school", cascade="all, delete-orphan")


class Branch(Base):
    """Optional sub-tenant of a school (campus). Rows with branch_id NULL are school-wide."""

    __tablename__ = "branches"
    __table_args__ = (
        UniqueConstraint("school_id", "name", name="uq_branch_school_name"),
        {"schema": "core"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School", back_populates="branches")
