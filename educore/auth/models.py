import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid

from educore.db.session import Base


class User(Base):
    """User within a school. Only SUPER_ADMIN users may have no school."""

    __tablename__ = "users"
    __table_args__ = (
        # Email must be unique per school
        UniqueConstraint("school_id", "email", name="uq_user_school_email"),
        {"schema": "auth"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=True)
    branch_id = Column(Uuid(as_uuid=True), ForeignKey("core.branches.id", ondelete="SET NULL"), nullable=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(Text, nullable=False)
    # SUPER_ADMIN, SCHOOL_ADMIN, BURSAR, TEACHER, ...
    role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Role(Base):
    """School-scoped role with JSON permissions."""

    __tablename__ = "roles"
    __table_args__ = (
        UniqueConstraint("school_id", "name", name="uq_role_school_name"),
        {"schema": "auth"},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    # Example shape:
    # {
    #   "fees": {"create": true, "read": true, "update": false, "delete": false},
    #   "reports": {"read": true}
    # }
    permissions = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
