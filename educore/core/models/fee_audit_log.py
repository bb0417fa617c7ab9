"""Fee audit log: immutable financial change tracking for audit safety."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from educore.db.session import Base


class FeeAuditLog(Base):
    """Immutable audit trail for invoices, payments, waivers and structure archival."""

    __tablename__ = "fee_audit_logs"
    __table_args__ = {"schema": "school"}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("core.schools.id", ondelete="CASCADE"), nullable=False, index=True)
    reference_table = Column(String(50), nullable=False)
    reference_id = Column(Uuid(as_uuid=True), nullable=False)
    action_type = Column(String(30), nullable=False)  # CREATE, PAYMENT, WAIVE, ARCHIVE
    old_value = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    new_value = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    changed_by = Column(Uuid(as_uuid=True), ForeignKey("auth.users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
