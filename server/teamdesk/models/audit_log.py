from sqlalchemy import Column, String, ForeignKey, DateTime, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from teamdesk.core.database import Base
from teamdesk.models.leave_request import utcnow


class LeaveAuditAction(str, enum.Enum):
    APPLIED = "APPLIED"
    UPDATED = "UPDATED"
    CANCELLED = "CANCELLED"
    DELETED = "DELETED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ATTACHMENT_ADDED = "ATTACHMENT_ADDED"
    ATTACHMENT_REMOVED = "ATTACHMENT_REMOVED"


class LeaveAuditLog(Base):
    """Audit trail for the leave lifecycle; rows are written in the same transaction as the change."""

    __tablename__ = "leave_audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    leave_request_id = Column(UUID(as_uuid=True), ForeignKey("leave_requests.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(50), nullable=False)
    performed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    leave_request = relationship("LeaveRequest", foreign_keys=[leave_request_id])

    __table_args__ = (
        Index("idx_leave_audit_logs_leave_created", "leave_request_id", "created_at"),
    )
