from datetime import date, datetime, timezone
from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Integer, Enum, Index, Boolean, BigInteger
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from teamdesk.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeaveType(str, enum.Enum):
    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    EMERGENCY = "emergency"
    BEREAVEMENT = "bereavement"
    STUDY = "study"

    @property
    def display_name(self) -> str:
        return f"{self.value.title()} Leave"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def display_name(self) -> str:
        return self.value.title()


# Statuses that still hold the dates on the subject's calendar
BLOCKING_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


def count_leave_days(start_date: date, end_date: date) -> int:
    """Inclusive number of calendar days between two dates."""
    return (end_date - start_date).days + 1


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(Enum(LeaveType, values_callable=lambda x: [e.value for e in x]), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_days = Column(Integer, nullable=False)
    reason = Column(String(1000), nullable=False)
    status = Column(Enum(LeaveStatus, values_callable=lambda x: [e.value for e in x]), nullable=False, default=LeaveStatus.PENDING)
    approved_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approval_comments = Column(String(1000), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="leave_requests")
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    attachments = relationship(
        "LeaveAttachment",
        back_populates="leave",
        order_by="LeaveAttachment.created_at.desc()",
    )

    __table_args__ = (
        Index("idx_leave_requests_status", "status"),
        Index("idx_leave_requests_type_start_status", "leave_type", "start_date", "status"),
        Index("idx_leave_requests_user_active_start", "user_id", "is_active", "start_date"),
    )

    def set_dates(self, start_date: date, end_date: date) -> None:
        """Set the date range; total_days is always derived from it."""
        self.start_date = start_date
        self.end_date = end_date
        self.total_days = count_leave_days(start_date, end_date)

    def record_decision(self, status: LeaveStatus, approver_id, comments) -> None:
        """Approver and decision time are always written together."""
        self.status = status
        self.approved_by_id = approver_id
        self.approved_at = utcnow()
        self.approval_comments = comments


class LeaveAttachment(Base):
    __tablename__ = "leave_attachments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    leave_id = Column(UUID(as_uuid=True), ForeignKey("leave_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    original_file_name = Column(String(255), nullable=False)
    file_type = Column(String(100), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_url = Column(String(1000), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    uploaded_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    leave = relationship("LeaveRequest", back_populates="attachments")
    uploaded_by = relationship("User", foreign_keys=[uploaded_by_id])
