from pydantic import BaseModel, Field
from typing import Optional, Dict
from datetime import date, datetime
from uuid import UUID
from teamdesk.models.leave_request import LeaveType, LeaveStatus
from teamdesk.models.user import UserRole


class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(..., max_length=1000)


class LeaveRequestUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""

    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = Field(None, max_length=1000)


class LeaveDecision(BaseModel):
    comments: Optional[str] = Field(None, max_length=1000)


class LeaveAttachmentResponse(BaseModel):
    id: UUID
    leave_id: UUID
    file_name: str
    original_file_name: str
    file_type: str
    file_url: str
    file_size: int
    uploaded_by_id: UUID
    uploaded_by_name: str
    created_at: datetime

    class Config:
        from_attributes = True


class LeaveRequestResponse(BaseModel):
    id: UUID
    user_id: UUID
    user_name: str
    user_email: Optional[str] = None
    user_role: Optional[UserRole] = None
    leave_type: LeaveType
    leave_type_display: str
    start_date: date
    end_date: date
    total_days: int
    reason: str
    status: LeaveStatus
    status_display: str
    approved_by_id: Optional[UUID] = None
    approved_by_name: Optional[str] = None
    approved_at: Optional[datetime] = None
    approval_comments: Optional[str] = None
    attachments: list[LeaveAttachmentResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeaveRequestListResponse(BaseModel):
    requests: list[LeaveRequestResponse]
    total: int


class LeaveBalanceResponse(BaseModel):
    user_id: UUID
    leave_type: LeaveType
    year: int
    remaining_days: int


class LeaveStatsResponse(BaseModel):
    total_leaves: int
    pending_leaves: int
    approved_leaves: int
    rejected_leaves: int
    cancelled_leaves: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    remaining_annual_leaves: Optional[int] = None
