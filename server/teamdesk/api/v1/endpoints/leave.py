from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from teamdesk.core.database import get_db
from teamdesk.core.dependencies import get_current_user, get_current_approver, get_leave_workflow
from teamdesk.core.error_handling import handle_endpoint_errors, parse_uuid
from teamdesk.models.leave_request import LeaveStatus, LeaveType
from teamdesk.models.user import User
from teamdesk.schemas.leave_request import (
    LeaveAttachmentResponse,
    LeaveBalanceResponse,
    LeaveDecision,
    LeaveRequestCreate,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    LeaveRequestUpdate,
    LeaveStatsResponse,
)
from teamdesk.services.leave_service import LeaveWorkflow

router = APIRouter()


@router.post("/apply", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
@handle_endpoint_errors(operation_name="apply_for_leave")
async def apply_for_leave_endpoint(
    data: LeaveRequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Apply for leave. Admin and HR users are notified."""
    return await workflow.create(db, current_user, data)


@router.get("/my", response_model=LeaveRequestListResponse)
@handle_endpoint_errors(operation_name="get_my_leaves")
async def get_my_leaves_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Get current user's leave applications, newest first."""
    return await workflow.list_mine(db, current_user, skip, limit)


@router.get("/", response_model=LeaveRequestListResponse)
@handle_endpoint_errors(operation_name="get_all_leaves")
async def get_all_leaves_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    leave_type: Optional[LeaveType] = Query(None),
    user_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_approver),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Get all leave applications (Admin/HR only)."""
    subject_id = parse_uuid(user_id, "user ID") if user_id else None
    return await workflow.list_all(db, current_user, skip, limit, leave_type=leave_type, user_id=subject_id)


@router.get("/pending", response_model=LeaveRequestListResponse)
@handle_endpoint_errors(operation_name="get_pending_leaves")
async def get_pending_leaves_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_approver),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Get pending leave applications, oldest first (Admin/HR only)."""
    return await workflow.list_pending(db, current_user, skip, limit)


@router.get("/status/{leave_status}", response_model=LeaveRequestListResponse)
@handle_endpoint_errors(operation_name="get_leaves_by_status")
async def get_leaves_by_status_endpoint(
    leave_status: LeaveStatus,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_approver),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    return await workflow.list_by_status(db, current_user, leave_status, skip, limit)


@router.get("/balance/{leave_type}", response_model=LeaveBalanceResponse)
@handle_endpoint_errors(operation_name="get_leave_balance")
async def get_leave_balance_endpoint(
    leave_type: LeaveType,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Remaining days of a leave type. Admin/HR may ask about another user."""
    subject_id = parse_uuid(user_id, "user ID") if user_id else None
    return await workflow.remaining_days(db, current_user, leave_type, year=year, user_id=subject_id)


@router.get("/stats", response_model=LeaveStatsResponse)
@handle_endpoint_errors(operation_name="get_leave_stats")
async def get_leave_stats_endpoint(
    user_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Leave counts. Non-admin users always get their own numbers."""
    subject_id = parse_uuid(user_id, "user ID") if user_id else None
    return await workflow.stats(db, current_user, user_id=subject_id)


@router.get("/{leave_id}", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="get_leave")
async def get_leave_endpoint(
    leave_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    return await workflow.get_by_id(db, parse_uuid(leave_id, "leave ID"), current_user)


@router.put("/{leave_id}", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="update_leave")
async def update_leave_endpoint(
    leave_id: str,
    data: LeaveRequestUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Edit a pending leave application."""
    return await workflow.update(db, parse_uuid(leave_id, "leave ID"), current_user, data)


@router.post("/{leave_id}/cancel", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="cancel_leave")
async def cancel_leave_endpoint(
    leave_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Cancel a pending leave, or an approved one that has not started yet."""
    return await workflow.cancel(db, parse_uuid(leave_id, "leave ID"), current_user)


@router.delete("/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
@handle_endpoint_errors(operation_name="delete_leave")
async def delete_leave_endpoint(
    leave_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Withdraw a pending leave application together with its attachments."""
    await workflow.delete(db, parse_uuid(leave_id, "leave ID"), current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{leave_id}/approve", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="approve_leave")
async def approve_leave_endpoint(
    leave_id: str,
    data: Optional[LeaveDecision] = None,
    current_user: User = Depends(get_current_approver),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    comments = data.comments if data else None
    return await workflow.approve(db, parse_uuid(leave_id, "leave ID"), current_user, comments)


@router.post("/{leave_id}/reject", response_model=LeaveRequestResponse)
@handle_endpoint_errors(operation_name="reject_leave")
async def reject_leave_endpoint(
    leave_id: str,
    data: LeaveDecision,
    current_user: User = Depends(get_current_approver),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Reject a pending leave application. Comments are required."""
    return await workflow.reject(db, parse_uuid(leave_id, "leave ID"), current_user, data.comments)


@router.post(
    "/{leave_id}/attachments",
    response_model=LeaveAttachmentResponse,
    status_code=status.HTTP_201_CREATED,
)
@handle_endpoint_errors(operation_name="upload_leave_attachment")
async def upload_leave_attachment_endpoint(
    leave_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    """Attach a supporting document (pdf, doc, docx, jpg, jpeg, png; max 5MB)."""
    return await workflow.upload_attachment(db, parse_uuid(leave_id, "leave ID"), file, current_user)


@router.get("/{leave_id}/attachments", response_model=List[LeaveAttachmentResponse])
@handle_endpoint_errors(operation_name="list_leave_attachments")
async def list_leave_attachments_endpoint(
    leave_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    return await workflow.list_attachments(db, parse_uuid(leave_id, "leave ID"), current_user)


@router.delete("/{leave_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
@handle_endpoint_errors(operation_name="delete_leave_attachment")
async def delete_leave_attachment_endpoint(
    leave_id: str,
    attachment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    workflow: LeaveWorkflow = Depends(get_leave_workflow),
):
    await workflow.delete_attachment(
        db,
        parse_uuid(leave_id, "leave ID"),
        parse_uuid(attachment_id, "attachment ID"),
        current_user,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
