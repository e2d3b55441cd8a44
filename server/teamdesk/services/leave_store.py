"""
Persistence helpers for leave requests and their attachments.

Every read goes through ``visible()`` so soft-deleted rows never leak into
normal queries, and every workflow operation runs inside ``transactional`` so a
failure never leaves partial state committed.
"""
import logging
from functools import wraps
from typing import Callable, Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamdesk.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ServiceError,
)
from teamdesk.models.audit_log import LeaveAuditAction, LeaveAuditLog
from teamdesk.models.leave_request import LeaveAttachment, LeaveRequest
from teamdesk.models.user import User
from teamdesk.schemas.leave_request import LeaveAttachmentResponse, LeaveRequestResponse

logger = logging.getLogger(__name__)

# Name of the PostgreSQL exclusion constraint that rejects overlapping active leaves
OVERLAP_CONSTRAINT_NAME = "excl_leave_requests_no_overlap"


def visible(model):
    """The single predicate deciding whether a leave or attachment row is visible."""
    return model.is_active.is_(True)


def _leave_load_options():
    return (
        selectinload(LeaveRequest.user),
        selectinload(LeaveRequest.approved_by),
        selectinload(LeaveRequest.attachments).selectinload(LeaveAttachment.uploaded_by),
    )


def build_leave_query(**filters):
    """
    Build a query over visible leave requests with the projection's relations loaded.

    Args:
        **filters: {column_name: value} equality filters; None values are skipped

    Returns:
        SQLAlchemy select query
    """
    query = (
        select(LeaveRequest)
        .where(visible(LeaveRequest))
        .options(*_leave_load_options())
        .execution_options(populate_existing=True)
    )
    for column_name, value in filters.items():
        if value is not None:
            query = query.where(getattr(LeaveRequest, column_name) == value)
    return query


async def get_paginated_results(
    db: AsyncSession,
    query,
    skip: int = 0,
    limit: int = 100,
    order_by=None,
) -> Tuple[List, int]:
    """
    Execute a paginated query and return results with total count.

    Returns:
        Tuple of (results_list, total_count)
    """
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    if order_by is not None:
        if isinstance(order_by, (list, tuple)):
            query = query.order_by(*order_by)
        else:
            query = query.order_by(order_by)

    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def get_visible_leave(
    db: AsyncSession,
    leave_id: UUID,
    for_update: bool = False,
) -> LeaveRequest:
    """Load a visible leave or raise NotFoundError."""
    query = build_leave_query(id=leave_id)
    if for_update:
        query = query.with_for_update(of=LeaveRequest)
    leave = (await db.execute(query)).scalar_one_or_none()
    if leave is None:
        raise NotFoundError(f"Leave with ID {leave_id} not found")
    return leave


async def get_visible_attachment(
    db: AsyncSession,
    leave_id: UUID,
    attachment_id: UUID,
) -> LeaveAttachment:
    result = await db.execute(
        select(LeaveAttachment).where(
            LeaveAttachment.id == attachment_id,
            LeaveAttachment.leave_id == leave_id,
            visible(LeaveAttachment),
        )
    )
    attachment = result.scalar_one_or_none()
    if attachment is None:
        raise NotFoundError(f"Attachment with ID {attachment_id} not found for leave {leave_id}")
    return attachment


async def list_visible_attachments(db: AsyncSession, leave_id: UUID) -> List[LeaveAttachment]:
    result = await db.execute(
        select(LeaveAttachment)
        .where(LeaveAttachment.leave_id == leave_id, visible(LeaveAttachment))
        .options(selectinload(LeaveAttachment.uploaded_by))
        .order_by(LeaveAttachment.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def ensure_leave_access(leave: LeaveRequest, actor: User) -> None:
    """The subject and Admin/HR users may see a leave; nobody else."""
    if leave.user_id != actor.id and not actor.is_approver:
        raise AuthorizationError("You can only access your own leave applications")


def add_audit_entry(
    db: AsyncSession,
    leave_id: UUID,
    action: LeaveAuditAction,
    performed_by: Optional[UUID],
    remarks: Optional[str] = None,
) -> None:
    db.add(
        LeaveAuditLog(
            leave_request_id=leave_id,
            action=action.value,
            performed_by=performed_by,
            remarks=remarks,
        )
    )


def _display_name(user: Optional[User]) -> str:
    return user.full_name if user is not None else "Unknown"


def to_attachment_response(attachment: LeaveAttachment, uploaded_by: Optional[User] = None) -> LeaveAttachmentResponse:
    uploader = uploaded_by if uploaded_by is not None else attachment.uploaded_by
    return LeaveAttachmentResponse(
        id=attachment.id,
        leave_id=attachment.leave_id,
        file_name=attachment.file_name,
        original_file_name=attachment.original_file_name,
        file_type=attachment.file_type,
        file_url=attachment.file_url,
        file_size=attachment.file_size,
        uploaded_by_id=attachment.uploaded_by_id,
        uploaded_by_name=_display_name(uploader),
        created_at=attachment.created_at,
    )


def to_leave_response(leave: LeaveRequest) -> LeaveRequestResponse:
    """Map a leave loaded by ``build_leave_query`` to its API projection."""
    subject = leave.user
    return LeaveRequestResponse(
        id=leave.id,
        user_id=leave.user_id,
        user_name=_display_name(subject),
        user_email=subject.email if subject else None,
        user_role=subject.role if subject else None,
        leave_type=leave.leave_type,
        leave_type_display=leave.leave_type.display_name,
        start_date=leave.start_date,
        end_date=leave.end_date,
        total_days=leave.total_days,
        reason=leave.reason,
        status=leave.status,
        status_display=leave.status.display_name,
        approved_by_id=leave.approved_by_id,
        approved_by_name=leave.approved_by.full_name if leave.approved_by else None,
        approved_at=leave.approved_at,
        approval_comments=leave.approval_comments,
        attachments=[to_attachment_response(a) for a in leave.attachments if a.is_active],
        created_at=leave.created_at,
        updated_at=leave.updated_at,
    )


def transactional(operation_name: str):
    """
    Run a workflow method as one transaction on the session passed as its first argument.

    Domain errors roll back and propagate unchanged. Storage failures roll back,
    are logged with full context and surface as an opaque InfrastructureError.
    A violation of the overlap exclusion constraint surfaces as ConflictError.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self, db: AsyncSession, *args, **kwargs) -> Any:
            try:
                return await func(self, db, *args, **kwargs)
            except ServiceError:
                await db.rollback()
                raise
            except IntegrityError as e:
                await db.rollback()
                if OVERLAP_CONSTRAINT_NAME in str(e.orig):
                    raise ConflictError("Leave dates overlap with existing leave application")
                logger.error(f"Integrity error during {operation_name}", exc_info=True)
                raise InfrastructureError()
            except SQLAlchemyError:
                await db.rollback()
                logger.error(
                    f"Database error during {operation_name}",
                    exc_info=True,
                    extra={"operation": operation_name},
                )
                raise InfrastructureError()
        return wrapper
    return decorator
