"""
Leave application lifecycle.

Status changes are driven by one transition table; every operation validates,
writes and audits inside a single transaction, and notifications go out only
after that transaction has committed.
"""
import enum
import logging
import uuid
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.config import settings
from teamdesk.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientBalanceError,
    InvalidStateError,
    ValidationError,
)
from teamdesk.models.audit_log import LeaveAuditAction
from teamdesk.models.leave_request import (
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    count_leave_days,
)
from teamdesk.models.user import APPROVER_ROLES, User
from teamdesk.schemas.leave_request import (
    LeaveAttachmentResponse,
    LeaveBalanceResponse,
    LeaveRequestCreate,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    LeaveRequestUpdate,
    LeaveStatsResponse,
)
from teamdesk.services import entitlement_service
from teamdesk.services.attachment_service import AttachmentManager
from teamdesk.services.leave_store import (
    add_audit_entry,
    build_leave_query,
    ensure_leave_access,
    get_paginated_results,
    get_visible_leave,
    to_leave_response,
    transactional,
    visible,
)
from teamdesk.services.notification_service import (
    NotificationEvent,
    NotificationSink,
    dispatch,
    leave_application_event,
    leave_cancelled_event,
    leave_status_event,
)
from teamdesk.services.overlap_service import has_overlap
from teamdesk.services.user_directory import lock_user

logger = logging.getLogger(__name__)


class LeaveAction(str, enum.Enum):
    UPDATE = "update"
    CANCEL = "cancel"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"


# (current status, action) -> next status. Anything missing is not allowed.
TRANSITIONS: Dict[Tuple[LeaveStatus, LeaveAction], LeaveStatus] = {
    (LeaveStatus.PENDING, LeaveAction.UPDATE): LeaveStatus.PENDING,
    (LeaveStatus.PENDING, LeaveAction.CANCEL): LeaveStatus.CANCELLED,
    (LeaveStatus.APPROVED, LeaveAction.CANCEL): LeaveStatus.CANCELLED,
    (LeaveStatus.PENDING, LeaveAction.DELETE): LeaveStatus.PENDING,
    (LeaveStatus.PENDING, LeaveAction.APPROVE): LeaveStatus.APPROVED,
    (LeaveStatus.PENDING, LeaveAction.REJECT): LeaveStatus.REJECTED,
}

_DECISION_ACTIONS = {
    LeaveStatus.APPROVED: (LeaveAction.APPROVE, LeaveAuditAction.APPROVED),
    LeaveStatus.REJECTED: (LeaveAction.REJECT, LeaveAuditAction.REJECTED),
}


def check_transition(leave: LeaveRequest, action: LeaveAction, today: date) -> LeaveStatus:
    """Return the status ``action`` moves ``leave`` to, or raise InvalidStateError."""
    next_status = TRANSITIONS.get((leave.status, action))
    if next_status is None:
        raise InvalidStateError(
            f"Cannot {action.value} a leave application that is {leave.status.value}"
        )
    if leave.status == LeaveStatus.APPROVED and action == LeaveAction.CANCEL and leave.start_date <= today:
        raise InvalidStateError(
            "Cannot cancel a leave application that is approved and has already started"
        )
    return next_status


def _clean_reason(reason: Optional[str]) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("Reason is required")
    return cleaned


def _check_dates(start_date: date, end_date: date, today: date, check_past: bool = True) -> None:
    if end_date < start_date:
        raise ValidationError("End date cannot be before start date")
    if check_past and start_date < today:
        raise ValidationError("Start date cannot be in the past")


class LeaveWorkflow:
    """
    Orchestrates leave applications and their approval.

    Args:
        notifier: Delivers in-app notifications (defaults to the database sink)
        attachments: Handles supporting documents
        clock: Returns today's date
        balance_enforced_types: Leave types checked against remaining balance
    """

    def __init__(
        self,
        notifier: Optional[NotificationSink] = None,
        attachments: Optional[AttachmentManager] = None,
        clock: Optional[Callable[[], date]] = None,
        balance_enforced_types: Optional[Iterable] = None,
    ):
        self.notifier = notifier if notifier is not None else NotificationSink()
        self.attachments = attachments if attachments is not None else AttachmentManager.from_settings()
        self.clock = clock or date.today
        if balance_enforced_types is None:
            balance_enforced_types = settings.BALANCE_ENFORCED_LEAVE_TYPES
        self.balance_enforced_types = {LeaveType(t) for t in balance_enforced_types}

    # ---- helpers -------------------------------------------------------

    async def _ensure_available(
        self,
        db: AsyncSession,
        user_id: UUID,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        exclude_leave_id: Optional[UUID] = None,
    ) -> None:
        if await has_overlap(db, user_id, start_date, end_date, exclude_leave_id):
            raise ConflictError("Leave dates overlap with existing leave application")

        if leave_type in self.balance_enforced_types:
            requested = count_leave_days(start_date, end_date)
            remaining = await entitlement_service.remaining_days(db, user_id, leave_type, start_date.year)
            if requested > remaining:
                raise InsufficientBalanceError(requested, remaining)

    @staticmethod
    def _ensure_subject(leave: LeaveRequest, actor: User, action: LeaveAction) -> None:
        if leave.user_id != actor.id:
            raise AuthorizationError(f"You can only {action.value} your own leave applications")

    @staticmethod
    def _ensure_approver(actor: User) -> None:
        if not actor.is_approver:
            raise AuthorizationError("Only Admin or HR users can perform this action")

    async def _load_response(self, db: AsyncSession, leave_id: UUID) -> LeaveRequestResponse:
        """Project the leave as it stands in the open transaction."""
        await db.flush()
        return to_leave_response(await get_visible_leave(db, leave_id))

    def _notify_approvers(self, event: NotificationEvent) -> None:
        for role in APPROVER_ROLES:
            dispatch(self.notifier.notify_role(role, event), f"{event.type} notification to {role.value} users")

    def _notify_subject(self, user_id: UUID, event: NotificationEvent) -> None:
        dispatch(self.notifier.notify_user(user_id, event), f"{event.type} notification to user {user_id}")

    async def _list(self, db: AsyncSession, query, skip: int, limit: int, order_by) -> LeaveRequestListResponse:
        leaves, total = await get_paginated_results(db, query, skip=skip, limit=limit, order_by=order_by)
        return LeaveRequestListResponse(requests=[to_leave_response(leave) for leave in leaves], total=total)

    # ---- lifecycle -----------------------------------------------------

    @transactional("create_leave")
    async def create(
        self,
        db: AsyncSession,
        subject: User,
        data: LeaveRequestCreate,
    ) -> LeaveRequestResponse:
        today = self.clock()
        reason = _clean_reason(data.reason)
        _check_dates(data.start_date, data.end_date, today)

        await lock_user(db, subject.id)
        await self._ensure_available(db, subject.id, data.leave_type, data.start_date, data.end_date)

        leave = LeaveRequest(
            id=uuid.uuid4(),
            user_id=subject.id,
            leave_type=data.leave_type,
            reason=reason,
            status=LeaveStatus.PENDING,
            is_active=True,
        )
        leave.set_dates(data.start_date, data.end_date)
        db.add(leave)
        await db.flush()
        add_audit_entry(db, leave.id, LeaveAuditAction.APPLIED, subject.id)
        response = await self._load_response(db, leave.id)
        await db.commit()

        logger.info(
            f"Leave {leave.id} applied by user {subject.id}: {leave.leave_type.value} "
            f"{leave.start_date} to {leave.end_date} ({leave.total_days} days)"
        )
        self._notify_approvers(leave_application_event(response))
        return response

    @transactional("update_leave")
    async def update(
        self,
        db: AsyncSession,
        leave_id: UUID,
        actor: User,
        data: LeaveRequestUpdate,
    ) -> LeaveRequestResponse:
        leave = await get_visible_leave(db, leave_id, for_update=True)
        self._ensure_subject(leave, actor, LeaveAction.UPDATE)
        today = self.clock()
        check_transition(leave, LeaveAction.UPDATE, today)

        leave_type = data.leave_type if data.leave_type is not None else leave.leave_type
        start_date = data.start_date if data.start_date is not None else leave.start_date
        end_date = data.end_date if data.end_date is not None else leave.end_date

        changed = []
        if leave_type != leave.leave_type:
            changed.append("leave_type")
        if start_date != leave.start_date:
            changed.append("start_date")
        if end_date != leave.end_date:
            changed.append("end_date")
        reason = leave.reason
        if data.reason is not None:
            reason = _clean_reason(data.reason)
            if reason != leave.reason:
                changed.append("reason")

        if not changed:
            return to_leave_response(leave)

        dates_changed = "start_date" in changed or "end_date" in changed
        if dates_changed:
            _check_dates(start_date, end_date, today, check_past="start_date" in changed)
        if dates_changed or "leave_type" in changed:
            await lock_user(db, leave.user_id)
            await self._ensure_available(
                db, leave.user_id, leave_type, start_date, end_date, exclude_leave_id=leave.id
            )

        leave.leave_type = leave_type
        leave.set_dates(start_date, end_date)
        leave.reason = reason
        add_audit_entry(db, leave.id, LeaveAuditAction.UPDATED, actor.id, f"Changed: {', '.join(changed)}")
        response = await self._load_response(db, leave.id)
        await db.commit()

        logger.info(f"Leave {leave.id} updated by user {actor.id}: {', '.join(changed)}")
        return response

    @transactional("cancel_leave")
    async def cancel(
        self,
        db: AsyncSession,
        leave_id: UUID,
        actor: User,
    ) -> LeaveRequestResponse:
        leave = await get_visible_leave(db, leave_id, for_update=True)
        self._ensure_subject(leave, actor, LeaveAction.CANCEL)
        previous_status = leave.status
        leave.status = check_transition(leave, LeaveAction.CANCEL, self.clock())
        add_audit_entry(db, leave.id, LeaveAuditAction.CANCELLED, actor.id, f"Was {previous_status.value}")
        response = await self._load_response(db, leave.id)
        await db.commit()

        logger.info(f"Leave {leave.id} cancelled by user {actor.id} (was {previous_status.value})")
        self._notify_approvers(leave_cancelled_event(response))
        return response

    @transactional("delete_leave")
    async def delete(
        self,
        db: AsyncSession,
        leave_id: UUID,
        actor: User,
    ) -> None:
        leave = await get_visible_leave(db, leave_id, for_update=True)
        self._ensure_subject(leave, actor, LeaveAction.DELETE)
        check_transition(leave, LeaveAction.DELETE, self.clock())

        attachments = [a for a in leave.attachments if a.is_active]
        leave.is_active = False
        for attachment in attachments:
            attachment.is_active = False
        add_audit_entry(db, leave.id, LeaveAuditAction.DELETED, actor.id)
        await db.commit()

        logger.info(f"Leave {leave.id} deleted by user {actor.id} with {len(attachments)} attachment(s)")
        await self.attachments.discard_files([a.file_path for a in attachments])

    @transactional("decide_leave")
    async def decide(
        self,
        db: AsyncSession,
        leave_id: UUID,
        approver: User,
        decision: LeaveStatus,
        comments: Optional[str] = None,
    ) -> LeaveRequestResponse:
        if decision not in _DECISION_ACTIONS:
            raise ValidationError("Decision must be either approved or rejected")
        self._ensure_approver(approver)

        action, audit_action = _DECISION_ACTIONS[decision]
        comments = (comments or "").strip() or None
        if action == LeaveAction.REJECT and not comments:
            raise ValidationError("Comments are required when rejecting a leave application")

        leave = await get_visible_leave(db, leave_id, for_update=True)
        next_status = check_transition(leave, action, self.clock())
        leave.record_decision(next_status, approver.id, comments)
        add_audit_entry(db, leave.id, audit_action, approver.id, comments)
        response = await self._load_response(db, leave.id)
        await db.commit()

        logger.info(f"Leave {leave.id} {next_status.value} by user {approver.id}")
        self._notify_subject(leave.user_id, leave_status_event(response, comments))
        return response

    async def approve(
        self,
        db: AsyncSession,
        leave_id: UUID,
        approver: User,
        comments: Optional[str] = None,
    ) -> LeaveRequestResponse:
        return await self.decide(db, leave_id, approver, LeaveStatus.APPROVED, comments)

    async def reject(
        self,
        db: AsyncSession,
        leave_id: UUID,
        approver: User,
        comments: Optional[str] = None,
    ) -> LeaveRequestResponse:
        return await self.decide(db, leave_id, approver, LeaveStatus.REJECTED, comments)

    # ---- queries -------------------------------------------------------

    @transactional("list_my_leaves")
    async def list_mine(
        self,
        db: AsyncSession,
        actor: User,
        skip: int = 0,
        limit: int = 100,
    ) -> LeaveRequestListResponse:
        query = build_leave_query(user_id=actor.id)
        return await self._list(db, query, skip, limit, LeaveRequest.created_at.desc())

    @transactional("list_all_leaves")
    async def list_all(
        self,
        db: AsyncSession,
        actor: User,
        skip: int = 0,
        limit: int = 100,
        leave_type: Optional[LeaveType] = None,
        user_id: Optional[UUID] = None,
    ) -> LeaveRequestListResponse:
        self._ensure_approver(actor)
        query = build_leave_query(leave_type=leave_type, user_id=user_id)
        return await self._list(db, query, skip, limit, LeaveRequest.created_at.desc())

    @transactional("list_pending_leaves")
    async def list_pending(
        self,
        db: AsyncSession,
        actor: User,
        skip: int = 0,
        limit: int = 100,
    ) -> LeaveRequestListResponse:
        """Pending applications, oldest first, so they are decided in arrival order."""
        self._ensure_approver(actor)
        query = build_leave_query(status=LeaveStatus.PENDING)
        return await self._list(db, query, skip, limit, LeaveRequest.created_at.asc())

    @transactional("list_leaves_by_status")
    async def list_by_status(
        self,
        db: AsyncSession,
        actor: User,
        leave_status: LeaveStatus,
        skip: int = 0,
        limit: int = 100,
    ) -> LeaveRequestListResponse:
        self._ensure_approver(actor)
        query = build_leave_query(status=leave_status)
        return await self._list(db, query, skip, limit, LeaveRequest.created_at.desc())

    @transactional("get_leave")
    async def get_by_id(
        self,
        db: AsyncSession,
        leave_id: UUID,
        actor: User,
    ) -> LeaveRequestResponse:
        leave = await get_visible_leave(db, leave_id)
        ensure_leave_access(leave, actor)
        return to_leave_response(leave)

    @transactional("get_leave_balance")
    async def remaining_days(
        self,
        db: AsyncSession,
        actor: User,
        leave_type: LeaveType,
        year: Optional[int] = None,
        user_id: Optional[UUID] = None,
    ) -> LeaveBalanceResponse:
        target_id = user_id or actor.id
        if target_id != actor.id:
            self._ensure_approver(actor)
        year = year or self.clock().year
        remaining = await entitlement_service.remaining_days(db, target_id, leave_type, year)
        return LeaveBalanceResponse(
            user_id=target_id,
            leave_type=leave_type,
            year=year,
            remaining_days=remaining,
        )

    @transactional("get_leave_stats")
    async def stats(
        self,
        db: AsyncSession,
        actor: User,
        user_id: Optional[UUID] = None,
    ) -> LeaveStatsResponse:
        """
        Counts of visible leaves by status and type.

        Admin/HR see everyone unless they pass ``user_id``; other users only
        ever see their own numbers.
        """
        if not actor.is_approver:
            user_id = actor.id

        query = (
            select(LeaveRequest.status, LeaveRequest.leave_type, func.count(LeaveRequest.id))
            .where(visible(LeaveRequest))
            .group_by(LeaveRequest.status, LeaveRequest.leave_type)
        )
        if user_id is not None:
            query = query.where(LeaveRequest.user_id == user_id)
        rows = (await db.execute(query)).all()

        by_status: Dict[str, int] = {s.value: 0 for s in LeaveStatus}
        by_type: Dict[str, int] = {}
        for leave_status, leave_type, count in rows:
            by_status[leave_status.value] += count
            by_type[leave_type.value] = by_type.get(leave_type.value, 0) + count

        remaining_annual = None
        if user_id is not None:
            remaining_annual = await entitlement_service.remaining_days(
                db, user_id, LeaveType.ANNUAL, self.clock().year
            )

        return LeaveStatsResponse(
            total_leaves=sum(by_status.values()),
            pending_leaves=by_status[LeaveStatus.PENDING.value],
            approved_leaves=by_status[LeaveStatus.APPROVED.value],
            rejected_leaves=by_status[LeaveStatus.REJECTED.value],
            cancelled_leaves=by_status[LeaveStatus.CANCELLED.value],
            by_type=by_type,
            by_status=by_status,
            remaining_annual_leaves=remaining_annual,
        )

    # ---- attachments ---------------------------------------------------

    async def upload_attachment(
        self,
        db: AsyncSession,
        leave_id: UUID,
        file: UploadFile,
        uploader: User,
    ) -> LeaveAttachmentResponse:
        return await self.attachments.upload(db, leave_id, file, uploader)

    async def delete_attachment(
        self,
        db: AsyncSession,
        leave_id: UUID,
        attachment_id: UUID,
        actor: User,
    ) -> None:
        await self.attachments.delete(db, leave_id, attachment_id, actor)

    async def list_attachments(
        self,
        db: AsyncSession,
        leave_id: UUID,
        actor: User,
    ) -> List[LeaveAttachmentResponse]:
        return await self.attachments.list(db, leave_id, actor)
