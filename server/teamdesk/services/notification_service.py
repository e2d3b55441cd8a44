"""
In-app notifications for leave events.

Delivery is fire-and-forget: the workflow schedules it with ``dispatch`` after
its transaction commits, and a failure is logged without touching the leave.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Optional, Set
from uuid import UUID

from teamdesk.core.database import AsyncSessionLocal
from teamdesk.models.leave_request import LeaveStatus
from teamdesk.models.notification import Notification
from teamdesk.models.user import UserRole
from teamdesk.schemas.leave_request import LeaveRequestResponse
from teamdesk.services.user_directory import list_users_by_roles

logger = logging.getLogger(__name__)

# Strong references to in-flight deliveries so they are not garbage collected mid-flight
_pending_deliveries: Set[asyncio.Task] = set()


@dataclass(frozen=True)
class NotificationEvent:
    title: str
    message: str
    type: str
    related_entity_id: Optional[UUID] = None
    related_entity_type: str = "leave"


class NotificationSink:
    """Persists notifications; role broadcasts resolve membership at delivery time."""

    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    def _build(self, user_id: UUID, event: NotificationEvent) -> Notification:
        return Notification(
            user_id=user_id,
            title=event.title,
            message=event.message,
            type=event.type,
            related_entity_id=event.related_entity_id,
            related_entity_type=event.related_entity_type,
            is_read=False,
        )

    async def notify_user(self, user_id: UUID, event: NotificationEvent) -> None:
        async with self.session_factory() as db:
            db.add(self._build(user_id, event))
            await db.commit()
        logger.info(f"Sent {event.type} notification to user {user_id}")

    async def notify_role(self, role: UserRole, event: NotificationEvent) -> None:
        async with self.session_factory() as db:
            recipients = await list_users_by_roles(db, [role])
            if not recipients:
                logger.warning(f"No {role.value} users found to notify about {event.type}")
                return
            for user in recipients:
                db.add(self._build(user.id, event))
            await db.commit()
        logger.info(f"Sent {event.type} notification to {len(recipients)} {role.value} users")


async def _deliver(delivery: Awaitable, description: str) -> None:
    try:
        await delivery
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.error(f"Failed to deliver {description}", exc_info=True)


def dispatch(delivery: Awaitable, description: str) -> asyncio.Task:
    """Schedule a delivery without waiting for it."""
    task = asyncio.create_task(_deliver(delivery, description))
    _pending_deliveries.add(task)
    task.add_done_callback(_pending_deliveries.discard)
    return task


async def drain_notifications() -> None:
    """Wait for every in-flight delivery (used on shutdown)."""
    while _pending_deliveries:
        await asyncio.gather(*list(_pending_deliveries), return_exceptions=True)


def format_date_range(leave: LeaveRequestResponse) -> str:
    if leave.start_date == leave.end_date:
        return leave.start_date.strftime("%b %d, %Y")
    return f"{leave.start_date.strftime('%b %d')} - {leave.end_date.strftime('%b %d, %Y')}"


def leave_application_event(leave: LeaveRequestResponse) -> NotificationEvent:
    return NotificationEvent(
        title="New Leave Application",
        message=(
            f"{leave.user_name} has applied for {leave.leave_type_display} from "
            f"{format_date_range(leave)} ({leave.total_days} days). Reason: {leave.reason}"
        ),
        type="leave_application",
        related_entity_id=leave.id,
    )


def leave_cancelled_event(leave: LeaveRequestResponse) -> NotificationEvent:
    return NotificationEvent(
        title="Leave Application Cancelled",
        message=(
            f"{leave.user_name} has cancelled their {leave.leave_type_display} "
            f"for {format_date_range(leave)}."
        ),
        type="leave_cancelled",
        related_entity_id=leave.id,
    )


def leave_status_event(leave: LeaveRequestResponse, comments: Optional[str] = None) -> NotificationEvent:
    """Message for the subject; wording depends on the new status."""
    date_range = format_date_range(leave)
    if leave.status == LeaveStatus.APPROVED:
        title = "Leave Application Approved"
        message = f"Your {leave.leave_type_display} application for {date_range} has been approved."
        if comments:
            message += f" Comments: {comments}"
        notification_type = "leave_approved"
    elif leave.status == LeaveStatus.REJECTED:
        title = "Leave Application Rejected"
        message = f"Your {leave.leave_type_display} application for {date_range} has been rejected."
        if comments:
            message += f" Reason: {comments}"
        notification_type = "leave_rejected"
    else:
        title = "Leave Status Updated"
        message = (
            f"Your {leave.leave_type_display} application for {date_range} "
            f"status has been updated to {leave.status_display}."
        )
        notification_type = "leave_status_updated"

    return NotificationEvent(
        title=title,
        message=message,
        type=notification_type,
        related_entity_id=leave.id,
    )
