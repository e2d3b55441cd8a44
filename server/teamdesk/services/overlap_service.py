from datetime import date
from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.models.leave_request import BLOCKING_STATUSES, LeaveRequest
from teamdesk.services.leave_store import visible


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive date ranges overlap unless one ends before the other starts."""
    return not (end_a < start_b or start_a > end_b)


async def find_overlapping_leave(
    db: AsyncSession,
    user_id: UUID,
    start_date: date,
    end_date: date,
    exclude_leave_id: Optional[UUID] = None,
) -> Optional[LeaveRequest]:
    """Return one of the user's active leaves that overlaps [start_date, end_date], if any."""
    query = select(LeaveRequest).where(
        LeaveRequest.user_id == user_id,
        visible(LeaveRequest),
        LeaveRequest.status.in_(BLOCKING_STATUSES),
        LeaveRequest.start_date <= end_date,
        LeaveRequest.end_date >= start_date,
    )
    if exclude_leave_id is not None:
        query = query.where(LeaveRequest.id != exclude_leave_id)

    result = await db.execute(query.order_by(LeaveRequest.start_date).limit(1))
    return result.scalar_one_or_none()


async def has_overlap(
    db: AsyncSession,
    user_id: UUID,
    start_date: date,
    end_date: date,
    exclude_leave_id: Optional[UUID] = None,
) -> bool:
    leave = await find_overlapping_leave(db, user_id, start_date, end_date, exclude_leave_id)
    return leave is not None
