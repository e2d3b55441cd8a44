from datetime import date
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from teamdesk.models.user import UserRole
from teamdesk.services.leave_store import visible
from teamdesk.services.user_directory import get_user

# Days per year by leave type and role; types not listed carry no entitlement
LEAVE_ENTITLEMENTS = {
    LeaveType.ANNUAL: {
        UserRole.ADMIN: 25,
        UserRole.HR: 25,
        UserRole.MANAGER: 23,
        UserRole.STAFF: 21,
    },
    LeaveType.SICK: {
        UserRole.ADMIN: 10,
        UserRole.HR: 10,
        UserRole.MANAGER: 10,
        UserRole.STAFF: 10,
    },
    LeaveType.PERSONAL: {
        UserRole.ADMIN: 7,
        UserRole.HR: 7,
        UserRole.MANAGER: 7,
        UserRole.STAFF: 5,
    },
}


def get_entitlement(role: UserRole, leave_type: LeaveType) -> int:
    return LEAVE_ENTITLEMENTS.get(leave_type, {}).get(role, 0)


async def get_used_days(
    db: AsyncSession,
    user_id: UUID,
    leave_type: LeaveType,
    year: int,
) -> int:
    """Sum of approved, visible days of one type whose start date falls in the year."""
    result = await db.execute(
        select(func.coalesce(func.sum(LeaveRequest.total_days), 0)).where(
            LeaveRequest.user_id == user_id,
            LeaveRequest.leave_type == leave_type,
            LeaveRequest.status == LeaveStatus.APPROVED,
            visible(LeaveRequest),
            LeaveRequest.start_date >= date(year, 1, 1),
            LeaveRequest.start_date <= date(year, 12, 31),
        )
    )
    return int(result.scalar() or 0)


async def remaining_days(
    db: AsyncSession,
    user_id: UUID,
    leave_type: LeaveType,
    year: int,
) -> int:
    """Remaining allowance for the year, never below zero."""
    user = await get_user(db, user_id)
    used = await get_used_days(db, user_id, leave_type, year)
    return max(0, get_entitlement(user.role, leave_type) - used)
