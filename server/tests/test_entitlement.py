import uuid

import pytest
from datetime import date

from teamdesk.core.exceptions import NotFoundError
from teamdesk.models.leave_request import LeaveStatus, LeaveType
from teamdesk.models.user import UserRole
from teamdesk.services.entitlement_service import get_entitlement, get_used_days, remaining_days


@pytest.mark.parametrize(
    "role, leave_type, expected",
    [
        (UserRole.ADMIN, LeaveType.ANNUAL, 25),
        (UserRole.HR, LeaveType.ANNUAL, 25),
        (UserRole.MANAGER, LeaveType.ANNUAL, 23),
        (UserRole.STAFF, LeaveType.ANNUAL, 21),
        (UserRole.STAFF, LeaveType.SICK, 10),
        (UserRole.MANAGER, LeaveType.PERSONAL, 7),
        (UserRole.STAFF, LeaveType.PERSONAL, 5),
        (UserRole.ADMIN, LeaveType.STUDY, 0),
        (UserRole.STAFF, LeaveType.MATERNITY, 0),
    ],
)
def test_entitlement_table(role, leave_type, expected):
    assert get_entitlement(role, leave_type) == expected


@pytest.mark.asyncio
async def test_full_entitlement_without_history(db, staff, manager):
    assert await remaining_days(db, staff.id, LeaveType.ANNUAL, 2025) == 21
    assert await remaining_days(db, manager.id, LeaveType.ANNUAL, 2025) == 23


@pytest.mark.asyncio
async def test_only_approved_visible_leaves_of_the_year_count(db, staff, make_leave):
    await make_leave(staff, date(2025, 6, 10), date(2025, 6, 12), status=LeaveStatus.APPROVED)
    await make_leave(staff, date(2025, 7, 1), date(2025, 7, 4), status=LeaveStatus.PENDING)
    await make_leave(staff, date(2025, 8, 1), date(2025, 8, 4), status=LeaveStatus.REJECTED)
    await make_leave(staff, date(2025, 9, 1), date(2025, 9, 4), status=LeaveStatus.APPROVED, is_active=False)
    await make_leave(staff, date(2024, 12, 1), date(2024, 12, 5), status=LeaveStatus.APPROVED)
    await make_leave(staff, date(2025, 10, 1), date(2025, 10, 2), leave_type=LeaveType.SICK, status=LeaveStatus.APPROVED)

    assert await get_used_days(db, staff.id, LeaveType.ANNUAL, 2025) == 3
    assert await remaining_days(db, staff.id, LeaveType.ANNUAL, 2025) == 18
    assert await remaining_days(db, staff.id, LeaveType.ANNUAL, 2024) == 16
    assert await remaining_days(db, staff.id, LeaveType.SICK, 2025) == 8


@pytest.mark.asyncio
async def test_leave_spanning_new_year_counts_toward_start_year(db, staff, make_leave):
    await make_leave(staff, date(2025, 12, 29), date(2026, 1, 2), status=LeaveStatus.APPROVED)

    assert await remaining_days(db, staff.id, LeaveType.ANNUAL, 2025) == 16
    assert await remaining_days(db, staff.id, LeaveType.ANNUAL, 2026) == 21


@pytest.mark.asyncio
async def test_remaining_days_never_negative(db, staff, make_leave):
    await make_leave(staff, date(2025, 3, 1), date(2025, 3, 31), status=LeaveStatus.APPROVED)
    await make_leave(staff, date(2025, 5, 1), date(2025, 5, 3), leave_type=LeaveType.STUDY, status=LeaveStatus.APPROVED)

    assert await remaining_days(db, staff.id, LeaveType.ANNUAL, 2025) == 0
    assert await remaining_days(db, staff.id, LeaveType.STUDY, 2025) == 0


@pytest.mark.asyncio
async def test_unknown_user_raises_not_found(db):
    with pytest.raises(NotFoundError):
        await remaining_days(db, uuid.uuid4(), LeaveType.ANNUAL, 2025)
