import pytest
from datetime import date

from teamdesk.models.leave_request import LeaveStatus, LeaveType, count_leave_days
from teamdesk.services.overlap_service import find_overlapping_leave, has_overlap, ranges_overlap


@pytest.mark.parametrize(
    "start, end, expected",
    [
        (date(2025, 6, 10), date(2025, 6, 10), 1),
        (date(2025, 6, 10), date(2025, 6, 12), 3),
        (date(2025, 2, 27), date(2025, 3, 2), 4),
        (date(2024, 12, 30), date(2025, 1, 2), 4),
    ],
)
def test_count_leave_days_is_inclusive(start, end, expected):
    assert count_leave_days(start, end) == expected
    assert count_leave_days(start, end) == (end - start).days + 1


@pytest.mark.parametrize(
    "first, second, expected",
    [
        ((date(2025, 6, 10), date(2025, 6, 12)), (date(2025, 6, 13), date(2025, 6, 15)), False),
        ((date(2025, 6, 10), date(2025, 6, 12)), (date(2025, 6, 12), date(2025, 6, 15)), True),
        ((date(2025, 6, 10), date(2025, 6, 12)), (date(2025, 6, 5), date(2025, 6, 10)), True),
        ((date(2025, 6, 10), date(2025, 6, 12)), (date(2025, 6, 11), date(2025, 6, 11)), True),
        ((date(2025, 6, 10), date(2025, 6, 12)), (date(2025, 6, 1), date(2025, 6, 30)), True),
        ((date(2025, 6, 10), date(2025, 6, 12)), (date(2025, 6, 1), date(2025, 6, 9)), False),
    ],
)
def test_ranges_overlap(first, second, expected):
    assert ranges_overlap(*first, *second) is expected
    assert ranges_overlap(*second, *first) is expected


@pytest.mark.asyncio
async def test_has_overlap_detects_pending_leave(db, staff, make_leave):
    await make_leave(staff, date(2025, 6, 10), date(2025, 6, 12))

    assert await has_overlap(db, staff.id, date(2025, 6, 11), date(2025, 6, 13))
    assert await has_overlap(db, staff.id, date(2025, 6, 12), date(2025, 6, 12))
    assert not await has_overlap(db, staff.id, date(2025, 6, 13), date(2025, 6, 20))


@pytest.mark.asyncio
async def test_has_overlap_ignores_closed_and_deleted_leaves(db, staff, make_leave):
    await make_leave(staff, date(2025, 6, 10), date(2025, 6, 12), status=LeaveStatus.REJECTED)
    await make_leave(staff, date(2025, 6, 10), date(2025, 6, 12), status=LeaveStatus.CANCELLED)
    await make_leave(staff, date(2025, 6, 10), date(2025, 6, 12), is_active=False)

    assert not await has_overlap(db, staff.id, date(2025, 6, 10), date(2025, 6, 12))


@pytest.mark.asyncio
async def test_has_overlap_counts_approved_leave(db, staff, make_leave):
    await make_leave(staff, date(2025, 7, 1), date(2025, 7, 5), status=LeaveStatus.APPROVED)

    assert await has_overlap(db, staff.id, date(2025, 7, 5), date(2025, 7, 8))


@pytest.mark.asyncio
async def test_has_overlap_is_per_user(db, staff, other_staff, make_leave):
    await make_leave(other_staff, date(2025, 6, 10), date(2025, 6, 12), leave_type=LeaveType.SICK)

    assert not await has_overlap(db, staff.id, date(2025, 6, 10), date(2025, 6, 12))


@pytest.mark.asyncio
async def test_has_overlap_excludes_given_leave(db, staff, make_leave):
    leave = await make_leave(staff, date(2025, 6, 10), date(2025, 6, 12))

    assert not await has_overlap(db, staff.id, date(2025, 6, 9), date(2025, 6, 11), exclude_leave_id=leave.id)
    found = await find_overlapping_leave(db, staff.id, date(2025, 6, 9), date(2025, 6, 11))
    assert found.id == leave.id
