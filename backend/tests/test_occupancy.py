"""
Tests for active occupancy counting over half-open windows.
"""

from datetime import timedelta

import pytest

from cowork_booking.models.booking import BookingStatus
from cowork_booking.services.occupancy import count_active_overlap

from conftest import NOW

START = NOW + timedelta(hours=2)
END = START + timedelta(hours=2)


@pytest.mark.asyncio
async def test_empty_area_counts_zero(db_session, make_area):
    area = await make_area()
    assert await count_active_overlap(db_session, area.id, START, END) == 0


@pytest.mark.asyncio
async def test_overlapping_bookings_sum_guests(db_session, make_area, make_booking):
    area = await make_area()
    await make_booking(area, BookingStatus.CONFIRMED, start_at=START, guest_count=3)
    await make_booking(area, BookingStatus.PENDING, start_at=START + timedelta(hours=1), guest_count=2)
    await make_booking(area, BookingStatus.CHECKED_IN, start_at=START - timedelta(hours=1), guest_count=1)

    assert await count_active_overlap(db_session, area.id, START, END) == 6


@pytest.mark.asyncio
async def test_adjacent_windows_do_not_overlap(db_session, make_area, make_booking):
    area = await make_area()
    # Ends exactly when the window starts
    await make_booking(area, BookingStatus.CONFIRMED, start_at=START - timedelta(hours=2), hours=2)
    # Starts exactly when the window ends
    await make_booking(area, BookingStatus.CONFIRMED, start_at=END, hours=1)

    assert await count_active_overlap(db_session, area.id, START, END) == 0


@pytest.mark.asyncio
async def test_inactive_statuses_are_ignored(db_session, make_area, make_booking):
    area = await make_area()
    for inactive in (
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
        BookingStatus.REJECTED,
        BookingStatus.COMPLETED,
        BookingStatus.CHECKED_OUT,
        BookingStatus.NO_SHOW,
    ):
        await make_booking(area, inactive, start_at=START, guest_count=4)

    assert await count_active_overlap(db_session, area.id, START, END) == 0


@pytest.mark.asyncio
async def test_other_areas_are_ignored(db_session, make_area, make_booking):
    area = await make_area()
    other = await make_area(name="Meeting Room")
    await make_booking(other, BookingStatus.CONFIRMED, start_at=START, guest_count=5)

    assert await count_active_overlap(db_session, area.id, START, END) == 0


@pytest.mark.asyncio
async def test_exclude_booking(db_session, make_area, make_booking):
    area = await make_area()
    mine = await make_booking(area, BookingStatus.PENDING, start_at=START, guest_count=2)
    await make_booking(area, BookingStatus.CONFIRMED, start_at=START, guest_count=3)

    assert await count_active_overlap(db_session, area.id, START, END) == 5
    assert await count_active_overlap(db_session, area.id, START, END, exclude_booking_id=mine.id) == 3
