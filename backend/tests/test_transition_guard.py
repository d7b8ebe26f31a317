"""
Tests for guarded status transitions.
"""

from datetime import timedelta

import pytest

from cowork_booking.models.booking import Booking, BookingStatus, can_transition, sources_for
from cowork_booking.services.transition_guard import (
    try_transition,
    try_transition_many,
    try_transition_where,
)

from conftest import NOW, reload


def test_transition_table():
    assert can_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)
    assert can_transition(BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)
    assert not can_transition(BookingStatus.CONFIRMED, BookingStatus.REJECTED)
    assert not can_transition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED)
    assert not can_transition(BookingStatus.EXPIRED, BookingStatus.PENDING)

    assert sources_for(BookingStatus.CANCELLED) == {BookingStatus.PENDING, BookingStatus.CONFIRMED}
    assert sources_for(BookingStatus.PENDING) == frozenset()


@pytest.mark.asyncio
async def test_first_transition_wins(db_session, make_area, make_booking):
    area = await make_area()
    booking = await make_booking(area)

    assert await try_transition(db_session, booking.id, {BookingStatus.PENDING}, BookingStatus.CONFIRMED) == 1
    await db_session.commit()
    # Competing actor still believes the booking is pending
    assert await try_transition(db_session, booking.id, {BookingStatus.PENDING}, BookingStatus.EXPIRED) == 0
    await db_session.commit()

    booking = await reload(db_session, booking.id)
    assert booking.status == BookingStatus.CONFIRMED.value


@pytest.mark.asyncio
async def test_cancel_twice_applies_once(db_session, make_area, make_booking):
    area = await make_area()
    booking = await make_booking(area, BookingStatus.CONFIRMED)
    sources = sources_for(BookingStatus.CANCELLED)

    assert await try_transition(db_session, booking.id, sources, BookingStatus.CANCELLED) == 1
    assert await try_transition(db_session, booking.id, sources, BookingStatus.CANCELLED) == 0


@pytest.mark.asyncio
async def test_illegal_transition_raises(db_session, make_area, make_booking):
    area = await make_area()
    booking = await make_booking(area, BookingStatus.CONFIRMED)

    with pytest.raises(ValueError):
        await try_transition(db_session, booking.id, {BookingStatus.CONFIRMED}, BookingStatus.REJECTED)
    with pytest.raises(ValueError):
        await try_transition(db_session, booking.id, set(), BookingStatus.CONFIRMED)

    booking = await reload(db_session, booking.id)
    assert booking.status == BookingStatus.CONFIRMED.value


@pytest.mark.asyncio
async def test_unknown_booking_applies_nothing(db_session):
    assert await try_transition(db_session, "missing", {BookingStatus.PENDING}, BookingStatus.CONFIRMED) == 0


@pytest.mark.asyncio
async def test_bulk_transition_only_moves_valid_sources(db_session, make_area, make_booking):
    area = await make_area()
    first = await make_booking(area)
    second = await make_booking(area)
    done = await make_booking(area, BookingStatus.CANCELLED)

    applied = await try_transition_many(
        db_session, [first.id, second.id, done.id, first.id], {BookingStatus.PENDING}, BookingStatus.CONFIRMED
    )
    await db_session.commit()

    assert applied == 2
    assert (await reload(db_session, first.id)).status == "confirmed"
    assert (await reload(db_session, second.id)).status == "confirmed"
    assert (await reload(db_session, done.id)).status == "cancelled"


@pytest.mark.asyncio
async def test_bulk_transition_with_no_ids(db_session):
    assert await try_transition_many(db_session, [], {BookingStatus.PENDING}, BookingStatus.CONFIRMED) == 0


@pytest.mark.asyncio
async def test_transition_where_requires_criteria(db_session):
    with pytest.raises(ValueError):
        await try_transition_where(db_session, {BookingStatus.PENDING}, BookingStatus.EXPIRED)


@pytest.mark.asyncio
async def test_transition_where(db_session, make_area, make_booking):
    area = await make_area()
    started = await make_booking(area, start_at=NOW - timedelta(minutes=5))
    upcoming = await make_booking(area, start_at=NOW + timedelta(hours=1))

    applied = await try_transition_where(
        db_session, {BookingStatus.PENDING}, BookingStatus.EXPIRED, Booking.start_at < NOW, now=NOW
    )
    await db_session.commit()

    assert applied == 1
    assert (await reload(db_session, started.id)).status == "expired"
    assert (await reload(db_session, upcoming.id)).status == "pending"
