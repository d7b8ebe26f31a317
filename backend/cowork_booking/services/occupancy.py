"""
Occupancy counting for an area over a time window.

Two half-open windows [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1.
Only bookings in ACTIVE_OCCUPANCY_STATUSES consume capacity; their
guest_count is summed.

This is a plain read with no locking. Admission decisions built on it are
optimistic: two requests can both see room for the last seats. The
reconciliation job and the review queue absorb that window.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.models.booking import ACTIVE_OCCUPANCY_STATUSES, Booking

ACTIVE_STATUS_VALUES = sorted(s.value for s in ACTIVE_OCCUPANCY_STATUSES)


def overlap_criteria(window_start: datetime, window_end: datetime) -> list:
    return [Booking.start_at < window_end, Booking.expires_at > window_start]


async def count_active_overlap(
    db: AsyncSession,
    area_id: str,
    window_start: datetime,
    window_end: datetime,
    exclude_booking_id: Optional[str] = None,
) -> int:
    """Sum guest_count of active bookings in `area_id` overlapping the window."""
    query = select(func.coalesce(func.sum(Booking.guest_count), 0)).where(
        Booking.area_id == area_id,
        Booking.status.in_(ACTIVE_STATUS_VALUES),
        *overlap_criteria(window_start, window_end),
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)

    total = (await db.execute(query)).scalar_one()
    return int(total or 0)
