"""
Transition guard: the only writer of Booking.status.

CONCURRENCY STRATEGY: Conditional UPDATE (compare-and-swap on status)
=====================================================================

Problem:
  A customer cancels while the reconciliation job confirms the same
  booking. Read-then-write lets both succeed and the last write wins
  silently.

Solution:
  UPDATE bookings SET status = :to
  WHERE id = :id AND status IN (:from_set)

  The precondition and the write are one statement, so exactly one actor
  wins. rowcount tells each caller whether it was the winner:
  - 1: applied; the caller may run side effects (notifications, refunds)
  - 0: the booking already moved on; report the current state, do not retry

  No version column and no row locks are involved; the status itself is
  the version. Bulk variants apply the same predicate to many rows in one
  statement.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.core.logging import get_logger
from cowork_booking.core.metrics import record_transition
from cowork_booking.db.base import utcnow
from cowork_booking.models.booking import Booking, BookingStatus, can_transition

logger = get_logger(__name__)


def _validated_sources(from_statuses: Iterable[BookingStatus], to_status: BookingStatus) -> list[str]:
    sources = [BookingStatus(s) for s in from_statuses]
    if not sources:
        raise ValueError("from_statuses must not be empty")
    illegal = [s.value for s in sources if not can_transition(s, to_status)]
    if illegal:
        raise ValueError(f"Illegal transition {illegal} -> {to_status.value}")
    return sorted(s.value for s in sources)


async def _apply(
    db: AsyncSession,
    to_status: BookingStatus,
    sources: list[str],
    criteria: list,
    now: Optional[datetime],
) -> int:
    stmt = (
        update(Booking)
        .where(Booking.status.in_(sources), *criteria)
        .values(status=to_status.value, updated_at=now or utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount or 0


async def try_transition(
    db: AsyncSession,
    booking_id: str,
    from_statuses: Iterable[BookingStatus],
    to_status: BookingStatus,
    now: Optional[datetime] = None,
) -> int:
    """Move one booking to `to_status` if it is still in `from_statuses`. Returns 0 or 1."""
    sources = _validated_sources(from_statuses, to_status)
    applied = await _apply(db, to_status, sources, [Booking.id == booking_id], now)

    record_transition(to_status.value, applied)
    if applied:
        logger.info("booking_transition_applied", booking_id=booking_id, to_status=to_status.value)
    else:
        logger.info(
            "booking_transition_lost",
            booking_id=booking_id,
            to_status=to_status.value,
            expected=sources,
        )
    return applied


async def try_transition_many(
    db: AsyncSession,
    booking_ids: Iterable[str],
    from_statuses: Iterable[BookingStatus],
    to_status: BookingStatus,
    *criteria,
    now: Optional[datetime] = None,
) -> int:
    """Bulk variant over explicit ids. Extra criteria narrow the set further."""
    ids = list(dict.fromkeys(booking_ids))
    if not ids:
        return 0
    sources = _validated_sources(from_statuses, to_status)
    applied = await _apply(db, to_status, sources, [Booking.id.in_(ids), *criteria], now)

    record_transition(to_status.value, applied, requested=len(ids))
    logger.info(
        "booking_bulk_transition",
        to_status=to_status.value,
        requested=len(ids),
        applied=applied,
    )
    return applied


async def try_transition_where(
    db: AsyncSession,
    from_statuses: Iterable[BookingStatus],
    to_status: BookingStatus,
    *criteria,
    now: Optional[datetime] = None,
) -> int:
    """Bulk variant over every booking matching `criteria`."""
    if not criteria:
        raise ValueError("try_transition_where requires at least one criterion")
    sources = _validated_sources(from_statuses, to_status)
    applied = await _apply(db, to_status, sources, list(criteria), now)

    record_transition(to_status.value, applied, requested=applied)
    if applied:
        logger.info("booking_bulk_transition", to_status=to_status.value, applied=applied)
    return applied
