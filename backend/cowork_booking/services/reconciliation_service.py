"""
Reconciliation job for time-dependent booking states.

Invoked by an external scheduler (see the internal cron route); it never
schedules itself. One cycle runs three passes against a single `now`:

  1. auto-confirm   pending, older than PAID_PENDING_STALE_MINUTES, paid,
                    and still fitting the area's capacity snapshot
  2. capacity warn  pending, with any settlement, starting within the horizon,
                    over capacity -> notify customer and owner (no status change)
  3. expire         pending and already started, or unpaid and older than
                    UNPAID_PENDING_STALE_MINUTES -> expired (one bulk UPDATE)

Idempotence and overlap:
  Every status change goes through the transition guard, and each unit of
  work commits on its own. Re-running a cycle, or running two at once,
  cannot apply a transition twice: the second guard sees the new status
  and returns 0. Pass 1 and pass 3 can race on a paid booking whose window
  has just started; whichever guarded UPDATE lands first wins.

Failures:
  A failing candidate in pass 1 or 2 is rolled back, logged and counted in
  `failed`; the loop moves on and the booking is picked up next cycle.
  Candidates are read as plain rows so a rollback never leaves expired ORM
  state behind.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.core.config import Settings, get_settings
from cowork_booking.core.logging import get_logger
from cowork_booking.core.metrics import reconcile_runs, record_reconcile
from cowork_booking.db.base import utcnow
from cowork_booking.models.booking import Booking, BookingStatus
from cowork_booking.services.admission_policy import DecisionKind, decide, is_over_capacity
from cowork_booking.services.notification_service import send_capacity_warning, send_confirmation_notifications
from cowork_booking.services.occupancy import count_active_overlap
from cowork_booking.services.settlement_service import has_any_settlement_clause, has_successful_settlement_clause
from cowork_booking.services.side_effects import run_side_effect
from cowork_booking.services.transition_guard import try_transition, try_transition_where

logger = get_logger(__name__)

CANDIDATE_COLUMNS = (
    Booking.id,
    Booking.space_id,
    Booking.space_name,
    Booking.area_id,
    Booking.area_name,
    Booking.customer_id,
    Booking.partner_id,
    Booking.start_at,
    Booking.expires_at,
    Booking.guest_count,
    Booking.area_max_capacity,
    Booking.created_at,
)

PENDING = BookingStatus.PENDING


async def _candidate_batches(db: AsyncSession, criteria: list, batch_size: int) -> AsyncIterator[list]:
    """
    Yield pending candidates in (created_at, id) order, one batch at a time,
    until none are left. Keyset paging: rows left pending in an earlier batch
    never crowd out later ones.
    """
    last_key = None
    while True:
        query = select(*CANDIDATE_COLUMNS).where(Booking.status == PENDING.value, *criteria)
        if last_key is not None:
            last_created, last_id = last_key
            query = query.where(
                or_(
                    Booking.created_at > last_created,
                    and_(Booking.created_at == last_created, Booking.id > last_id),
                )
            )
        rows = (
            await db.execute(query.order_by(Booking.created_at, Booking.id).limit(batch_size))
        ).all()
        if not rows:
            return
        yield rows
        if len(rows) < batch_size:
            return
        last_key = (rows[-1].created_at, rows[-1].id)


@dataclass
class ReconciliationResult:
    auto_confirmed: int = 0
    expired: int = 0
    capacity_warnings: int = 0
    failed: int = 0
    checked_paid_pending: int = 0


async def _auto_confirm_candidate(db: AsyncSession, row, now: datetime, result: ReconciliationResult) -> None:
    try:
        active_count = await count_active_overlap(
            db, row.area_id, row.start_at, row.expires_at, exclude_booking_id=row.id
        )
        # Paid bookings are held for review rather than rejected
        decision = decide(True, True, row.area_max_capacity, active_count, row.guest_count)
        if decision.kind is not DecisionKind.AUTO_CONFIRMED:
            record_reconcile("auto_confirm", "skipped")
            logger.info(
                "reconcile_left_pending",
                booking_id=row.id,
                active=active_count,
                max_capacity=row.area_max_capacity,
            )
            return

        applied = await try_transition(db, row.id, {PENDING}, BookingStatus.CONFIRMED, now)
        await db.commit()
    except Exception as e:
        await db.rollback()
        result.failed += 1
        record_reconcile("auto_confirm", "failed")
        logger.error("reconcile_item_failed", pass_name="auto_confirm", booking_id=row.id, error=str(e), exc_info=True)
        return

    if not applied:
        record_reconcile("auto_confirm", "lost")
        return

    result.auto_confirmed += 1
    record_reconcile("auto_confirm", "applied")
    logger.info("booking_auto_confirmed", booking_id=row.id)
    await run_side_effect(
        db, "confirmation_notifications", row.id,
        lambda: send_confirmation_notifications(db, row),
    )


async def _auto_confirm_paid_pending(
    db: AsyncSession, now: datetime, settings: Settings, result: ReconciliationResult
) -> None:
    cutoff = now - timedelta(minutes=settings.PAID_PENDING_STALE_MINUTES)
    criteria = [Booking.created_at < cutoff, has_successful_settlement_clause()]

    async for rows in _candidate_batches(db, criteria, settings.RECONCILE_BATCH_SIZE):
        result.checked_paid_pending += len(rows)
        for row in rows:
            await _auto_confirm_candidate(db, row, now, result)


async def _warn_candidate(db: AsyncSession, row, settings: Settings, result: ReconciliationResult) -> None:
    try:
        active_count = await count_active_overlap(
            db, row.area_id, row.start_at, row.expires_at, exclude_booking_id=row.id
        )
        if not is_over_capacity(row.area_max_capacity, active_count, row.guest_count):
            return

        created = await send_capacity_warning(db, row, settings.CAPACITY_WARNING_HORIZON_MINUTES)
        await db.commit()
    except Exception as e:
        await db.rollback()
        result.failed += 1
        record_reconcile("capacity_warning", "failed")
        logger.error("reconcile_item_failed", pass_name="capacity_warning", booking_id=row.id, error=str(e), exc_info=True)
        return

    if created:
        result.capacity_warnings += 1
        record_reconcile("capacity_warning", "applied")
        logger.warning(
            "booking_capacity_warning",
            booking_id=row.id,
            active=active_count,
            max_capacity=row.area_max_capacity,
        )


async def _warn_near_start_over_capacity(
    db: AsyncSession, now: datetime, settings: Settings, result: ReconciliationResult
) -> None:
    horizon = now + timedelta(minutes=settings.CAPACITY_WARNING_HORIZON_MINUTES)
    # Any capture attempt counts here, pending or failed ones included
    criteria = [
        Booking.start_at >= now,
        Booking.start_at <= horizon,
        Booking.area_max_capacity.is_not(None),
        has_any_settlement_clause(),
    ]

    async for rows in _candidate_batches(db, criteria, settings.RECONCILE_BATCH_SIZE):
        for row in rows:
            await _warn_candidate(db, row, settings, result)


async def _expire_stale_pending(
    db: AsyncSession, now: datetime, settings: Settings, result: ReconciliationResult
) -> None:
    stale_cutoff = now - timedelta(minutes=settings.UNPAID_PENDING_STALE_MINUTES)
    try:
        expired = await try_transition_where(
            db,
            {PENDING},
            BookingStatus.EXPIRED,
            or_(
                Booking.start_at < now,
                and_(Booking.created_at < stale_cutoff, ~has_any_settlement_clause()),
            ),
            now=now,
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        result.failed += 1
        record_reconcile("expire", "failed")
        logger.error("reconcile_pass_failed", pass_name="expire", error=str(e), exc_info=True)
        return

    result.expired += expired
    record_reconcile("expire", "applied", expired)


async def reconcile(
    db: AsyncSession,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> ReconciliationResult:
    """Run one reconciliation cycle. Safe to call repeatedly and concurrently."""
    now = now or utcnow()
    settings = settings or get_settings()
    result = ReconciliationResult()

    with structlog.contextvars.bound_contextvars(reconcile_run=uuid.uuid4().hex[:8]):
        logger.info("reconcile_started", now=now.isoformat())
        reconcile_runs.inc()

        await _auto_confirm_paid_pending(db, now, settings, result)
        await _warn_near_start_over_capacity(db, now, settings, result)
        await _expire_stale_pending(db, now, settings, result)

        logger.info(
            "reconcile_finished",
            auto_confirmed=result.auto_confirmed,
            expired=result.expired,
            capacity_warnings=result.capacity_warnings,
            failed=result.failed,
            checked_paid_pending=result.checked_paid_pending,
        )
    return result
