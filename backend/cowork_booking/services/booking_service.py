"""
Booking service: the synchronous request path.

ADMISSION FLOW
==============

  1. Validate the request (window length, guest count, area, published space)
  2. Count guests already committed to overlapping windows in the area
  3. Ask the admission policy: auto_confirmed, pending_review or reject_full
  4. reject_full -> 409, nothing stored
     otherwise  -> insert with the decided status and a capacity snapshot

Steps 2 and 4 are not serialized. Two requests for the last seats can both
be admitted; the policy only confirms when the count leaves room, the
review queue catches the rest, and the reconciliation job re-checks pending
bookings every cycle. A per-area lock or SERIALIZABLE transaction would
close the gap at the cost of throughput and deadlock handling.

Every status change after creation goes through the transition guard.
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.core.config import get_settings
from cowork_booking.core.logging import get_logger
from cowork_booking.core.metrics import record_admission, refund_failures
from cowork_booking.core.security import ROLE_ADMIN, ROLE_PARTNER, Principal
from cowork_booking.db.base import utcnow
from cowork_booking.models.booking import (
    CANCELLABLE_STATUSES,
    Booking,
    BookingStatus,
    sources_for,
)
from cowork_booking.schemas.booking import BookingCreate
from cowork_booking.services.admission_policy import AdmissionDecision, DecisionKind, decide, is_over_capacity
from cowork_booking.services.area_service import get_area_config
from cowork_booking.services.interfaces.refund import RefundGateway
from cowork_booking.services.notification_service import (
    send_confirmation_notifications,
    send_pending_review_notifications,
)
from cowork_booking.services.occupancy import count_active_overlap
from cowork_booking.services.settlement_service import has_successful_settlement_clause, latest_successful_charge
from cowork_booking.services.side_effects import run_side_effect
from cowork_booking.services.transition_guard import try_transition, try_transition_many

logger = get_logger(__name__)

PRICE_MINOR_FACTOR = 100


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _booking_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found.")


def _validate_request(data: BookingCreate, now: datetime) -> None:
    settings = get_settings()
    if not settings.MIN_BOOKING_HOURS <= data.booking_hours <= settings.MAX_BOOKING_HOURS:
        raise _bad_request(
            f"booking_hours must be between {settings.MIN_BOOKING_HOURS} and {settings.MAX_BOOKING_HOURS}."
        )
    if data.guest_count > settings.MAX_GUEST_COUNT:
        raise _bad_request(f"guest_count must not exceed {settings.MAX_GUEST_COUNT}.")
    if data.start_at < now:
        raise _bad_request("start_at must not be in the past.")


async def create_booking(
    db: AsyncSession,
    customer_id: str,
    data: BookingCreate,
    now: Optional[datetime] = None,
) -> tuple[Booking, AdmissionDecision]:
    """Admit or reject a booking request. Raises 409 when the area is full."""
    now = now or utcnow()
    _validate_request(data, now)

    area = await get_area_config(db, data.area_id)
    if area is None or area.space_id != data.space_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Area not found for this space.",
        )
    if not area.is_published:
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail="This space is no longer available for booking.",
        )

    window_end = data.start_at + timedelta(hours=data.booking_hours)
    active_count = await count_active_overlap(db, area.area_id, data.start_at, window_end)
    decision = decide(
        area.automatic_booking_enabled,
        area.request_approval_at_capacity,
        area.max_capacity,
        active_count,
        data.guest_count,
    )
    record_admission(decision.kind.value)

    if decision.rejected:
        logger.warning(
            "booking_rejected_full",
            area_id=area.area_id,
            requested=data.guest_count,
            active=active_count,
            max_capacity=area.max_capacity,
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This area is fully booked for the selected time.",
        )

    booking = Booking(
        space_id=area.space_id,
        space_name=area.space_name,
        area_id=area.area_id,
        area_name=area.area_name,
        customer_id=customer_id,
        partner_id=area.partner_id,
        start_at=data.start_at,
        expires_at=window_end,
        booking_hours=data.booking_hours,
        guest_count=data.guest_count,
        area_max_capacity=area.max_capacity,
        price_minor=round(data.price * PRICE_MINOR_FACTOR) if data.price is not None else None,
        currency=get_settings().DEFAULT_CURRENCY,
        status=decision.status.value,
        created_at=now,
        updated_at=now,
    )
    db.add(booking)
    await db.commit()

    logger.info(
        "booking_created",
        booking_id=booking.id,
        area_id=area.area_id,
        guests=data.guest_count,
        active=active_count,
        decision=decision.kind.value,
    )

    if decision.kind is DecisionKind.AUTO_CONFIRMED:
        await run_side_effect(
            db, "confirmation_notifications", booking.id,
            lambda: send_confirmation_notifications(db, booking),
        )
    else:
        reason = (
            "capacity"
            if is_over_capacity(area.max_capacity, active_count, data.guest_count)
            else "approval"
        )
        await run_side_effect(
            db, "pending_review_notifications", booking.id,
            lambda: send_pending_review_notifications(db, booking, reason),
        )

    await db.refresh(booking)
    return booking, decision


async def _get_booking(db: AsyncSession, booking_id: str) -> Optional[Booking]:
    return await db.get(Booking, booking_id, populate_existing=True)


async def _request_refund(db: AsyncSession, booking: Booking, gateway: RefundGateway) -> bool:
    charge = await latest_successful_charge(db, booking.id)
    if charge is None or not charge.external_reference:
        return False

    amount_minor = booking.price_minor if booking.price_minor is not None else charge.amount_minor
    try:
        await gateway.request_refund(
            payment_id=charge.external_reference,
            amount_minor=amount_minor,
            reason="requested_by_customer",
            metadata={"booking_id": booking.id, "customer_id": booking.customer_id},
        )
    except Exception as e:
        refund_failures.inc()
        logger.error(
            "booking_refund_failed",
            booking_id=booking.id,
            payment_id=charge.external_reference,
            error=str(e),
            exc_info=True,
        )
        return False
    return True


async def cancel_booking(
    db: AsyncSession,
    booking_id: str,
    customer_id: str,
    refund_gateway: RefundGateway,
    now: Optional[datetime] = None,
) -> tuple[Booking, bool]:
    """
    Cancel a customer's own booking, then refund any captured payment.
    Returns (booking, refund_requested). A refund failure leaves the
    booking cancelled.
    """
    booking = await _get_booking(db, booking_id)
    if booking is None or booking.customer_id != customer_id:
        raise _booking_not_found()

    applied = await try_transition(db, booking.id, CANCELLABLE_STATUSES, BookingStatus.CANCELLED, now)
    if not applied:
        await db.refresh(booking)
        raise _bad_request(
            f"This booking cannot be cancelled at this time (status: {booking.status})."
        )
    await db.commit()

    logger.info("booking_cancelled", booking_id=booking.id, customer_id=customer_id)

    refund_requested = await _request_refund(db, booking, refund_gateway)
    await db.refresh(booking)
    return booking, refund_requested


def _actor_scope(principal: Principal) -> list:
    if principal.role == ROLE_ADMIN:
        return []
    return [Booking.partner_id == principal.user_id]


def _sources_or_400(target: BookingStatus) -> frozenset[BookingStatus]:
    sources = sources_for(target)
    if not sources:
        raise _bad_request(f"Bookings cannot be moved to '{target.value}'.")
    return sources


async def update_booking_status(
    db: AsyncSession,
    booking_id: str,
    principal: Principal,
    target: BookingStatus,
    now: Optional[datetime] = None,
) -> Booking:
    """Owner or admin moves one booking along the transition table."""
    sources = _sources_or_400(target)

    booking = await _get_booking(db, booking_id)
    if booking is None or (not principal.is_admin and booking.partner_id != principal.user_id):
        raise _booking_not_found()

    applied = await try_transition(db, booking.id, sources, target, now)
    if not applied:
        await db.refresh(booking)
        raise _bad_request(
            f"Booking cannot move from '{booking.status}' to '{target.value}'."
        )
    await db.commit()

    logger.info("booking_status_updated", booking_id=booking.id, status=target.value, actor=principal.user_id)

    if target is BookingStatus.CONFIRMED:
        await run_side_effect(
            db, "confirmation_notifications", booking.id,
            lambda: send_confirmation_notifications(db, booking),
        )

    await db.refresh(booking)
    return booking


async def bulk_update_status(
    db: AsyncSession,
    booking_ids: list[str],
    principal: Principal,
    target: BookingStatus,
    now: Optional[datetime] = None,
) -> tuple[int, list[Booking]]:
    """Same as update_booking_status for many ids in one guarded statement."""
    sources = _sources_or_400(target)
    scope = _actor_scope(principal)

    visible = await db.execute(select(Booking.id).where(Booking.id.in_(booking_ids), *scope))
    target_ids = list(visible.scalars().all())
    if not target_ids:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No bookings found to update.",
        )

    applied = await try_transition_many(db, target_ids, sources, target, *scope, now=now)
    await db.commit()

    result = await db.execute(
        select(Booking)
        .where(Booking.id.in_(target_ids))
        .order_by(Booking.created_at.desc())
        .execution_options(populate_existing=True)
    )
    bookings = list(result.scalars().all())

    if target is BookingStatus.CONFIRMED and applied:
        for booking in bookings:
            if booking.status == BookingStatus.CONFIRMED.value:
                await run_side_effect(
                    db, "confirmation_notifications", booking.id,
                    lambda booking=booking: send_confirmation_notifications(db, booking),
                )
        for booking in bookings:
            await db.refresh(booking)

    return applied, bookings


async def list_bookings(db: AsyncSession, principal: Principal) -> list[Booking]:
    """Customers see their bookings, partners bookings on their spaces, admins all."""
    query = select(Booking)
    if principal.role == ROLE_PARTNER:
        query = query.where(Booking.partner_id == principal.user_id)
    elif principal.role != ROLE_ADMIN:
        query = query.where(Booking.customer_id == principal.user_id)

    result = await db.execute(query.order_by(Booking.created_at.desc()))
    return list(result.scalars().all())


async def list_stuck_bookings(
    db: AsyncSession,
    principal: Principal,
    now: Optional[datetime] = None,
) -> list[Booking]:
    """Paid bookings still pending after the auto-confirm threshold. Admins see every space."""
    settings = get_settings()
    now = now or utcnow()
    cutoff = now - timedelta(minutes=settings.PAID_PENDING_STALE_MINUTES)

    result = await db.execute(
        select(Booking)
        .where(
            *_actor_scope(principal),
            Booking.status == BookingStatus.PENDING.value,
            Booking.created_at < cutoff,
            has_successful_settlement_clause(),
        )
        .order_by(Booking.created_at.desc())
        .limit(settings.STUCK_BOOKINGS_LIMIT)
    )
    return list(result.scalars().all())
