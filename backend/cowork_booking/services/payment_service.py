"""
Payment capture intake.

Called by the payment integration once a checkout is paid. The settlement
is stored first; the booking is then re-admitted against current occupancy
and its capacity snapshot. Over capacity or on manual-approval areas it
stays pending and the host is asked to review.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.core.logging import get_logger
from cowork_booking.db.base import utcnow
from cowork_booking.models.booking import Booking, BookingStatus
from cowork_booking.schemas.payment import PaymentCaptured
from cowork_booking.services.admission_policy import is_over_capacity
from cowork_booking.services.area_service import get_area_config
from cowork_booking.services.notification_service import (
    send_confirmation_notifications,
    send_pending_review_notifications,
)
from cowork_booking.services.occupancy import count_active_overlap
from cowork_booking.services.settlement_service import record_settlement
from cowork_booking.services.side_effects import run_side_effect
from cowork_booking.services.transition_guard import try_transition

logger = get_logger(__name__)

OUTCOME_UNKNOWN_BOOKING = "unknown_booking"
OUTCOME_NO_CHANGE = "no_change"
OUTCOME_PENDING_REVIEW = "pending_review"
OUTCOME_CONFIRMED = "auto_confirmed"
OUTCOME_REFERENCE_CONFLICT = "reference_conflict"


async def apply_payment_capture(
    db: AsyncSession,
    capture: PaymentCaptured,
    now: Optional[datetime] = None,
) -> tuple[Optional[Booking], str]:
    now = now or utcnow()

    booking = await db.get(Booking, capture.booking_id, populate_existing=True)
    if booking is None:
        logger.warning("payment_capture_unknown_booking", booking_id=capture.booking_id)
        return None, OUTCOME_UNKNOWN_BOOKING

    settlement, _ = await record_settlement(db, capture)
    await db.commit()

    # The payment reference already pays for another booking
    if settlement.booking_id != booking.id:
        return booking, OUTCOME_REFERENCE_CONFLICT

    if booking.status != BookingStatus.PENDING.value:
        return booking, OUTCOME_NO_CHANGE

    area = await get_area_config(db, booking.area_id)
    if area is not None and not area.automatic_booking_enabled:
        await run_side_effect(
            db, "pending_review_notifications", booking.id,
            lambda: send_pending_review_notifications(db, booking, "approval"),
        )
        await db.refresh(booking)
        return booking, OUTCOME_PENDING_REVIEW

    active_count = await count_active_overlap(
        db, booking.area_id, booking.start_at, booking.expires_at, exclude_booking_id=booking.id
    )
    if is_over_capacity(booking.area_max_capacity, active_count, booking.guest_count):
        logger.info(
            "payment_capture_over_capacity",
            booking_id=booking.id,
            active=active_count,
            max_capacity=booking.area_max_capacity,
        )
        await run_side_effect(
            db, "pending_review_notifications", booking.id,
            lambda: send_pending_review_notifications(db, booking, "capacity"),
        )
        await db.refresh(booking)
        return booking, OUTCOME_PENDING_REVIEW

    applied = await try_transition(db, booking.id, {BookingStatus.PENDING}, BookingStatus.CONFIRMED, now)
    if not applied:
        await db.refresh(booking)
        return booking, OUTCOME_NO_CHANGE
    await db.commit()

    await run_side_effect(
        db, "confirmation_notifications", booking.id,
        lambda: send_confirmation_notifications(db, booking),
    )
    await db.refresh(booking)
    return booking, OUTCOME_CONFIRMED
