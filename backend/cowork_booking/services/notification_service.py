"""
Notification sink backed by the notifications table.

Every helper here runs after a booking transition has already been applied,
so callers treat failures as non-fatal. notify_once checks for an existing
(booking_id, type) row before inserting; that check is not atomic with the
insert, and an occasional duplicate under overlapping reconciliation runs
is accepted.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.core.config import get_settings
from cowork_booking.core.logging import get_logger
from cowork_booking.core.metrics import record_notification
from cowork_booking.models.notification import Notification, NotificationType

logger = get_logger(__name__)


def booking_href(space_id: str) -> str:
    return f"{get_settings().APP_URL}/marketplace/{space_id}"


async def notification_exists(db: AsyncSession, booking_id: str, notification_type: NotificationType) -> bool:
    result = await db.execute(
        select(Notification.id)
        .where(
            Notification.booking_id == booking_id,
            Notification.type == notification_type.value,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def notify(
    db: AsyncSession,
    recipient_id: str,
    notification_type: NotificationType,
    booking,
    title: str,
    body: str,
) -> Notification:
    """Write one notification. `booking` is any object with id/space_id/area_id."""
    notification = Notification(
        recipient_id=recipient_id,
        type=notification_type.value,
        title=title,
        body=body,
        href=booking_href(booking.space_id),
        booking_id=booking.id,
        space_id=booking.space_id,
        area_id=booking.area_id,
    )
    db.add(notification)
    await db.flush()
    record_notification(notification_type.value)
    return notification


async def notify_once(
    db: AsyncSession,
    booking,
    notification_type: NotificationType,
    messages: list[tuple[Optional[str], str, str]],
) -> bool:
    """
    Send `messages` (recipient, title, body) unless a `notification_type`
    notification already exists for this booking. Recipients that are None
    are skipped. Returns True when anything was written.
    """
    if await notification_exists(db, booking.id, notification_type):
        return False

    created = False
    for recipient_id, title, body in messages:
        if not recipient_id:
            continue
        await notify(db, recipient_id, notification_type, booking, title, body)
        created = True

    if created:
        logger.info(
            "booking_notifications_sent",
            booking_id=booking.id,
            type=notification_type.value,
        )
    return created


async def send_confirmation_notifications(db: AsyncSession, booking) -> bool:
    """Customer gets booking_confirmed, the owner gets booking_received."""
    if await notification_exists(db, booking.id, NotificationType.BOOKING_CONFIRMED):
        return False

    await notify(
        db,
        booking.customer_id,
        NotificationType.BOOKING_CONFIRMED,
        booking,
        "Booking confirmed",
        f"{booking.area_name} at {booking.space_name} is confirmed.",
    )
    if booking.partner_id:
        await notify(
            db,
            booking.partner_id,
            NotificationType.BOOKING_RECEIVED,
            booking,
            "New booking received",
            f"{booking.area_name} in {booking.space_name} was just booked.",
        )
    logger.info("booking_confirmation_notified", booking_id=booking.id)
    return True


async def send_pending_review_notifications(db: AsyncSession, booking, reason: str = "approval") -> bool:
    if reason == "capacity":
        customer_body = f"{booking.area_name} at {booking.space_name} needs host review due to capacity."
        partner_body = f"{booking.area_name} in {booking.space_name} exceeds capacity. Approve or refund."
    else:
        customer_body = f"{booking.area_name} at {booking.space_name} is awaiting host approval."
        partner_body = f"{booking.area_name} in {booking.space_name} is pending your review."

    return await notify_once(
        db,
        booking,
        NotificationType.PENDING_REVIEW,
        [
            (booking.customer_id, "Booking pending approval", customer_body),
            (booking.partner_id, "Booking needs approval", partner_body),
        ],
    )


async def send_capacity_warning(db: AsyncSession, booking, horizon_minutes: int) -> bool:
    return await notify_once(
        db,
        booking,
        NotificationType.CAPACITY_WARNING,
        [
            (
                booking.customer_id,
                "Booking capacity warning",
                f"{booking.area_name} at {booking.space_name} may be over capacity. Please contact the host.",
            ),
            (
                booking.partner_id,
                "Capacity conflict to review",
                f"{booking.area_name} in {booking.space_name} exceeds capacity within "
                f"{horizon_minutes} minutes. Approve, adjust, or refund.",
            ),
        ],
    )
