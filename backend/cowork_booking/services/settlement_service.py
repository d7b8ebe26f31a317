"""
Settlement lookups and recording.

The payment integration owns the gateway protocol; this module only stores
what it reports and answers "has booking X been paid?".
"""

from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.core.logging import get_logger
from cowork_booking.models.booking import Booking
from cowork_booking.models.settlement import Settlement, SettlementStatus
from cowork_booking.schemas.payment import PaymentCaptured

logger = get_logger(__name__)


def has_successful_settlement_clause():
    """Correlated EXISTS for use inside queries over Booking."""
    return exists().where(
        Settlement.booking_id == Booking.id,
        Settlement.status == SettlementStatus.SUCCEEDED.value,
    )


def has_any_settlement_clause():
    return exists().where(Settlement.booking_id == Booking.id)


async def has_successful_settlement(db: AsyncSession, booking_id: str) -> bool:
    result = await db.execute(
        select(Settlement.id)
        .where(
            Settlement.booking_id == booking_id,
            Settlement.status == SettlementStatus.SUCCEEDED.value,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def latest_successful_charge(db: AsyncSession, booking_id: str) -> Optional[Settlement]:
    result = await db.execute(
        select(Settlement)
        .where(
            Settlement.booking_id == booking_id,
            Settlement.status == SettlementStatus.SUCCEEDED.value,
        )
        .order_by(Settlement.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def record_settlement(db: AsyncSession, capture: PaymentCaptured) -> tuple[Settlement, bool]:
    """
    Store a captured payment. Idempotent on external_reference.
    Returns (settlement, created). A reference already recorded for another
    booking is returned unchanged; callers compare booking ids.
    """
    existing = await db.execute(
        select(Settlement).where(Settlement.external_reference == capture.external_reference)
    )
    settlement = existing.scalar_one_or_none()
    if settlement is not None and settlement.booking_id != capture.booking_id:
        logger.warning(
            "settlement_reference_conflict",
            booking_id=capture.booking_id,
            recorded_booking_id=settlement.booking_id,
            external_reference=capture.external_reference,
        )
        return settlement, False
    if settlement is not None:
        logger.info(
            "settlement_already_recorded",
            booking_id=capture.booking_id,
            external_reference=capture.external_reference,
        )
        return settlement, False

    settlement = Settlement(
        booking_id=capture.booking_id,
        status=SettlementStatus.SUCCEEDED.value,
        amount_minor=capture.amount_minor,
        currency=capture.currency,
        payment_method=capture.payment_method,
        external_reference=capture.external_reference,
        is_live=capture.livemode,
    )
    # Two callbacks racing past the lookup above hit the unique constraint;
    # the loser's IntegrityError propagates and the gateway redelivers.
    db.add(settlement)
    await db.flush()

    logger.info(
        "settlement_recorded",
        booking_id=capture.booking_id,
        settlement_id=settlement.id,
        amount_minor=capture.amount_minor,
    )
    return settlement, True
