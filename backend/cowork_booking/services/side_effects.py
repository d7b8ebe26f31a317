"""
Post-transition side effects.

By the time these run, the status change they follow has been committed.
A failure rolls back only the side effect's own writes and is logged; it
never propagates to the caller.
"""

from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.core.logging import get_logger

logger = get_logger(__name__)


async def run_side_effect(
    db: AsyncSession,
    effect: str,
    booking_id: str,
    action: Callable[[], Awaitable[object]],
) -> bool:
    try:
        await action()
        await db.commit()
        return True
    except Exception as e:
        await db.rollback()
        logger.error(
            "booking_side_effect_failed",
            effect=effect,
            booking_id=booking_id,
            error=str(e),
            exc_info=True,
        )
        return False
