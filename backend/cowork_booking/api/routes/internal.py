"""
Internal endpoints for the scheduler and the payment integration.

Both are protected by CRON_SECRET (header `x-cron-secret`) when it is set.
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.core.config import get_settings
from cowork_booking.db.session import get_db
from cowork_booking.schemas.payment import PaymentCaptured, PaymentCaptureResponse
from cowork_booking.schemas.reconciliation import ReconciliationChecked, ReconciliationResponse
from cowork_booking.services.payment_service import apply_payment_capture
from cowork_booking.services.reconciliation_service import reconcile

router = APIRouter(prefix="/internal", tags=["Internal"])


async def verify_cron_secret(x_cron_secret: Optional[str] = Header(default=None)) -> None:
    expected = get_settings().CRON_SECRET
    if not expected:
        return
    if x_cron_secret is None or not secrets.compare_digest(x_cron_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


@router.api_route(
    "/cron/bookings",
    methods=["GET", "POST"],
    response_model=ReconciliationResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def reconcile_bookings_endpoint(db: AsyncSession = Depends(get_db)):
    """Run one reconciliation cycle and report its counters."""
    result = await reconcile(db)
    return ReconciliationResponse(
        auto_confirmed=result.auto_confirmed,
        expired=result.expired,
        capacity_warnings=result.capacity_warnings,
        failed=result.failed,
        checked=ReconciliationChecked(paid_pending=result.checked_paid_pending),
    )


@router.post(
    "/payments/captured",
    response_model=PaymentCaptureResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def payment_captured_endpoint(
    capture: PaymentCaptured,
    db: AsyncSession = Depends(get_db),
):
    """Record a captured payment and re-admit the booking it pays for."""
    booking, outcome = await apply_payment_capture(db, capture)
    return PaymentCaptureResponse(
        booking_id=capture.booking_id,
        status=booking.status if booking is not None else None,
        outcome=outcome,
    )
