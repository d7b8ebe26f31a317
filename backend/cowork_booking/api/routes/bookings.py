"""
Booking endpoints: admission on create, guarded status changes afterwards.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.db.session import get_db
from cowork_booking.schemas.booking import (
    BookingBulkStatusResponse,
    BookingBulkStatusUpdate,
    BookingCancelResponse,
    BookingCreate,
    BookingCreateResponse,
    BookingResponse,
    BookingStatusUpdate,
    StuckBookingsResponse,
)
from cowork_booking.services.booking_service import (
    bulk_update_status,
    cancel_booking,
    create_booking,
    list_bookings,
    list_stuck_bookings,
    update_booking_status,
)
from cowork_booking.services.interfaces.refund import RefundGateway
from cowork_booking.services.strategy_factory import get_refund_gateway
from cowork_booking.core.security import (
    Principal,
    get_current_principal,
    require_customer,
    require_partner_or_admin,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    principal: Principal = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    """
    Request a booking for an area.

    The response carries the admission decision: `auto_confirmed` (status
    confirmed) or `pending_review` (status pending, awaiting the host).
    A full area without a review queue returns 409.
    """
    booking, decision = await create_booking(db, principal.user_id, booking_data)
    return BookingCreateResponse(
        booking=BookingResponse.model_validate(booking),
        decision=decision.kind.value,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_bookings_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await list_bookings(db, principal)


@router.patch("/", response_model=BookingBulkStatusResponse)
async def bulk_update_status_endpoint(
    payload: BookingBulkStatusUpdate,
    principal: Principal = Depends(require_partner_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Move many bookings at once; only those still in a valid source status change."""
    applied, bookings = await bulk_update_status(db, payload.ids, principal, payload.status)
    return BookingBulkStatusResponse(
        requested=len(payload.ids),
        applied=applied,
        bookings=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.get("/stuck", response_model=StuckBookingsResponse)
async def stuck_bookings_endpoint(
    principal: Principal = Depends(require_partner_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Paid bookings that reconciliation could not confirm and that need the host."""
    bookings = await list_stuck_bookings(db, principal)
    return StuckBookingsResponse(
        pending_paid=len(bookings),
        bookings=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: str,
    principal: Principal = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
    refund_gateway: RefundGateway = Depends(get_refund_gateway),
):
    """Cancel a pending or confirmed booking. Cancelling twice returns 400."""
    booking, refund_requested = await cancel_booking(db, booking_id, principal.user_id, refund_gateway)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
        refund_requested=refund_requested,
    )


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status_endpoint(
    booking_id: str,
    payload: BookingStatusUpdate,
    principal: Principal = Depends(require_partner_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Approve, reject, check in, complete or mark a booking as no-show."""
    return await update_booking_status(db, booking_id, principal, payload.status)
