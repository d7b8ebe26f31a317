from cowork_booking.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCreateResponse,
    BookingCancelResponse,
    BookingStatusUpdate,
    BookingBulkStatusUpdate,
    BookingBulkStatusResponse,
    StuckBookingsResponse,
)
from cowork_booking.schemas.reconciliation import ReconciliationResponse
from cowork_booking.schemas.payment import PaymentCaptured, PaymentCaptureResponse

__all__ = [
    "BookingCreate", "BookingResponse", "BookingCreateResponse", "BookingCancelResponse",
    "BookingStatusUpdate", "BookingBulkStatusUpdate", "BookingBulkStatusResponse",
    "StuckBookingsResponse",
    "ReconciliationResponse",
    "PaymentCaptured", "PaymentCaptureResponse",
]
