"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from cowork_booking.models.booking import BookingStatus


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BookingCreate(BaseModel):
    space_id: str = Field(..., min_length=1, max_length=36)
    area_id: str = Field(..., min_length=1, max_length=36)
    start_at: datetime
    # Range limits are enforced by the service against settings
    booking_hours: int
    guest_count: int = Field(default=1, gt=0)
    price: Optional[float] = Field(default=None, ge=0)

    @field_validator("start_at")
    @classmethod
    def normalize_start(cls, value: datetime) -> datetime:
        return _as_utc(value)


class BookingResponse(BaseModel):
    id: str
    space_id: str
    space_name: str
    area_id: str
    area_name: str
    customer_id: str
    partner_id: Optional[str]
    start_at: datetime
    expires_at: datetime
    booking_hours: int
    guest_count: int
    area_max_capacity: Optional[int]
    price_minor: Optional[int]
    currency: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCreateResponse(BaseModel):
    booking: BookingResponse
    decision: str


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: str
    status: str
    refund_requested: bool = False


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingBulkStatusUpdate(BaseModel):
    ids: list[str] = Field(..., min_length=1, max_length=500)
    status: BookingStatus


class BookingBulkStatusResponse(BaseModel):
    requested: int
    applied: int
    bookings: list[BookingResponse]


class StuckBookingsResponse(BaseModel):
    pending_paid: int
    bookings: list[BookingResponse]
