"""
Booking model: a request to occupy part of an area's capacity for a window.

Key design decisions:
- The occupancy window is half-open: [start_at, expires_at)
- area_max_capacity is a snapshot of the area's limit at booking time, so
  later edits to the area never change how an existing booking is judged
- Rows are never deleted; status only moves forward along ALLOWED_TRANSITIONS
- status is only written through the transition guard (conditional UPDATE)
"""

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String

from cowork_booking.db.base import Base, TimestampMixin, new_id


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    CHECKED_IN = "checkedin"
    CHECKED_OUT = "checkedout"
    COMPLETED = "completed"
    NO_SHOW = "noshow"


# Statuses that consume capacity
ACTIVE_OCCUPANCY_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
})

CANCELLABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.REJECTED,
        BookingStatus.EXPIRED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.CANCELLED,
        BookingStatus.CHECKED_IN,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    }),
}

TERMINAL_STATUSES = frozenset(s for s in BookingStatus if s not in ALLOWED_TRANSITIONS)


def can_transition(from_status: BookingStatus, to_status: BookingStatus) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def sources_for(to_status: BookingStatus) -> frozenset[BookingStatus]:
    """Every status a booking may legally leave to reach `to_status`."""
    return frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if to_status in targets)


_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in BookingStatus)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    space_id = Column(String(36), ForeignKey("spaces.id"), nullable=False, index=True)
    space_name = Column(String(255), nullable=False)
    area_id = Column(String(36), ForeignKey("areas.id"), nullable=False)
    area_name = Column(String(255), nullable=False)
    customer_id = Column(String(64), nullable=False, index=True)
    partner_id = Column(String(64), nullable=True, index=True)

    start_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    booking_hours = Column(Integer, nullable=False)
    guest_count = Column(Integer, nullable=False, default=1)
    area_max_capacity = Column(Integer, nullable=True)

    price_minor = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=False, default="PHP")
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    __table_args__ = (
        CheckConstraint("guest_count > 0", name="check_booking_guest_count_positive"),
        CheckConstraint("expires_at > start_at", name="check_booking_window"),
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="check_booking_status"),
        # Occupancy lookups: active bookings in one area
        Index("ix_bookings_area_status", "area_id", "status"),
        # Reconciliation scans: pending bookings by age and by start time
        Index("ix_bookings_status_created", "status", "created_at"),
        Index("ix_bookings_status_start", "status", "start_at"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, area={self.area_id}, guests={self.guest_count}, status={self.status})>"
