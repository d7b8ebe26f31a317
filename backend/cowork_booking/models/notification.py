"""
In-app notifications written by the booking core.

(booking_id, type) identifies a notification for idempotency checks; the
check is a plain existence query, so concurrent reconciliation runs can
still produce the occasional duplicate.
"""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, func

from cowork_booking.db.base import Base, new_id, utcnow


class NotificationType(str, enum.Enum):
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_RECEIVED = "booking_received"
    PENDING_REVIEW = "pending_review"
    CAPACITY_WARNING = "capacity_warning"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    recipient_id = Column(String(64), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(String(1000), nullable=False)
    href = Column(String(500), nullable=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=True)
    space_id = Column(String(36), nullable=True)
    area_id = Column(String(36), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_notifications_booking_type", "booking_id", "type"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, recipient={self.recipient_id}, type={self.type})>"
