"""
Settlement records written by the payment integration.

A booking counts as paid when it has at least one `succeeded` settlement.
external_reference is the gateway's payment id; it is unique so replayed
gateway callbacks do not create duplicates.
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from cowork_booking.db.base import Base, new_id, utcnow


class SettlementStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Settlement(Base):
    __tablename__ = "settlements"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=SettlementStatus.SUCCEEDED.value)
    amount_minor = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="PHP")
    payment_method = Column(String(32), nullable=False, default="paymongo")
    external_reference = Column(String(128), nullable=True, unique=True)
    is_live = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    def __repr__(self) -> str:
        return f"<Settlement(id={self.id}, booking={self.booking_id}, status={self.status})>"
