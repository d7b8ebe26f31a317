"""
Spaces and their bookable areas.

These rows are owned by listing management; the booking core only reads
them. Capacity settings are copied onto each booking at creation time.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from cowork_booking.db.base import Base, TimestampMixin, new_id


class Space(Base, TimestampMixin):
    __tablename__ = "spaces"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    partner_id = Column(String(64), nullable=True, index=True)
    is_published = Column(Boolean, nullable=False, default=True)

    areas = relationship("Area", back_populates="space", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Space(id={self.id}, name={self.name})>"


class Area(Base, TimestampMixin):
    __tablename__ = "areas"

    id = Column(String(36), primary_key=True, default=new_id)
    space_id = Column(String(36), ForeignKey("spaces.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    # NULL means unbounded
    max_capacity = Column(Integer, nullable=True)
    automatic_booking_enabled = Column(Boolean, nullable=False, default=False)
    request_approval_at_capacity = Column(Boolean, nullable=False, default=False)

    space = relationship("Space", back_populates="areas", lazy="selectin")

    __table_args__ = (
        CheckConstraint("max_capacity IS NULL OR max_capacity >= 0", name="check_area_max_capacity"),
    )

    def __repr__(self) -> str:
        return f"<Area(id={self.id}, name={self.name}, max_capacity={self.max_capacity})>"
