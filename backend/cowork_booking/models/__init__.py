from cowork_booking.models.space import Space, Area
from cowork_booking.models.booking import (
    Booking,
    BookingStatus,
    ACTIVE_OCCUPANCY_STATUSES,
    CANCELLABLE_STATUSES,
    TERMINAL_STATUSES,
    ALLOWED_TRANSITIONS,
)
from cowork_booking.models.settlement import Settlement, SettlementStatus
from cowork_booking.models.notification import Notification, NotificationType

__all__ = [
    "Space", "Area",
    "Booking", "BookingStatus", "ACTIVE_OCCUPANCY_STATUSES", "CANCELLABLE_STATUSES",
    "TERMINAL_STATUSES", "ALLOWED_TRANSITIONS",
    "Settlement", "SettlementStatus",
    "Notification", "NotificationType",
]
