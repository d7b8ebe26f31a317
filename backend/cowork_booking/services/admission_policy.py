"""
Admission policy: decides what happens to a booking request.

Pure function, no I/O. The occupancy it is given comes from an unlocked
read, so the policy leans conservative: when an area is over capacity the
request is held for review unless the operator explicitly opted out of the
review queue, in which case it is rejected. It never confirms a booking
that would exceed a finite capacity.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from cowork_booking.models.booking import BookingStatus


class DecisionKind(str, enum.Enum):
    AUTO_CONFIRMED = "auto_confirmed"
    PENDING_REVIEW = "pending_review"
    REJECT_FULL = "reject_full"


@dataclass(frozen=True)
class AdmissionDecision:
    kind: DecisionKind
    # None for REJECT_FULL: nothing is persisted
    status: Optional[BookingStatus]

    @property
    def rejected(self) -> bool:
        return self.kind is DecisionKind.REJECT_FULL


AUTO_CONFIRMED = AdmissionDecision(DecisionKind.AUTO_CONFIRMED, BookingStatus.CONFIRMED)
PENDING_REVIEW = AdmissionDecision(DecisionKind.PENDING_REVIEW, BookingStatus.PENDING)
REJECT_FULL = AdmissionDecision(DecisionKind.REJECT_FULL, None)


def is_over_capacity(max_capacity: Optional[int], active_count: int, requested_guest_count: int) -> bool:
    if max_capacity is None:
        return False
    projected = active_count + max(requested_guest_count, 1)
    return projected > max_capacity


def decide(
    automatic_booking_enabled: bool,
    request_approval_at_capacity: bool,
    max_capacity: Optional[int],
    active_count: int,
    requested_guest_count: int,
) -> AdmissionDecision:
    """
    Resolve an admission decision.

    - manual areas always go to the review queue
    - unbounded areas (max_capacity None) always confirm
    - over capacity: review queue if request_approval_at_capacity, else reject
    """
    if not automatic_booking_enabled:
        return PENDING_REVIEW

    if not is_over_capacity(max_capacity, active_count, requested_guest_count):
        return AUTO_CONFIRMED

    if request_approval_at_capacity:
        return PENDING_REVIEW

    return REJECT_FULL
