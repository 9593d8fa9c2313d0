"""
Transport request and bid enumerations.
"""

import enum


class RequestStatus(str, enum.Enum):
    """Transport request status enumeration."""
    PENDING = "pending"  # Open market, accepting bids
    ASSIGNED = "assigned"  # Driver bound via an accepted bid
    IN_PROGRESS = "in_progress"  # Driver has started the journey
    COMPLETED = "completed"  # Delivered
    CANCELLED = "cancelled"  # Withdrawn by an admin


# Statuses that carry an assigned driver
DRIVER_BOUND_STATUSES = frozenset({
    RequestStatus.ASSIGNED,
    RequestStatus.IN_PROGRESS,
    RequestStatus.COMPLETED,
})


# Lifecycle state machine: current status -> statuses reachable from it.
# ASSIGNED/IN_PROGRESS -> PENDING is reassignment.
ALLOWED_TRANSITIONS = {
    RequestStatus.PENDING: frozenset({RequestStatus.ASSIGNED}),
    RequestStatus.ASSIGNED: frozenset({
        RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED, RequestStatus.PENDING,
    }),
    RequestStatus.IN_PROGRESS: frozenset({
        RequestStatus.COMPLETED, RequestStatus.CANCELLED, RequestStatus.PENDING,
    }),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

# Statuses a request can be reopened from
REASSIGNABLE_STATUSES = frozenset({RequestStatus.ASSIGNED, RequestStatus.IN_PROGRESS})


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class BidStatus(str, enum.Enum):
    """Bid status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
