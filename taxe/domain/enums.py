"""Domain enumerations and state-transition rules."""

import enum


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In_Progress"
    ARRIVED = "Arrived"
    CANCELLED = "Cancelled"
    FINISHED = "Finished"


# State machine: maps current status -> set of valid next statuses.
# PENDING -> IN_PROGRESS only happens through a claim and
# anything -> PENDING only through a release; neither is reachable by edit.
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: set(),
    BookingStatus.IN_PROGRESS: {BookingStatus.ARRIVED, BookingStatus.CANCELLED},
    BookingStatus.ARRIVED: {BookingStatus.FINISHED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.FINISHED: set(),
}

TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.FINISHED, BookingStatus.CANCELLED}
)


class Role(str, enum.Enum):
    CUSTOMER = "Customer"
    DRIVER = "Driver"
    COMPANY_ADMIN = "Company_Admin"
