"""
Domain entities with business logic.

These are in-memory snapshots of the persisted records.  The authorization
policy and the lifecycle rules are evaluated against them, never against
ORM rows or request payloads.

Patterns used
-------------
- **State Pattern** on ``Booking``: enforces valid lifecycle transitions
  (Pending -> In_Progress -> Arrived | Cancelled, Arrived -> Finished).
- ``Booking.claim`` / ``Booking.release`` are the only ways in and out of
  ``Pending``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .enums import BOOKING_TRANSITIONS, TERMINAL_STATUSES, BookingStatus, Role
from .errors import ValidationError


class InvalidStateTransition(ValidationError):
    """Raised when a booking status change violates the state machine."""


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Actor:
    """Authenticated identity performing an operation."""

    id: int
    role: Role


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class User:
    id: Optional[int] = None
    email: str = ""
    name: str = ""
    role: Role = Role.CUSTOMER
    company_id: Optional[int] = None
    bookings: list[int] = field(default_factory=list)
    available: bool = False
    created_at: Optional[datetime] = None


@dataclass
class Company:
    id: Optional[int] = None
    name: str = ""
    admins: list[int] = field(default_factory=list)
    drivers: list[int] = field(default_factory=list)
    bookings: list[int] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def has_admin(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self.admins

    def has_driver(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self.drivers


@dataclass
class Booking:
    id: Optional[int] = None
    pickup_location: str = ""
    destination: str = ""
    time: Optional[datetime] = None
    no_passengers: int = 1
    notes: list[str] = field(default_factory=list)
    status: BookingStatus = BookingStatus.PENDING
    customer_id: Optional[int] = None
    driver_id: Optional[int] = None
    company_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition_to(self, new_status: BookingStatus) -> str:
        """
        Move to *new_status* if the transition is legal, else raise.

        Returns the audit note describing the change.
        """
        if new_status is BookingStatus.PENDING:
            raise InvalidStateTransition(
                "A booking can only return to Pending by being released"
            )
        allowed = BOOKING_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        note = (
            f"Booking Status Changed From {self.status.value} to {new_status.value}"
        )
        self.status = new_status
        return note

    def claim(self, company_id: int) -> None:
        if self.status is not BookingStatus.PENDING:
            raise InvalidStateTransition("Only a pending booking can be claimed")
        self.status = BookingStatus.IN_PROGRESS
        self.company_id = company_id

    def release(self) -> None:
        self.status = BookingStatus.PENDING
        self.driver_id = None
        self.company_id = None


@dataclass(frozen=True)
class UserSummary:
    """Public id / name pair used in roster and directory listings."""

    id: int
    name: str
