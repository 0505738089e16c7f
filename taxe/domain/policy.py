"""
Authorization policy.

Pure, side-effect-free decisions over entity snapshots.  Callers always pass
the *currently persisted* booking/company, never the state an edit would
produce, so an edit payload can never grant its author extra rights.
"""

from __future__ import annotations

from typing import Optional

from .entities import Booking, Company, User
from .enums import BookingStatus, Role


def can_view_or_edit_booking(actor: Optional[User], booking: Booking) -> bool:
    """Customer, driver, or an admin of the booking's company."""
    if actor is None or actor.id is None:
        return False
    # A booking without a customer is a corrupt record.
    if booking.customer_id is None:
        return False

    if actor.id == booking.customer_id:
        return True
    if booking.driver_id is not None and actor.id == booking.driver_id:
        return True

    # Customers and unassigned drivers stop here.
    return (
        actor.role is Role.COMPANY_ADMIN
        and booking.company_id is not None
        and actor.company_id == booking.company_id
    )


def can_claim_booking(
    actor: Optional[User], booking: Booking, company: Company
) -> bool:
    if actor is None:
        return False
    return booking.status is BookingStatus.PENDING and company.has_admin(actor.id)


def can_release_booking(actor: Optional[User], booking: Booking) -> bool:
    return (
        can_view_or_edit_booking(actor, booking)
        and booking.status is not BookingStatus.PENDING
    )


def can_manage_company(
    actor_id: Optional[int], company: Company, allow_driver: bool
) -> bool:
    if company.has_admin(actor_id):
        return True
    return allow_driver and company.has_driver(actor_id)
