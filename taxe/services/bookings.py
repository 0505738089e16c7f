"""
Booking Lifecycle Engine
========================

Orchestrates create / view / edit / claim / release of bookings.

Every operation follows the same shape:

1. Load the booking, the acting user and any other record involved.
2. Check, in order: existence -> authorization -> business rules.
3. Only then mutate the booking **and** every denormalized back-reference
   (``users.bookings``, ``companies.bookings``).

All writes go through the caller's ``AsyncSession`` and are committed by
the caller as one unit of work, so a failed check never leaves a partly
updated set of records behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from taxe.domain import policy
from taxe.domain.entities import Booking
from taxe.domain.enums import BookingStatus, Role
from taxe.domain.errors import (
    BookingNotFound,
    CompanyNotFound,
    CustomerAlreadyHasActiveBooking,
    UnauthorizedEdit,
    UnauthorizedView,
    UserNotFound,
    ValidationError,
)
from taxe.infrastructure.models import BookingModel
from taxe.infrastructure.repositories import (
    BookingRepository,
    CompanyRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class BookingInfo:
    pickup_location: str
    destination: str
    time: datetime
    no_passengers: int
    notes: tuple[str, ...] = ()


@dataclass
class BookingChanges:
    """Requested edits.  ``None`` means "leave unchanged"."""

    driver: Optional[int] = None
    status: Optional[BookingStatus] = None
    time: Optional[datetime] = None
    note: Optional[str] = None

    def is_empty(self) -> bool:
        return (
            self.driver is None
            and self.status is None
            and self.time is None
            and not self.note
        )


@dataclass
class BookingDetails:
    """A booking with its customer / driver resolved to display names."""

    booking: Booking
    customer_name: Optional[str]
    driver_name: Optional[str]


def _remove_ref(refs: list[int], booking_id: int) -> None:
    while booking_id in refs:
        refs.remove(booking_id)


class BookingService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.bookings = BookingRepository(session)
        self.users = UserRepository(session)
        self.companies = CompanyRepository(session)

    # ── create ────────────────────────────────────────────────────────

    async def create(self, customer_id: int, info: BookingInfo) -> int:
        """Create a Pending booking for *customer_id* and return its id."""
        customer = await self.users.get_by_id(customer_id, for_update=True)
        if customer is None:
            raise UserNotFound()

        latest = await self.bookings.get_latest_for_customer(customer_id)
        if latest is not None and latest.to_entity().is_active:
            logger.debug(
                "Customer %s already has active booking %s", customer_id, latest.id
            )
            raise CustomerAlreadyHasActiveBooking()

        booking = await self.bookings.create_booking(
            customer_id=customer_id,
            pickup_location=info.pickup_location,
            destination=info.destination,
            time=info.time,
            no_passengers=info.no_passengers,
            notes=[n for n in info.notes if n],
        )
        customer.bookings.append(booking.id)
        await self.session.flush()

        logger.info("Booking %s created by customer %s", booking.id, customer_id)
        return booking.id

    # ── view ──────────────────────────────────────────────────────────

    async def get_by_id(
        self, viewer_id: int, viewer_role: Role, booking_id: int
    ) -> BookingDetails:
        booking = await self.bookings.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFound()

        viewer = await self.users.get_by_id(viewer_id)
        snapshot = booking.to_entity()
        if not policy.can_view_or_edit_booking(
            viewer.to_entity() if viewer else None, snapshot
        ):
            raise UnauthorizedView()

        customer = await self.users.get_by_id(booking.customer_id)
        driver = await self.users.get_by_id(booking.driver_id)
        return BookingDetails(
            booking=snapshot,
            customer_name=customer.name if customer else None,
            driver_name=driver.name if driver else None,
        )

    async def get_unallocated_bookings(self) -> list[Booking]:
        """All Pending bookings, oldest first.  Raises if there are none."""
        pending = await self.bookings.get_pending_bookings()
        if not pending:
            raise BookingNotFound()
        return [b.to_entity() for b in pending]

    # ── edit ──────────────────────────────────────────────────────────

    async def edit(
        self,
        editor_id: int,
        editor_role: Role,
        booking_id: int,
        changes: BookingChanges,
    ) -> Booking:
        booking = await self.bookings.get_by_id(booking_id, for_update=True)
        if booking is None:
            raise BookingNotFound()

        editor = await self.users.get_by_id(editor_id)
        current = booking.to_entity()
        if not policy.can_view_or_edit_booking(
            editor.to_entity() if editor else None, current
        ):
            raise UnauthorizedEdit()

        if changes.is_empty():
            raise ValidationError("No updated information found")

        # Validate every requested change before touching anything.
        new_driver = None
        old_driver = None
        if changes.driver is not None:
            if editor_role is Role.CUSTOMER:
                raise UnauthorizedEdit("Customers cannot assign drivers")
            new_driver = await self.users.get_by_id(
                changes.driver, for_update=True
            )
            if new_driver is None:
                raise UserNotFound()
            if (
                Role(new_driver.role) is not Role.DRIVER
                or booking.company_id is None
                or new_driver.company_id != booking.company_id
            ):
                raise UnauthorizedEdit(
                    "Driver must be a driver of the company handling the booking"
                )
            if booking.driver_id == new_driver.id:
                new_driver = None
            elif booking.driver_id is not None:
                old_driver = await self.users.get_by_id(
                    booking.driver_id, for_update=True
                )

        status_note = None
        if changes.status is not None:
            if editor_role is Role.CUSTOMER:
                raise UnauthorizedEdit("Customers cannot change a booking's status")
            # Raises InvalidStateTransition (a ValidationError) when illegal.
            status_note = current.transition_to(changes.status)

        # Apply.
        if new_driver is not None:
            if old_driver is not None:
                _remove_ref(old_driver.bookings, booking.id)
            new_driver.bookings.append(booking.id)
            booking.driver_id = new_driver.id
            logger.info("Booking %s assigned to driver %s", booking.id, new_driver.id)

        if status_note is not None:
            booking.status = current.status
            booking.notes.append(status_note)
            logger.info("Booking %s: %s", booking.id, status_note)

        if changes.time is not None:
            booking.time = changes.time

        if changes.note:
            booking.notes.append(changes.note)

        await self.session.flush()
        return booking.to_entity()

    # ── claim / release ───────────────────────────────────────────────

    async def claim_booking(
        self, actor_id: int, booking_id: int, company_id: int
    ) -> Booking:
        """A company admin takes a Pending booking for their company."""
        booking = await self.bookings.get_by_id(booking_id, for_update=True)
        if booking is None:
            raise BookingNotFound()

        current = booking.to_entity()
        # Already claimed is reported as an authorization failure.
        if current.status is not BookingStatus.PENDING:
            raise UnauthorizedEdit("Booking has already been claimed")

        company = await self.companies.get_by_id(company_id, for_update=True)
        if company is None:
            raise CompanyNotFound()

        actor = await self.users.get_by_id(actor_id)
        if not policy.can_claim_booking(
            actor.to_entity() if actor else None, current, company.to_entity()
        ):
            raise UnauthorizedEdit()

        current.claim(company.id)
        booking.status = current.status
        booking.company_id = current.company_id
        company.bookings.append(booking.id)
        booking.notes.append(f"Booking Claimed by: {company.name}")
        await self.session.flush()

        logger.info("Booking %s claimed by company %s", booking.id, company.id)
        return booking.to_entity()

    async def release_booking(self, actor_id: int, booking_id: int) -> Booking:
        """Return a claimed booking to the unallocated pool."""
        booking = await self.bookings.get_by_id(booking_id, for_update=True)
        if booking is None:
            raise BookingNotFound()

        actor = await self.users.get_by_id(actor_id)
        current = booking.to_entity()
        if not policy.can_release_booking(
            actor.to_entity() if actor else None, current
        ):
            raise UnauthorizedEdit()
        if current.is_terminal:
            raise UnauthorizedEdit("A finished or cancelled booking cannot be released")

        driver = await self.users.get_by_id(current.driver_id, for_update=True)
        company = await self.companies.get_by_id(
            current.company_id, for_update=True
        )

        current.release()
        booking.status = current.status
        booking.driver_id = None
        booking.company_id = None
        if driver is not None:
            _remove_ref(driver.bookings, booking.id)
        if company is not None:
            _remove_ref(company.bookings, booking.id)
        booking.notes.append("Booking Released")
        await self.session.flush()

        logger.info("Booking %s released by user %s", booking.id, actor_id)
        return booking.to_entity()

    # ── listing helpers shared with the user / company services ─────

    async def list_newest_first(
        self,
        booking_ids: Iterable[int],
        limit: Optional[int] = None,
        active: bool = False,
    ) -> list[Booking]:
        """Newest first, truncated to *limit*, then optionally active-only."""
        rows: list[BookingModel] = await self.bookings.get_newest_first(
            booking_ids, limit
        )
        bookings = [b.to_entity() for b in rows]
        if active:
            bookings = [b for b in bookings if b.is_active]
        return bookings
