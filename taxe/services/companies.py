"""
Company Roster Engine
=====================

Driver add / remove plus the read-only company views.

Removing a driver detaches them from every *active* booking they hold so
that a driver leaving a company never stays assigned to live work.
Finished and cancelled bookings keep their driver for the record.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from taxe.domain import policy
from taxe.domain.entities import Booking, Company, UserSummary
from taxe.domain.enums import Role
from taxe.domain.errors import (
    BookingNotFound,
    CompanyNotFound,
    DriverAlreadyAdded,
    UnauthorizedEdit,
    UnauthorizedView,
    UserNotFound,
)
from taxe.infrastructure.models import CompanyModel
from taxe.infrastructure.repositories import (
    BookingRepository,
    CompanyRepository,
    UserRepository,
)
from taxe.services.bookings import BookingService

logger = logging.getLogger(__name__)


class CompanyService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.companies = CompanyRepository(session)
        self.users = UserRepository(session)
        self.bookings = BookingRepository(session)

    async def _authorize(
        self,
        actor_id: int,
        company_id: int,
        allow_driver: bool,
        for_update: bool = False,
    ) -> CompanyModel:
        company = await self.companies.get_by_id(company_id, for_update=for_update)
        if company is None:
            raise CompanyNotFound()
        if not policy.can_manage_company(
            actor_id, company.to_entity(), allow_driver
        ):
            raise UnauthorizedView()
        return company

    # ── views ─────────────────────────────────────────────────────────

    async def get_by_id(self, viewer_id: int, company_id: int) -> Company:
        company = await self._authorize(viewer_id, company_id, allow_driver=True)
        return company.to_entity()

    async def get_company_bookings(
        self,
        company_id: int,
        viewer_id: int,
        limit: Optional[int] = None,
        active: bool = False,
    ) -> list[Booking]:
        company = await self._authorize(viewer_id, company_id, allow_driver=True)
        if not company.bookings:
            raise BookingNotFound()
        return await BookingService(self.session).list_newest_first(
            company.bookings, limit=limit, active=active
        )

    async def get_drivers(self, viewer_id: int, company_id: int) -> list[UserSummary]:
        company = await self._authorize(viewer_id, company_id, allow_driver=True)
        if not company.drivers:
            raise UserNotFound()
        drivers = await self.users.get_many(company.drivers)
        return [UserSummary(id=d.id, name=d.name) for d in drivers]

    async def get_admins(self, viewer_id: int, company_id: int) -> list[UserSummary]:
        company = await self._authorize(viewer_id, company_id, allow_driver=True)
        admins = await self.users.get_many(company.admins)
        return [UserSummary(id=a.id, name=a.name) for a in admins]

    # ── roster ────────────────────────────────────────────────────────

    async def add_driver(self, actor_id: int, company_id: int, driver_id: int) -> None:
        company = await self._authorize(
            actor_id, company_id, allow_driver=False, for_update=True
        )

        driver = await self.users.get_by_id(driver_id, for_update=True)
        if driver is None:
            raise UserNotFound()

        if (
            Role(driver.role) is Role.DRIVER
            or driver.company_id is not None
            or driver.id in company.drivers
        ):
            raise DriverAlreadyAdded()

        driver.role = Role.DRIVER
        driver.company_id = company.id
        company.drivers.append(driver.id)
        await self.session.flush()

        logger.info("Driver %s added to company %s", driver.id, company.id)

    async def remove_driver(
        self, actor_id: int, company_id: int, driver_id: int
    ) -> None:
        company = await self._authorize(
            actor_id, company_id, allow_driver=True, for_update=True
        )

        driver = await self.users.get_by_id(driver_id, for_update=True)
        if driver is None:
            raise UserNotFound()

        # Drivers may remove themselves but nobody else.
        if not company.to_entity().has_admin(actor_id) and actor_id != driver.id:
            raise UnauthorizedEdit()

        if driver.id not in company.drivers:
            raise UserNotFound()

        assigned = await self.bookings.get_many(driver.bookings, for_update=True)
        detached = []
        for booking in assigned:
            if booking.to_entity().is_active and booking.driver_id == driver.id:
                booking.driver_id = None
                detached.append(booking.id)

        driver.role = Role.CUSTOMER
        driver.company_id = None
        company.drivers.remove(driver.id)
        for booking_id in detached:
            driver.bookings.remove(booking_id)
        await self.session.flush()

        logger.info(
            "Driver %s removed from company %s (%d active bookings detached)",
            driver.id,
            company.id,
            len(detached),
        )
