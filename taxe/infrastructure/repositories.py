"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Nothing here commits: the owner of the
session decides when the batch of writes for one operation is applied.

Rows about to be modified are loaded with ``for_update=True``: the row is
locked (``SELECT ... FOR UPDATE``) until the transaction ends and any copy
already held in the identity map is overwritten with the locked state, so
id-list columns are never rewritten from a stale read.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .database import Base
from .models import BookingModel, CompanyModel, UserModel
from taxe.domain.enums import BookingStatus, Role


async def _get(
    session: AsyncSession, model: type[Base], pk: int, for_update: bool
):
    if not for_update:
        return await session.get(model, pk)
    return await session.get(
        model, pk, with_for_update=True, populate_existing=True
    )


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_booking(
        self,
        *,
        customer_id: int,
        pickup_location: str,
        destination: str,
        time: datetime,
        no_passengers: int,
        notes: Iterable[str] = (),
    ) -> BookingModel:
        booking = BookingModel(
            customer_id=customer_id,
            pickup_location=pickup_location,
            destination=destination,
            time=time,
            no_passengers=no_passengers,
            notes=list(notes),
            status=BookingStatus.PENDING,
            driver_id=None,
            company_id=None,
        )
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(
        self, booking_id: int, for_update: bool = False
    ) -> Optional[BookingModel]:
        return await _get(self.session, BookingModel, booking_id, for_update)

    async def get_many(
        self, booking_ids: Iterable[int], for_update: bool = False
    ) -> list[BookingModel]:
        ids = list(booking_ids)
        if not ids:
            return []
        query = select(BookingModel).where(BookingModel.id.in_(ids))
        if for_update:
            query = query.with_for_update().execution_options(
                populate_existing=True
            )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_latest_for_customer(
        self, customer_id: int
    ) -> Optional[BookingModel]:
        """Most recently created booking owned by *customer_id*."""
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.customer_id == customer_id)
            .order_by(BookingModel.created_at.desc(), BookingModel.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_newest_first(
        self, booking_ids: Iterable[int], limit: Optional[int] = None
    ) -> list[BookingModel]:
        ids = list(booking_ids)
        if not ids:
            return []
        query = (
            select(BookingModel)
            .where(BookingModel.id.in_(ids))
            .order_by(BookingModel.created_at.desc(), BookingModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_pending_bookings(self) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.status == BookingStatus.PENDING)
            .order_by(BookingModel.created_at, BookingModel.id)
        )
        return list(result.scalars().all())


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: Role = Role.CUSTOMER,
        company_id: Optional[int] = None,
    ) -> UserModel:
        user = UserModel(
            email=email,
            password=password_hash,
            name=name,
            role=role,
            company_id=company_id,
            bookings=[],
            available=False,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(
        self, user_id: Optional[int], for_update: bool = False
    ) -> Optional[UserModel]:
        if user_id is None:
            return None
        return await _get(self.session, UserModel, user_id, for_update)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: Iterable[int]) -> list[UserModel]:
        ids = list(user_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(UserModel).where(UserModel.id.in_(ids)).order_by(UserModel.id)
        )
        return list(result.scalars().all())

    async def get_all(self) -> list[UserModel]:
        result = await self.session.execute(select(UserModel).order_by(UserModel.id))
        return list(result.scalars().all())


class CompanyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_company(
        self,
        *,
        name: str,
        admins: Iterable[int] = (),
        drivers: Iterable[int] = (),
    ) -> CompanyModel:
        company = CompanyModel(
            name=name,
            admins=list(admins),
            drivers=list(drivers),
            bookings=[],
        )
        self.session.add(company)
        await self.session.flush()
        return company

    async def get_by_id(
        self, company_id: Optional[int], for_update: bool = False
    ) -> Optional[CompanyModel]:
        if company_id is None:
            return None
        return await _get(self.session, CompanyModel, company_id, for_update)
