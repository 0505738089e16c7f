"""Account service: registration, login, profile and the user's bookings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from taxe.domain.entities import Booking, User, UserSummary
from taxe.domain.errors import (
    AuthenticationFailed,
    BookingNotFound,
    UnauthorizedEdit,
    UnauthorizedView,
    UserAlreadyExists,
    UserNotFound,
)
from taxe.infrastructure.repositories import UserRepository
from taxe.infrastructure.security import (
    create_access_token,
    hash_password,
    verify_password,
)
from taxe.services.bookings import BookingService

logger = logging.getLogger(__name__)


@dataclass
class Registration:
    email: str
    password: str
    name: str


@dataclass
class ProfileChanges:
    name: Optional[str] = None
    password: Optional[str] = None
    old_password: Optional[str] = None
    available: Optional[bool] = None


@dataclass
class AuthenticatedUser:
    user: User
    token: str


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)

    async def register(self, info: Registration) -> User:
        if await self.users.get_by_email(info.email):
            raise UserAlreadyExists(info.email)

        user = await self.users.create_user(
            email=info.email,
            password_hash=hash_password(info.password),
            name=info.name,
        )
        logger.info("Registered user %s", user.id)
        return user.to_entity()

    async def authenticate(self, email: str, password: str) -> AuthenticatedUser:
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.password):
            raise AuthenticationFailed()

        entity = user.to_entity()
        return AuthenticatedUser(
            user=entity, token=create_access_token(entity.id, entity.role)
        )

    async def get_by_id(self, user_id: int) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user.to_entity()

    async def get_all(self) -> list[UserSummary]:
        users = await self.users.get_all()
        if not users:
            raise UserNotFound()
        return [UserSummary(id=u.id, name=u.name) for u in users]

    async def edit(self, editor_id: int, user_id: int, changes: ProfileChanges) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound()

        if editor_id != user.id:
            raise UnauthorizedEdit()

        if changes.password:
            if not changes.old_password or not verify_password(
                changes.old_password, user.password
            ):
                raise AuthenticationFailed()

        if changes.name:
            user.name = changes.name
        if changes.password:
            user.password = hash_password(changes.password)
        if changes.available is not None:
            user.available = changes.available

        await self.session.flush()
        return user.to_entity()

    async def get_user_bookings(
        self,
        user_id: int,
        viewer_id: int,
        limit: Optional[int] = None,
        active: bool = False,
    ) -> list[Booking]:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound()

        if user.id != viewer_id:
            raise UnauthorizedView()

        if not user.bookings:
            raise BookingNotFound()

        return await BookingService(self.session).list_newest_first(
            user.bookings, limit=limit, active=active
        )
