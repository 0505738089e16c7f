"""FastAPI dependency injection helpers."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBasic,
    HTTPBasicCredentials,
    HTTPBearer,
)
from sqlalchemy.ext.asyncio import AsyncSession

from taxe.domain.entities import Actor
from taxe.domain.enums import Role
from taxe.domain.errors import AuthenticationFailed, InvalidRole, MissingToken
from taxe.infrastructure.database import async_session_factory
from taxe.infrastructure.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)
basic_scheme = HTTPBasic(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_actor(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    """Decode the bearer token into the acting user's id and role."""
    if creds is None or not creds.credentials:
        raise MissingToken()
    return decode_access_token(creds.credentials)


def require_role(*roles: Role):
    """Route guard: only let actors holding one of *roles* through."""

    async def _guard(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise InvalidRole()
        return actor

    return _guard


async def get_basic_credentials(
    creds: Optional[HTTPBasicCredentials] = Depends(basic_scheme),
) -> HTTPBasicCredentials:
    if creds is None:
        raise AuthenticationFailed()
    return creds
