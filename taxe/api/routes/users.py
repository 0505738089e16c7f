"""
User endpoints
==============

GET   /api/v1/users                     -- list users (id, name)
POST  /api/v1/users                     -- register
POST  /api/v1/users/login               -- HTTP Basic login, returns a token
GET   /api/v1/users/{user_id}           -- profile, never the password hash
PATCH /api/v1/users/{user_id}           -- edit own name / password / availability
GET   /api/v1/users/{user_id}/bookings  -- own bookings, newest first
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.security import HTTPBasicCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from taxe.api.dependencies import get_basic_credentials, get_current_actor, get_db
from taxe.api.middleware import limiter
from taxe.api.schemas import (
    ERROR_RESPONSES,
    BookingResponse,
    LoginResponse,
    MessageResponse,
    UserCreateRequest,
    UserEditRequest,
    UserResponse,
    UserSummaryResponse,
)
from taxe.config import settings
from taxe.domain.entities import Actor
from taxe.services.users import ProfileChanges, Registration, UserService

router = APIRouter(
    prefix="/users", tags=["users"], responses=ERROR_RESPONSES
)


@router.get("", response_model=list[UserSummaryResponse], summary="List users")
@limiter.limit(settings.rate_limit)
async def get_all_users(
    request: Request,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await UserService(db).get_all()


@router.post(
    "", status_code=201, response_model=MessageResponse, summary="Register a user"
)
@limiter.limit(settings.rate_limit)
async def register(
    request: Request,
    body: UserCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).register(
        Registration(email=body.email, password=body.password, name=body.name)
    )
    return MessageResponse(message="Successfully Registered")


@router.post("/login", response_model=LoginResponse, summary="Log in")
@limiter.limit(settings.rate_limit)
async def login(
    request: Request,
    creds: HTTPBasicCredentials = Depends(get_basic_credentials),
    db: AsyncSession = Depends(get_db),
):
    result = await UserService(db).authenticate(creds.username, creds.password)
    return LoginResponse(
        **UserResponse.model_validate(result.user).model_dump(), token=result.token
    )


@router.get("/{user_id}", response_model=UserResponse, summary="View a user")
@limiter.limit(settings.rate_limit)
async def get_user(
    request: Request,
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await UserService(db).get_by_id(user_id)


@router.patch("/{user_id}", response_model=MessageResponse, summary="Edit a user")
@limiter.limit(settings.rate_limit)
async def edit_user(
    request: Request,
    user_id: int,
    body: UserEditRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).edit(
        actor.id,
        user_id,
        ProfileChanges(
            name=body.name,
            password=body.password,
            old_password=body.old_password,
            available=body.available,
        ),
    )
    return MessageResponse(message="User Successfully Edited")


@router.get(
    "/{user_id}/bookings",
    response_model=list[BookingResponse],
    summary="List a user's bookings, newest first",
)
@limiter.limit(settings.rate_limit)
async def get_user_bookings(
    request: Request,
    user_id: int,
    limit: Optional[int] = Query(None, ge=1),
    active: bool = False,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await UserService(db).get_user_bookings(
        user_id, actor.id, limit=limit, active=active
    )
