"""
Booking endpoints
=================

GET   /api/v1/bookings                    -- unallocated (Pending) bookings; admins
POST  /api/v1/bookings                    -- create a booking; customers
GET   /api/v1/bookings/{booking_id}       -- view a booking
PATCH /api/v1/bookings/{booking_id}       -- edit driver / status / time / note
PATCH /api/v1/bookings/{booking_id}/claim   -- claim for a company; admins
PATCH /api/v1/bookings/{booking_id}/release -- back to the pool; admins, drivers
"""

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taxe.api.dependencies import get_current_actor, get_db, require_role
from taxe.api.middleware import limiter
from taxe.api.schemas import (
    ERROR_RESPONSES,
    BookingCreatedResponse,
    BookingCreateRequest,
    BookingDetailResponse,
    BookingEditRequest,
    BookingResponse,
    ClaimBookingRequest,
    ErrorResponse,
)
from taxe.config import settings
from taxe.domain.entities import Actor
from taxe.domain.enums import Role
from taxe.infrastructure.locks import DistributedLock
from taxe.infrastructure.redis_client import get_redis
from taxe.services.bookings import BookingChanges, BookingInfo, BookingService

router = APIRouter(
    prefix="/bookings", tags=["bookings"], responses=ERROR_RESPONSES
)


@router.get(
    "",
    response_model=list[BookingResponse],
    summary="List all unallocated bookings",
)
@limiter.limit(settings.rate_limit)
async def get_unallocated_bookings(
    request: Request,
    actor: Actor = Depends(require_role(Role.COMPANY_ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await BookingService(db).get_unallocated_bookings()


@router.post(
    "",
    status_code=201,
    response_model=BookingCreatedResponse,
    summary="Create a booking",
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    actor: Actor = Depends(require_role(Role.CUSTOMER)),
    db: AsyncSession = Depends(get_db),
):
    booking_id = await BookingService(db).create(
        actor.id,
        BookingInfo(
            pickup_location=body.pickup_location,
            destination=body.destination,
            time=body.time,
            no_passengers=body.no_passengers,
            notes=tuple(body.notes),
        ),
    )
    return BookingCreatedResponse(booking_id=booking_id)


@router.get(
    "/{booking_id}",
    response_model=BookingDetailResponse,
    summary="View a booking",
)
@limiter.limit(settings.rate_limit)
async def get_booking(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    details = await BookingService(db).get_by_id(actor.id, actor.role, booking_id)
    return BookingDetailResponse(
        **BookingResponse.model_validate(details.booking).model_dump(),
        customer_name=details.customer_name,
        driver_name=details.driver_name,
    )


@router.patch(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Edit a booking",
    description=(
        "Customers may change the time or add a note.  Drivers and company "
        "admins may also assign a driver and move the status along the "
        "lifecycle.  Returning a booking to Pending is done via release."
    ),
    responses={409: {"model": ErrorResponse, "description": "Booking is busy"}},
)
@limiter.limit(settings.rate_limit)
async def edit_booking(
    request: Request,
    booking_id: int,
    body: BookingEditRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    changes = BookingChanges(
        driver=body.driver, status=body.status, time=body.time, note=body.note
    )
    async with DistributedLock.for_booking(redis, booking_id):
        booking = await BookingService(db).edit(
            actor.id, actor.role, booking_id, changes
        )
        await db.commit()
    return booking


@router.patch(
    "/{booking_id}/claim",
    response_model=BookingResponse,
    summary="Claim a pending booking for a company",
    responses={409: {"model": ErrorResponse, "description": "Booking is busy"}},
)
@limiter.limit(settings.rate_limit)
async def claim_booking(
    request: Request,
    booking_id: int,
    body: ClaimBookingRequest,
    actor: Actor = Depends(require_role(Role.COMPANY_ADMIN)),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    async with DistributedLock.for_booking(redis, booking_id):
        booking = await BookingService(db).claim_booking(
            actor.id, booking_id, body.company_id
        )
        await db.commit()
    return booking


@router.patch(
    "/{booking_id}/release",
    response_model=BookingResponse,
    summary="Release a booking back to the unallocated pool",
    responses={409: {"model": ErrorResponse, "description": "Booking is busy"}},
)
@limiter.limit(settings.rate_limit)
async def release_booking(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(require_role(Role.COMPANY_ADMIN, Role.DRIVER)),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    async with DistributedLock.for_booking(redis, booking_id):
        booking = await BookingService(db).release_booking(actor.id, booking_id)
        await db.commit()
    return booking
