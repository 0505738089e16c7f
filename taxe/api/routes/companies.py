"""
Company endpoints
=================

GET   /api/v1/companies/{company_id}                      -- company record
GET   /api/v1/companies/{company_id}/bookings             -- newest first
GET   /api/v1/companies/{company_id}/drivers              -- driver roster
GET   /api/v1/companies/{company_id}/admins               -- admin roster
PATCH /api/v1/companies/{company_id}/drivers              -- add a driver
PATCH /api/v1/companies/{company_id}/drivers/{driver_id}  -- remove a driver
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taxe.api.dependencies import get_current_actor, get_db
from taxe.api.middleware import limiter
from taxe.api.schemas import (
    ERROR_RESPONSES,
    AddDriverRequest,
    BookingResponse,
    CompanyResponse,
    MessageResponse,
    UserSummaryResponse,
)
from taxe.config import settings
from taxe.domain.entities import Actor
from taxe.services.companies import CompanyService

router = APIRouter(
    prefix="/companies", tags=["companies"], responses=ERROR_RESPONSES
)


@router.get("/{company_id}", response_model=CompanyResponse, summary="View a company")
@limiter.limit(settings.rate_limit)
async def get_company(
    request: Request,
    company_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CompanyService(db).get_by_id(actor.id, company_id)


@router.get(
    "/{company_id}/bookings",
    response_model=list[BookingResponse],
    summary="List the company's bookings, newest first",
)
@limiter.limit(settings.rate_limit)
async def get_company_bookings(
    request: Request,
    company_id: int,
    limit: Optional[int] = Query(None, ge=1),
    active: bool = False,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CompanyService(db).get_company_bookings(
        company_id, actor.id, limit=limit, active=active
    )


@router.get(
    "/{company_id}/drivers",
    response_model=list[UserSummaryResponse],
    summary="List the company's drivers",
)
@limiter.limit(settings.rate_limit)
async def get_drivers(
    request: Request,
    company_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CompanyService(db).get_drivers(actor.id, company_id)


@router.get(
    "/{company_id}/admins",
    response_model=list[UserSummaryResponse],
    summary="List the company's admins",
)
@limiter.limit(settings.rate_limit)
async def get_admins(
    request: Request,
    company_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CompanyService(db).get_admins(actor.id, company_id)


@router.patch(
    "/{company_id}/drivers",
    response_model=MessageResponse,
    summary="Add a driver to the company",
)
@limiter.limit(settings.rate_limit)
async def add_driver(
    request: Request,
    company_id: int,
    body: AddDriverRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await CompanyService(db).add_driver(actor.id, company_id, body.driver_id)
    return MessageResponse(message="Driver Successfully Added")


@router.patch(
    "/{company_id}/drivers/{driver_id}",
    response_model=MessageResponse,
    summary="Remove a driver from the company",
    description=(
        "Admins may remove any driver; a driver may remove themself.  The "
        "driver is detached from all of their active bookings."
    ),
)
@limiter.limit(settings.rate_limit)
async def remove_driver(
    request: Request,
    company_id: int,
    driver_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await CompanyService(db).remove_driver(actor.id, company_id, driver_id)
    return MessageResponse(message="Driver Successfully Removed")
