"""
Pydantic request / response schemas for the REST API.

Request models are the validation layer in front of the services: they
own field presence, shapes, the booking scheduling window and the
password / name rules.  The services only apply domain checks on top.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from taxe.config import settings
from taxe.domain.enums import BookingStatus, Role

_EMAIL_RE = re.compile(r"^[^@\s<>()\[\]\\,;:\"]+@([A-Za-z0-9-]+\.)+[A-Za-z]{2,}$")
_NAME_RE = re.compile(r"^[A-Za-z\- ]+$")

PASSWORD_RULE = (
    "Password must be at least 8 characters long and contain at least one number"
)
NAME_RULE = (
    "Names cannot contain any numbers or special characters "
    "and must be at least 4 characters"
)


def validate_booking_time(value: datetime) -> datetime:
    """Booking times must sit between the notice window and the horizon."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = datetime.now(timezone.utc)
    if value < now:
        raise ValueError("Booking time cannot be in the past")
    if value < now + timedelta(minutes=settings.booking_min_notice_minutes):
        raise ValueError(
            "Bookings must be made at least "
            f"{settings.booking_min_notice_minutes} minutes in advance"
        )
    if value > now + timedelta(days=settings.booking_max_advance_days):
        raise ValueError(
            "Bookings cannot be made more than "
            f"{settings.booking_max_advance_days} days in advance"
        )
    return value


def check_password_rule(value: str) -> str:
    if len(value) < 8 or not re.search(r"\d", value):
        raise ValueError(PASSWORD_RULE)
    return value


def check_name_rule(value: str) -> str:
    if len(value) <= 3 or not _NAME_RE.match(value):
        raise ValueError(NAME_RULE)
    return value


# ── Requests ──────────────────────────────────────────────────────────


class BookingCreateRequest(BaseModel):
    pickup_location: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    time: datetime
    no_passengers: int = Field(..., ge=1)
    notes: list[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: datetime) -> datetime:
        return validate_booking_time(value)


class BookingEditRequest(BaseModel):
    driver: Optional[int] = None
    status: Optional[BookingStatus] = None
    time: Optional[datetime] = None
    note: Optional[str] = Field(None, min_length=1, max_length=1000)

    model_config = {"extra": "forbid"}

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return None if value is None else validate_booking_time(value)

    @field_validator("status")
    @classmethod
    def _not_pending(cls, value: Optional[BookingStatus]) -> Optional[BookingStatus]:
        if value is BookingStatus.PENDING:
            raise ValueError("Use the release endpoint to return a booking to Pending")
        return value

    @model_validator(mode="after")
    def _has_changes(self) -> "BookingEditRequest":
        if (
            self.driver is None
            and self.status is None
            and self.time is None
            and self.note is None
        ):
            raise ValueError("No updated information found")
        return self


class ClaimBookingRequest(BaseModel):
    company_id: int


class AddDriverRequest(BaseModel):
    driver_id: int


class UserCreateRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str
    name: str = Field(..., max_length=120)

    model_config = {"extra": "forbid"}

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not _EMAIL_RE.match(value.lower()):
            raise ValueError("Invalid Email Entered")
        return value.lower()

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        return check_password_rule(value)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return check_name_rule(value)


class UserEditRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=120)
    password: Optional[str] = None
    old_password: Optional[str] = None
    available: Optional[bool] = None

    model_config = {"extra": "forbid"}

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else check_password_rule(value)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else check_name_rule(value)

    @model_validator(mode="after")
    def _has_changes(self) -> "UserEditRequest":
        if self.name is None and self.password is None and self.available is None:
            raise ValueError("No updated information found")
        return self


# ── Responses ─────────────────────────────────────────────────────────


class BookingResponse(BaseModel):
    id: int
    pickup_location: str
    destination: str
    time: datetime
    no_passengers: int
    notes: list[str] = []
    status: BookingStatus
    customer_id: int
    driver_id: Optional[int] = None
    company_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    customer_name: Optional[str] = None
    driver_name: Optional[str] = None


class BookingCreatedResponse(BaseModel):
    message: str = "Booking Successfully Created"
    booking_id: int


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: Role
    company_id: Optional[int] = None
    bookings: list[int] = []
    available: bool = False
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LoginResponse(UserResponse):
    token: str


class UserSummaryResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class CompanyResponse(BaseModel):
    id: int
    name: str
    admins: list[int] = []
    drivers: list[int] = []
    bookings: list[int] = []
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    code: int
    message: str
    description: Union[str, list[str]]


# Documented on every router so the error body shows up in /docs.
ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 401, 403, 404)
}
