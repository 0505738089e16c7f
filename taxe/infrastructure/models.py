"""
SQLAlchemy ORM models.

Tables
------
* ``users``      -- customers, drivers and company admins
* ``companies``  -- taxi companies with their admin / driver rosters
* ``bookings``   -- ride bookings and their audit notes

Back-references
---------------
``users.bookings`` and ``companies.{admins,drivers,bookings}`` are
denormalized id lists stored as JSON.  The booking row owns its
customer / driver / company foreign keys; the lists are kept in step by
the services in the same unit of work.

Indexes
-------
* **B-Tree** on ``bookings.status`` (unallocated pool), ``bookings.customer_id``
  plus ``created_at`` (most recent booking look-up) and ``users.email``.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.ext.mutable import MutableList

from .database import Base
from taxe.domain.entities import Booking, Company, User
from taxe.domain.enums import BookingStatus, Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


IdList = MutableList.as_mutable(JSON)
NoteList = MutableList.as_mutable(JSON)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    password = Column(String(255), nullable=False)
    name = Column(String(120), nullable=False)
    role = Column(
        Enum(Role, values_callable=_enum_values, name="role"),
        default=Role.CUSTOMER,
        nullable=False,
    )
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    bookings = Column(IdList, default=list, nullable=False)
    available = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (Index("idx_users_company", "company_id"),)

    def to_entity(self) -> User:
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            role=Role(self.role),
            company_id=self.company_id,
            bookings=list(self.bookings or []),
            available=bool(self.available),
            created_at=self.created_at,
        )


class CompanyModel(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), unique=True, nullable=False)
    admins = Column(IdList, default=list, nullable=False)
    drivers = Column(IdList, default=list, nullable=False)
    bookings = Column(IdList, default=list, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def to_entity(self) -> Company:
        return Company(
            id=self.id,
            name=self.name,
            admins=list(self.admins or []),
            drivers=list(self.drivers or []),
            bookings=list(self.bookings or []),
            created_at=self.created_at,
        )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pickup_location = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    time = Column(DateTime(timezone=True), nullable=False)
    no_passengers = Column(Integer, nullable=False)
    notes = Column(NoteList, default=list, nullable=False)
    status = Column(
        Enum(BookingStatus, values_callable=_enum_values, name="booking_status"),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_customer_created", "customer_id", "created_at"),
        Index("idx_bookings_driver", "driver_id"),
        Index("idx_bookings_company", "company_id"),
    )

    def to_entity(self) -> Booking:
        return Booking(
            id=self.id,
            pickup_location=self.pickup_location,
            destination=self.destination,
            time=self.time,
            no_passengers=self.no_passengers,
            notes=list(self.notes or []),
            status=BookingStatus(self.status),
            customer_id=self.customer_id,
            driver_id=self.driver_id,
            company_id=self.company_id,
            created_at=self.created_at,
        )
