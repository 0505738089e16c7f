"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 2 companies, each with one admin and two drivers
  - 6 customers
  - 6 bookings (mix of Pending, In_Progress, Arrived, Finished, Cancelled)

Every seeded account uses the password ``password123``.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from taxe.domain.enums import BookingStatus, Role
from taxe.infrastructure.database import async_session_factory, engine
from taxe.infrastructure.repositories import (
    BookingRepository,
    CompanyRepository,
    UserRepository,
)
from taxe.infrastructure.security import hash_password

PASSWORD = "password123"

COMPANIES = [
    {
        "name": "City Cabs",
        "admin": {"name": "Alice Admin", "email": "alice@citycabs.example"},
        "drivers": [
            {"name": "Dan Driver", "email": "dan@citycabs.example"},
            {"name": "Dora Driver", "email": "dora@citycabs.example"},
        ],
    },
    {
        "name": "Harbour Taxis",
        "admin": {"name": "Hugo Admin", "email": "hugo@harbour.example"},
        "drivers": [
            {"name": "Hanna Driver", "email": "hanna@harbour.example"},
            {"name": "Harry Driver", "email": "harry@harbour.example"},
        ],
    },
]

CUSTOMERS = [
    {"name": "Carla Customer", "email": "carla@example.com"},
    {"name": "Colin Customer", "email": "colin@example.com"},
    {"name": "Cora Customer", "email": "cora@example.com"},
    {"name": "Cyril Customer", "email": "cyril@example.com"},
    {"name": "Celia Customer", "email": "celia@example.com"},
    {"name": "Conor Customer", "email": "conor@example.com"},
]

# (customer index, company index or None, driver index or None, status)
BOOKINGS = [
    (0, None, None, BookingStatus.PENDING),
    (1, None, None, BookingStatus.PENDING),
    (2, 0, None, BookingStatus.IN_PROGRESS),
    (3, 0, 0, BookingStatus.ARRIVED),
    (4, 1, 0, BookingStatus.FINISHED),
    (5, 1, 1, BookingStatus.CANCELLED),
]

ROUTES = [
    ("Central Station", "Airport Terminal 1"),
    ("Old Town Square", "University Campus"),
    ("Harbour Front", "Central Station"),
    ("Airport Terminal 2", "Riverside Hotel"),
    ("Stadium", "Old Town Square"),
    ("University Campus", "Harbour Front"),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        users = UserRepository(session)
        companies = CompanyRepository(session)
        bookings = BookingRepository(session)
        password_hash = hash_password(PASSWORD)

        # ── Companies, admins and drivers ─────────────────────────────
        company_models = []
        driver_models = []
        for c in COMPANIES:
            company = await companies.create_company(name=c["name"])
            admin = await users.create_user(
                email=c["admin"]["email"],
                password_hash=password_hash,
                name=c["admin"]["name"],
                role=Role.COMPANY_ADMIN,
                company_id=company.id,
            )
            company.admins.append(admin.id)

            drivers = []
            for d in c["drivers"]:
                driver = await users.create_user(
                    email=d["email"],
                    password_hash=password_hash,
                    name=d["name"],
                    role=Role.DRIVER,
                    company_id=company.id,
                )
                driver.available = True
                company.drivers.append(driver.id)
                drivers.append(driver)

            company_models.append(company)
            driver_models.append(drivers)
        await session.flush()
        print(f"  Created {len(company_models)} companies")

        # ── Customers ─────────────────────────────────────────────────
        customer_models = []
        for c in CUSTOMERS:
            customer = await users.create_user(
                email=c["email"], password_hash=password_hash, name=c["name"]
            )
            customer_models.append(customer)
        print(f"  Created {len(customer_models)} customers")

        # ── Bookings ──────────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        for i, (cust, comp, drv, status) in enumerate(BOOKINGS):
            customer = customer_models[cust]
            pickup, destination = ROUTES[i]
            booking = await bookings.create_booking(
                customer_id=customer.id,
                pickup_location=pickup,
                destination=destination,
                time=now + timedelta(hours=i + 1),
                no_passengers=1 + i % 3,
            )
            customer.bookings.append(booking.id)

            if comp is not None:
                company = company_models[comp]
                booking.company_id = company.id
                company.bookings.append(booking.id)
                booking.notes.append(f"Booking Claimed by: {company.name}")
            if drv is not None:
                driver = driver_models[comp][drv]
                booking.driver_id = driver.id
                driver.bookings.append(booking.id)
            booking.status = status
        await session.flush()
        print(f"  Created {len(BOOKINGS)} bookings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
