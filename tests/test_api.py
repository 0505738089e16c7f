"""
Integration tests for the REST API endpoints.

Uses the in-memory SQLite database and a mocked Redis; every request goes
through the real routers, dependencies and error handlers.
"""

import base64
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import AsyncClient

from taxe.domain.enums import BookingStatus
from tests.conftest import PASSWORD, Factory, auth, in_hours


def basic(email: str, password: str) -> dict:
    raw = base64.b64encode(f"{email}:{password}".encode()).decode()
    return {"Authorization": f"Basic {raw}"}


def booking_body(**overrides) -> dict:
    body = {
        "pickup_location": "Central Station",
        "destination": "Airport",
        "time": in_hours(2).isoformat(),
        "no_passengers": 2,
    }
    body.update(overrides)
    return body


@pytest_asyncio.fixture
async def world(session_factory):
    async with session_factory() as session:
        f = Factory(session)
        customer = await f.user("Carla Customer", email="carla@example.com")
        stranger = await f.user("Sam Stranger")
        admin = await f.user("Alice Admin")
        driver = await f.user("Dan Driver")
        company = await f.company("City Cabs", admins=[admin], drivers=[driver])
        recruit = await f.user("Rita Recruit")
        await session.commit()
    return SimpleNamespace(
        customer=customer,
        stranger=stranger,
        admin=admin,
        driver=driver,
        company=company,
        recruit=recruit,
    )


async def create_booking(client: AsyncClient, customer) -> int:
    resp = await client.post(
        "/api/v1/bookings", json=booking_body(), headers=auth(customer)
    )
    assert resp.status_code == 201
    return resp.json()["booking_id"]


# ── Service ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── Users ─────────────────────────────────────────────────────────────


class TestUsers:
    @pytest.mark.asyncio
    async def test_register_and_login(self, client: AsyncClient):
        resp = await client.post(
            "/api/v1/users",
            json={"email": "New@Example.com", "password": PASSWORD, "name": "New User"},
        )
        assert resp.status_code == 201

        resp = await client.post(
            "/api/v1/users/login", headers=basic("new@example.com", PASSWORD)
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["email"] == "new@example.com"
        assert data["role"] == "Customer"
        assert data["token"]
        assert "password" not in data

    @pytest.mark.asyncio
    async def test_register_duplicate(self, client: AsyncClient, world):
        resp = await client.post(
            "/api/v1/users",
            json={"email": "carla@example.com", "password": PASSWORD, "name": "Carla"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == 5

    @pytest.mark.asyncio
    async def test_register_validation(self, client: AsyncClient):
        resp = await client.post(
            "/api/v1/users",
            json={"email": "not-an-email", "password": "short", "name": "X1"},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == 7
        assert len(body["description"]) == 3

    @pytest.mark.asyncio
    async def test_login_failures(self, client: AsyncClient, world):
        resp = await client.post(
            "/api/v1/users/login", headers=basic("carla@example.com", "wrong-pass1")
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 6

        resp = await client.post("/api/v1/users/login")
        assert resp.json()["code"] == 6

    @pytest.mark.asyncio
    async def test_profile_hides_password(self, client: AsyncClient, world):
        resp = await client.get(
            f"/api/v1/users/{world.customer.id}", headers=auth(world.stranger)
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Carla Customer"
        assert "password" not in resp.json()

    @pytest.mark.asyncio
    async def test_edit_someone_else(self, client: AsyncClient, world):
        resp = await client.patch(
            f"/api/v1/users/{world.customer.id}",
            json={"name": "Hijacked"},
            headers=auth(world.stranger),
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 13

    @pytest.mark.asyncio
    async def test_user_bookings(self, client: AsyncClient, world):
        booking_id = await create_booking(client, world.customer)
        resp = await client.get(
            f"/api/v1/users/{world.customer.id}/bookings",
            params={"limit": 5, "active": "true"},
            headers=auth(world.customer),
        )
        assert resp.status_code == 200
        assert [b["id"] for b in resp.json()] == [booking_id]


# ── Tokens and roles ──────────────────────────────────────────────────


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient):
        resp = await client.get("/api/v1/bookings/1")
        assert resp.status_code == 401
        assert resp.json()["code"] == 3

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient):
        resp = await client.get(
            "/api/v1/bookings/1", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 1

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, world):
        from jose import jwt

        from taxe.config import settings

        token = jwt.encode(
            {
                "sub": str(world.customer.id),
                "role": "Customer",
                "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
            },
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        resp = await client.get(
            "/api/v1/bookings/1", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 2

    @pytest.mark.asyncio
    async def test_role_gates(self, client: AsyncClient, world):
        resp = await client.post(
            "/api/v1/bookings", json=booking_body(), headers=auth(world.admin)
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 9

        resp = await client.get("/api/v1/bookings", headers=auth(world.customer))
        assert resp.json()["code"] == 9

        resp = await client.patch(
            "/api/v1/bookings/1/release", headers=auth(world.customer)
        )
        assert resp.json()["code"] == 9

    @pytest.mark.asyncio
    async def test_malformed_path_id(self, client: AsyncClient, world):
        resp = await client.get(
            "/api/v1/bookings/not-an-id", headers=auth(world.customer)
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == 8


# ── Bookings ──────────────────────────────────────────────────────────


class TestBookings:
    @pytest.mark.asyncio
    async def test_create_and_view(self, client: AsyncClient, world):
        booking_id = await create_booking(client, world.customer)

        resp = await client.get(
            f"/api/v1/bookings/{booking_id}", headers=auth(world.customer)
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "Pending"
        assert data["driver_id"] is None
        assert data["company_id"] is None
        assert data["customer_name"] == "Carla Customer"

    @pytest.mark.asyncio
    async def test_second_active_booking_refused(self, client: AsyncClient, world):
        await create_booking(client, world.customer)
        resp = await client.post(
            "/api/v1/bookings", json=booking_body(), headers=auth(world.customer)
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 11

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"time": (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()},
            {"time": in_hours(0.05).isoformat()},
            {"time": in_hours(24 * 365).isoformat()},
            {"no_passengers": 0},
            {"company": 1},
        ],
    )
    async def test_create_validation(self, client: AsyncClient, world, overrides):
        resp = await client.post(
            "/api/v1/bookings",
            json=booking_body(**overrides),
            headers=auth(world.customer),
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == 7

    @pytest.mark.asyncio
    async def test_stranger_cannot_view(self, client: AsyncClient, world):
        booking_id = await create_booking(client, world.customer)
        resp = await client.get(
            f"/api/v1/bookings/{booking_id}", headers=auth(world.stranger)
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 12

    @pytest.mark.asyncio
    async def test_not_found(self, client: AsyncClient, world):
        resp = await client.get("/api/v1/bookings/999", headers=auth(world.customer))
        assert resp.status_code == 404
        assert resp.json()["code"] == 10

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, client: AsyncClient, world, mock_redis):
        booking_id = await create_booking(client, world.customer)

        resp = await client.get("/api/v1/bookings", headers=auth(world.admin))
        assert [b["id"] for b in resp.json()] == [booking_id]

        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}/claim",
            json={"company_id": world.company.id},
            headers=auth(world.admin),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "In_Progress"
        assert resp.json()["company_id"] == world.company.id
        mock_redis.set.assert_awaited()
        mock_redis.eval.assert_awaited()

        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}",
            json={"driver": world.driver.id},
            headers=auth(world.admin),
        )
        assert resp.status_code == 200
        assert resp.json()["driver_id"] == world.driver.id

        for status in ("Arrived", "Finished"):
            resp = await client.patch(
                f"/api/v1/bookings/{booking_id}",
                json={"status": status},
                headers=auth(world.driver),
            )
            assert resp.status_code == 200
            assert resp.json()["status"] == status

        notes = resp.json()["notes"]
        assert notes == [
            "Booking Claimed by: City Cabs",
            "Booking Status Changed From In_Progress to Arrived",
            "Booking Status Changed From Arrived to Finished",
        ]

        # Finished bookings free the customer to book again.
        await create_booking(client, world.customer)

    @pytest.mark.asyncio
    async def test_release_returns_booking_to_pool(self, client: AsyncClient, world):
        booking_id = await create_booking(client, world.customer)
        await client.patch(
            f"/api/v1/bookings/{booking_id}/claim",
            json={"company_id": world.company.id},
            headers=auth(world.admin),
        )

        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}/release", headers=auth(world.admin)
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "Pending"
        assert data["company_id"] is None
        assert data["notes"][-1] == "Booking Released"

    @pytest.mark.asyncio
    async def test_customer_cannot_set_status(self, client: AsyncClient, world):
        booking_id = await create_booking(client, world.customer)
        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}",
            json={"status": "Cancelled"},
            headers=auth(world.customer),
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 13

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [{}, {"status": "Pending"}, {"company": 1}]
    )
    async def test_edit_validation(self, client: AsyncClient, world, body):
        booking_id = await create_booking(client, world.customer)
        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}", json=body, headers=auth(world.customer)
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == 7

    @pytest.mark.asyncio
    async def test_claim_while_locked(self, client: AsyncClient, world, mock_redis):
        booking_id = await create_booking(client, world.customer)
        mock_redis.set.return_value = False

        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}/claim",
            json={"company_id": world.company.id},
            headers=auth(world.admin),
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 14

        resp = await client.get(
            f"/api/v1/bookings/{booking_id}", headers=auth(world.customer)
        )
        assert resp.json()["status"] == BookingStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_edit_while_locked(self, client: AsyncClient, world, mock_redis):
        booking_id = await create_booking(client, world.customer)
        mock_redis.set.return_value = False

        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}",
            json={"note": "Two suitcases"},
            headers=auth(world.customer),
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 14
        mock_redis.set.assert_awaited_once()
        assert mock_redis.set.await_args.args[0] == f"lock:booking:{booking_id}"

        resp = await client.get(
            f"/api/v1/bookings/{booking_id}", headers=auth(world.customer)
        )
        assert "Two suitcases" not in resp.json()["notes"]

    @pytest.mark.asyncio
    async def test_failed_claim_is_rolled_back(self, client: AsyncClient, world):
        booking_id = await create_booking(client, world.customer)
        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}/claim",
            json={"company_id": 999},
            headers=auth(world.admin),
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == 15


# ── Companies ─────────────────────────────────────────────────────────


class TestCompanies:
    @pytest.mark.asyncio
    async def test_view_company_and_rosters(self, client: AsyncClient, world):
        cid = world.company.id
        resp = await client.get(f"/api/v1/companies/{cid}", headers=auth(world.driver))
        assert resp.status_code == 200
        assert resp.json()["name"] == "City Cabs"

        resp = await client.get(
            f"/api/v1/companies/{cid}/drivers", headers=auth(world.admin)
        )
        assert resp.json() == [{"id": world.driver.id, "name": "Dan Driver"}]

        resp = await client.get(
            f"/api/v1/companies/{cid}/admins", headers=auth(world.admin)
        )
        assert resp.json() == [{"id": world.admin.id, "name": "Alice Admin"}]

    @pytest.mark.asyncio
    async def test_outsider_refused(self, client: AsyncClient, world):
        resp = await client.get(
            f"/api/v1/companies/{world.company.id}", headers=auth(world.stranger)
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 12

    @pytest.mark.asyncio
    async def test_missing_company(self, client: AsyncClient, world):
        resp = await client.get("/api/v1/companies/999", headers=auth(world.admin))
        assert resp.status_code == 404
        assert resp.json()["code"] == 15

    @pytest.mark.asyncio
    async def test_add_and_remove_driver(self, client: AsyncClient, world):
        cid = world.company.id
        resp = await client.patch(
            f"/api/v1/companies/{cid}/drivers",
            json={"driver_id": world.recruit.id},
            headers=auth(world.admin),
        )
        assert resp.status_code == 200

        resp = await client.patch(
            f"/api/v1/companies/{cid}/drivers",
            json={"driver_id": world.recruit.id},
            headers=auth(world.admin),
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 16

        resp = await client.patch(
            f"/api/v1/companies/{cid}/drivers/{world.recruit.id}",
            headers=auth(world.admin),
        )
        assert resp.status_code == 200

        resp = await client.get(
            f"/api/v1/users/{world.recruit.id}", headers=auth(world.recruit)
        )
        assert resp.json()["role"] == "Customer"
        assert resp.json()["company_id"] is None

    @pytest.mark.asyncio
    async def test_company_bookings(self, client: AsyncClient, world):
        booking_id = await create_booking(client, world.customer)
        await client.patch(
            f"/api/v1/bookings/{booking_id}/claim",
            json={"company_id": world.company.id},
            headers=auth(world.admin),
        )
        resp = await client.get(
            f"/api/v1/companies/{world.company.id}/bookings",
            params={"active": "true"},
            headers=auth(world.driver),
        )
        assert resp.status_code == 200
        assert [b["id"] for b in resp.json()] == [booking_id]
