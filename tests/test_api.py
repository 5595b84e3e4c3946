"""
Integration tests for the REST API endpoints.

Routes run against the SQLite test database through a ``get_db`` override;
Redis is replaced by an ``AsyncMock`` where the idempotency lock is used.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from src.domain.enums import UserRole
from src.infrastructure.repositories import BookingRepository
from src.services.seat_inventory import SeatInventory


def as_caller(user_id: str, role: UserRole) -> dict[str, str]:
    return {"X-User-Id": user_id, "X-User-Role": role.value}


RIDE_BODY = {
    "vehicle_id": "veh-42",
    "departure": "Paris",
    "destination": "Bordeaux",
    "departure_time": "2026-06-01T08:00:00Z",
    "estimated_arrival": "2026-06-01T13:45:00Z",
    "stops": [{"name": "Nice Centre", "lat": 43.7034, "lng": 7.2663, "order": 1}],
    "price": 40.0,
    "capacity": 1,
}


async def _publish_ride(client, driver_id, **overrides):
    body = {**RIDE_BODY, **overrides}
    resp = await client.post(
        "/api/v1/rides", json=body, headers=as_caller(driver_id, UserRole.DRIVER)
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _book(client, rider_id, ride_id, headers=None):
    return await client.post(
        "/api/v1/bookings",
        json={"ride_id": ride_id, "vehicle_type_id": "vt-eco", "price": 40.0},
        headers={**as_caller(rider_id, UserRole.USER), **(headers or {})},
    )


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/v1/admin/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_statuses(self, client):
        resp = await client.get("/api/v1/bookings/statuses")
        body = resp.json()
        assert body["status_code"] == 200
        assert body["data"] == ["PENDING", "CONFIRMED", "STARTED", "COMPLETED", "CANCELLED"]

    @pytest.mark.asyncio
    async def test_missing_identity_is_401(self, client):
        resp = await client.get("/api/v1/bookings/mine")
        assert resp.status_code == 401
        assert resp.json()["status_code"] == 401
        assert resp.json()["data"] is None

    @pytest.mark.asyncio
    async def test_unknown_role_is_400(self, client):
        resp = await client.get(
            "/api/v1/bookings/mine", headers={"X-User-Id": "u1", "X-User-Role": "ADMIN"}
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "InvalidArgumentError"

    @pytest.mark.asyncio
    async def test_unknown_booking_is_404(self, client, users):
        resp = await client.get(
            "/api/v1/bookings/nope", headers=as_caller(users["rider_a"], UserRole.USER)
        )
        assert resp.status_code == 404
        body = resp.json()
        assert body["message"] == "Booking not found"
        assert body["details"] == {"booking_id": "nope"}

    @pytest.mark.asyncio
    async def test_validation_error_is_wrapped(self, client, users):
        resp = await client.post(
            "/api/v1/bookings",
            json={"ride_id": "r1", "price": -5},
            headers=as_caller(users["rider_a"], UserRole.USER),
        )
        assert resp.status_code == 422
        assert resp.json()["message"] == "Invalid request"


class TestRideEndpoints:
    @pytest.mark.asyncio
    async def test_publish_ride(self, client, users):
        ride = await _publish_ride(client, users["driver_a"], capacity=3)
        assert ride["available_seats"] == 3
        assert ride["estimated_duration"] == "05:45"
        assert ride["stops"][0]["name"] == "Nice Centre"

    @pytest.mark.asyncio
    async def test_rider_cannot_publish(self, client, users):
        resp = await client.post(
            "/api/v1/rides", json=RIDE_BODY, headers=as_caller(users["rider_a"], UserRole.USER)
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_search_via_stops(self, client, users):
        ride = await _publish_ride(client, users["driver_a"])

        resp = await client.get(
            "/api/v1/rides/search", params={"depart": "Nice", "destination": "Bordeaux"}
        )
        body = resp.json()
        assert body["message"] == "Rides found via stops"
        assert body["data"]["via_fallback"] is True
        assert [r["id"] for r in body["data"]["data"]] == [ride["id"]]

    @pytest.mark.asyncio
    async def test_search_direct(self, client, users):
        await _publish_ride(client, users["driver_a"])
        resp = await client.get("/api/v1/rides/search", params={"depart": "paris"})
        body = resp.json()
        assert body["message"] == "Rides found successfully"
        assert body["data"]["total"] == 1
        assert body["data"]["via_fallback"] is False

    @pytest.mark.asyncio
    async def test_search_without_terms_is_400(self, client):
        resp = await client.get("/api/v1/rides/search")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_capacity_edit_and_delete(self, client, users):
        driver = as_caller(users["driver_a"], UserRole.DRIVER)
        ride = await _publish_ride(client, users["driver_a"], capacity=2)
        booking = (await _book(client, users["rider_a"], ride["id"])).json()["data"]

        resp = await client.patch(f"/api/v1/rides/{ride['id']}", json={"capacity": 4}, headers=driver)
        assert resp.json()["data"]["available_seats"] == 3

        resp = await client.delete(f"/api/v1/rides/{ride['id']}", headers=driver)
        assert resp.status_code == 409

        await client.patch(
            f"/api/v1/bookings/{booking['id']}/cancel",
            headers=as_caller(users["rider_a"], UserRole.USER),
        )
        resp = await client.delete(f"/api/v1/rides/{ride['id']}", headers=driver)
        assert resp.status_code == 200
        assert (await client.get(f"/api/v1/rides/{ride['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_driver_lists_own_rides(self, client, users):
        await _publish_ride(client, users["driver_a"])
        await _publish_ride(client, users["driver_b"])
        resp = await client.get(
            "/api/v1/rides/driver/mine", headers=as_caller(users["driver_b"], UserRole.DRIVER)
        )
        data = resp.json()["data"]
        assert data["total"] == 1
        assert data["data"][0]["driver_id"] == users["driver_b"]


class TestBookingFlow:
    @pytest.mark.asyncio
    async def test_capacity_one_scenario(self, client, users):
        ride = await _publish_ride(client, users["driver_a"], capacity=1)

        first = await _book(client, users["rider_a"], ride["id"])
        assert first.status_code == 201
        assert first.json()["data"]["status"] == "PENDING"

        second = await _book(client, users["rider_b"], ride["id"])
        assert second.status_code == 409
        assert second.json()["code"] == "NoSeatsAvailableError"

        cancel = await client.patch(
            f"/api/v1/bookings/{first.json()['data']['id']}/cancel",
            headers=as_caller(users["rider_a"], UserRole.USER),
        )
        assert cancel.status_code == 200
        assert cancel.json()["message"] == "Booking cancelled by the rider"
        assert cancel.json()["data"]["status"] == "CANCELLED"

        again = await _book(client, users["rider_b"], ride["id"])
        assert again.status_code == 201

        audit_url = f"/api/v1/admin/rides/{ride['id']}/seat-audit"
        assert (await client.get(audit_url)).status_code == 401
        audit = (
            await client.get(audit_url, headers=as_caller(users["driver_a"], UserRole.DRIVER))
        ).json()
        assert audit["data"]["available_seats"] == 0
        assert audit["data"]["consistent"] is True

    @pytest.mark.asyncio
    async def test_driver_lifecycle_and_gating(self, client, users):
        ride = await _publish_ride(client, users["driver_a"], capacity=2)
        booking_id = (await _book(client, users["rider_a"], ride["id"])).json()["data"]["id"]
        driver_a = as_caller(users["driver_a"], UserRole.DRIVER)

        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}/validate",
            headers=as_caller(users["driver_b"], UserRole.DRIVER),
        )
        assert resp.status_code == 403

        resp = await client.patch(
            f"/api/v1/bookings/{booking_id}/validate",
            headers=as_caller(users["rider_a"], UserRole.USER),
        )
        assert resp.status_code == 403

        resp = await client.patch(f"/api/v1/bookings/{booking_id}/complete", headers=driver_a)
        assert resp.status_code == 409
        assert resp.json()["code"] == "InvalidStateTransition"

        for action, status in (("validate", "CONFIRMED"), ("start", "STARTED"), ("complete", "COMPLETED")):
            resp = await client.patch(f"/api/v1/bookings/{booking_id}/{action}", headers=driver_a)
            assert resp.status_code == 200
            assert resp.json()["data"]["status"] == status

        resp = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=driver_a)
        assert resp.status_code == 409

        rides_bookings = await client.get(f"/api/v1/rides/{ride['id']}/bookings", headers=driver_a)
        assert rides_bookings.json()["data"]["total"] == 1

    @pytest.mark.asyncio
    async def test_my_bookings(self, client, users):
        ride = await _publish_ride(client, users["driver_a"], capacity=3)
        await _book(client, users["rider_a"], ride["id"])
        await _book(client, users["rider_a"], ride["id"])
        await _book(client, users["rider_b"], ride["id"])

        resp = await client.get(
            "/api/v1/bookings/mine",
            params={"page": 1, "limit": 1},
            headers=as_caller(users["rider_a"], UserRole.USER),
        )
        data = resp.json()["data"]
        assert (data["total"], data["page"], data["limit"], len(data["data"])) == (2, 1, 1, 1)

    @pytest.mark.asyncio
    async def test_idempotency_key_replays_booking(self, client, users):
        ride = await _publish_ride(client, users["driver_a"], capacity=2)
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        with patch(
            "src.api.routes.bookings.get_redis", AsyncMock(return_value=mock_redis)
        ):
            key = {"Idempotency-Key": "client-retry-1"}
            first = await _book(client, users["rider_a"], ride["id"], headers=key)
            retry = await _book(client, users["rider_a"], ride["id"], headers=key)

        assert first.status_code == retry.status_code == 201
        assert first.json()["data"]["id"] == retry.json()["data"]["id"]
        ride_now = (await client.get(f"/api/v1/rides/{ride['id']}")).json()["data"]
        assert ride_now["available_seats"] == 1
        assert mock_redis.eval.call_count == 2

    @pytest.mark.asyncio
    async def test_in_flight_idempotency_key_is_409(self, client, users):
        ride = await _publish_ride(client, users["driver_a"], capacity=2)
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        with patch(
            "src.api.routes.bookings.get_redis", AsyncMock(return_value=mock_redis)
        ):
            resp = await _book(
                client, users["rider_a"], ride["id"], headers={"Idempotency-Key": "busy"}
            )
        assert resp.status_code == 409
        ride_now = (await client.get(f"/api/v1/rides/{ride['id']}")).json()["data"]
        assert ride_now["available_seats"] == 2


class TestRollbackOnFailure:
    """A store failure after a partial write leaves no trace once the request fails."""

    @pytest.mark.asyncio
    async def test_failed_seat_release_keeps_booking_confirmed(self, client, users):
        ride = await _publish_ride(client, users["driver_a"], capacity=2)
        booking_id = (await _book(client, users["rider_a"], ride["id"])).json()["data"]["id"]
        rider = as_caller(users["rider_a"], UserRole.USER)
        await client.patch(
            f"/api/v1/bookings/{booking_id}/validate",
            headers=as_caller(users["driver_a"], UserRole.DRIVER),
        )

        lost = OperationalError("UPDATE rides", {}, Exception("connection lost"))
        with patch.object(SeatInventory, "release_seat", AsyncMock(side_effect=lost)):
            resp = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=rider)
        assert resp.status_code == 500
        assert resp.json()["code"] == "InternalError"

        booking = (await client.get(f"/api/v1/bookings/{booking_id}", headers=rider)).json()
        assert booking["data"]["status"] == "CONFIRMED"
        ride_now = (await client.get(f"/api/v1/rides/{ride['id']}")).json()["data"]
        assert ride_now["available_seats"] == 1

    @pytest.mark.asyncio
    async def test_failed_insert_gives_the_seat_back(self, client, users):
        ride = await _publish_ride(client, users["driver_a"], capacity=1)

        lost = OperationalError("INSERT INTO bookings", {}, Exception("connection lost"))
        with patch.object(BookingRepository, "create", AsyncMock(side_effect=lost)):
            resp = await _book(client, users["rider_a"], ride["id"])
        assert resp.status_code == 500

        ride_now = (await client.get(f"/api/v1/rides/{ride['id']}")).json()["data"]
        assert ride_now["available_seats"] == 1
        mine = await client.get(
            "/api/v1/bookings/mine", headers=as_caller(users["rider_a"], UserRole.USER)
        )
        assert mine.json()["data"]["total"] == 0
        assert (await _book(client, users["rider_b"], ride["id"])).status_code == 201
