"""
Tests for restaurant directory and availability endpoints.
"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_restaurant(client: AsyncClient, manager_user, manager_headers):
    """A restaurant manager creates a restaurant and becomes its admin."""
    response = await client.post(
        "/api/v1/restaurants/",
        json={
            "name": "Mzansi Kitchen",
            "cuisine": "South African",
            "location": "Johannesburg",
            "description": "Braai and more",
        },
        headers=manager_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Mzansi Kitchen"
    assert data["capacity"] == 50  # Default per-slot capacity
    assert data["admin_id"] == manager_user.id


@pytest.mark.asyncio
async def test_admin_assigns_restaurant_owner(client: AsyncClient, manager_user, admin_headers):
    response = await client.post(
        "/api/v1/restaurants/",
        json={"name": "Assigned Place", "capacity": 30, "admin_id": manager_user.id},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["admin_id"] == manager_user.id


@pytest.mark.asyncio
async def test_customer_cannot_create_restaurant(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/restaurants/",
        json={"name": "Not Allowed"},
        headers=auth_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_restaurant_unauthenticated(client: AsyncClient):
    response = await client.post("/api/v1/restaurants/", json={"name": "Anon"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_restaurant_invalid_capacity(client: AsyncClient, manager_headers):
    response = await client.post(
        "/api/v1/restaurants/",
        json={"name": "Empty Room", "capacity": 0},
        headers=manager_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_restaurants_with_filters(client: AsyncClient, test_restaurant, manager_headers):
    await client.post(
        "/api/v1/restaurants/",
        json={"name": "Sushi Bar", "cuisine": "Japanese", "location": "Durban"},
        headers=manager_headers,
    )

    response = await client.get("/api/v1/restaurants/?page=1&page_size=10")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [r["name"] for r in data["restaurants"]] == ["Sushi Bar", "Test Bistro"]
    assert data["cached"] is False

    italian = (await client.get("/api/v1/restaurants/?cuisine=italian")).json()
    assert [r["name"] for r in italian["restaurants"]] == ["Test Bistro"]

    durban = (await client.get("/api/v1/restaurants/?location=durb")).json()
    assert [r["name"] for r in durban["restaurants"]] == ["Sushi Bar"]


@pytest.mark.asyncio
async def test_get_restaurant_not_found(client: AsyncClient):
    response = await client.get("/api/v1/restaurants/99999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_restaurant_by_its_admin(client: AsyncClient, test_restaurant, manager_headers):
    response = await client.patch(
        f"/api/v1/restaurants/{test_restaurant.id}",
        json={"capacity": 6, "description": "Bigger now"},
        headers=manager_headers,
    )
    assert response.status_code == 200
    assert response.json()["capacity"] == 6
    assert response.json()["description"] == "Bigger now"


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["capacity", "name"])
async def test_update_restaurant_rejects_null_required_field(
    client: AsyncClient, test_restaurant, manager_headers, field
):
    response = await client.patch(
        f"/api/v1/restaurants/{test_restaurant.id}",
        json={field: None},
        headers=manager_headers,
    )
    assert response.status_code == 422

    unchanged = (await client.get(f"/api/v1/restaurants/{test_restaurant.id}")).json()
    assert unchanged["capacity"] == 4
    assert unchanged["name"] == "Test Bistro"


@pytest.mark.asyncio
async def test_update_restaurant_can_clear_optional_field(client: AsyncClient, test_restaurant, manager_headers):
    response = await client.patch(
        f"/api/v1/restaurants/{test_restaurant.id}",
        json={"description": None},
        headers=manager_headers,
    )
    assert response.status_code == 200
    assert response.json()["description"] is None
    assert response.json()["capacity"] == 4


@pytest.mark.asyncio
async def test_update_restaurant_forbidden_for_others(client: AsyncClient, test_restaurant, auth_headers):
    response = await client.patch(
        f"/api/v1/restaurants/{test_restaurant.id}",
        json={"capacity": 100},
        headers=auth_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_availability_reflects_bookings(client: AsyncClient, test_restaurant, auth_headers, booking_date):
    booked = await client.post(
        "/api/v1/bookings/",
        json={
            "restaurant_id": test_restaurant.id,
            "date": booking_date.isoformat(),
            "time": "19:00",
            "party_size": 3,
        },
        headers=auth_headers,
    )
    assert booked.status_code == 201

    response = await client.get(
        f"/api/v1/restaurants/{test_restaurant.id}/availability",
        params={"date": booking_date.isoformat(), "party_size": 2},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_capacity"] == 4
    assert data["current_bookings"] == 3
    assert "19:00" not in data["available_times"]
    assert len(data["available_times"]) == 14
    slots = {s["time"]: s["remaining"] for s in data["slots"]}
    assert slots["19:00"] == 1
    assert slots["12:00"] == 4


@pytest.mark.asyncio
async def test_availability_for_past_date_is_empty(client: AsyncClient, test_restaurant):
    yesterday = date.today() - timedelta(days=1)
    response = await client.get(
        f"/api/v1/restaurants/{test_restaurant.id}/availability",
        params={"date": yesterday.isoformat()},
    )
    assert response.status_code == 200
    assert response.json()["available_times"] == []


@pytest.mark.asyncio
async def test_restaurant_bookings_visible_to_its_admin_only(
    client: AsyncClient, test_restaurant, auth_headers, manager_headers, booking_date
):
    await client.post(
        "/api/v1/bookings/",
        json={
            "restaurant_id": test_restaurant.id,
            "date": booking_date.isoformat(),
            "time": "12:30",
            "party_size": 2,
        },
        headers=auth_headers,
    )

    response = await client.get(
        f"/api/v1/restaurants/{test_restaurant.id}/bookings",
        params={"date": booking_date.isoformat()},
        headers=manager_headers,
    )
    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.json()[0]["time"] == "12:30"

    forbidden = await client.get(f"/api/v1/restaurants/{test_restaurant.id}/bookings", headers=auth_headers)
    assert forbidden.status_code == 403
