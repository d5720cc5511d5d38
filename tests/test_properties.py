import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi import status

from conftest import OTHER_WALLET, WALLET, make_property_row
from marketplace.db.supabase import SupabaseError, SupabaseResponse
from marketplace.schemas.property import PropertyOut


def mock_supabase(**methods):
    db = MagicMock()
    for name, value in methods.items():
        setattr(db, name, AsyncMock(**value) if isinstance(value, dict) else value)
    return db


@pytest.mark.asyncio
@patch("marketplace.routers.properties.list_properties", new_callable=AsyncMock)
async def test_list_properties_returns_camel_case(mock_list, client):
    mock_list.return_value = ([PropertyOut.from_row(make_property_row(available_shares=640))], 1)

    response = await client.get("/api/properties")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["total"] == 1
    item = body["data"][0]
    assert item["shares"] == 1000
    assert item["availableShares"] == 640
    assert item["propertyType"] == "Residential"
    assert item["ownerAddress"] == WALLET.lower()
    assert item["monthlyIncome"] == "1800"
    assert "available_shares" not in item


@pytest.mark.asyncio
@patch("marketplace.routers.properties.list_properties", new_callable=AsyncMock)
async def test_list_properties_parses_filters(mock_list, client):
    mock_list.return_value = ([], 0)

    response = await client.get(
        "/api/properties?search=loft&propertyType=Residential&tags=Luxury,Residential&limit=5&offset=10"
    )

    assert response.status_code == status.HTTP_200_OK
    filters = mock_list.call_args.args[0]
    assert filters.search == "loft"
    assert filters.property_type == "Residential"
    assert filters.tags == ["Luxury", "Residential"]
    assert filters.status == "active"
    assert filters.limit == 5
    assert filters.offset == 10


@pytest.mark.asyncio
@patch("marketplace.routers.properties.list_properties", new_callable=AsyncMock)
async def test_list_properties_invalid_price_range(mock_list, client):
    response = await client.get("/api/properties?minPrice=5000&maxPrice=1000")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"success": False, "error": "minPrice cannot be greater than maxPrice"}
    mock_list.assert_not_called()


@pytest.mark.asyncio
@patch("marketplace.routers.properties.list_properties", new_callable=AsyncMock)
async def test_list_properties_database_failure(mock_list, client):
    mock_list.side_effect = SupabaseError("relation does not exist", code="42P01")

    response = await client.get("/api/properties")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"success": False, "error": "Internal server error"}


@pytest.mark.asyncio
async def test_create_property_requires_wallet(client):
    response = await client.post("/api/properties", json={"title": "Loft"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"].startswith("Wallet address not provided")


@pytest.mark.asyncio
@pytest.mark.parametrize("payload, message", [
    ({"location": "Dubai", "price": "100", "shares": 10}, "Property title is required"),
    ({"title": "  ", "location": "Dubai", "price": "100", "shares": 10}, "Property title is required"),
    ({"title": "Loft", "price": "100", "shares": 10}, "Property location is required"),
    ({"title": "Loft", "location": "Dubai", "shares": 10}, "Valid property price is required"),
    ({"title": "Loft", "location": "Dubai", "price": "0", "shares": 10}, "Valid property price is required"),
    ({"title": "Loft", "location": "Dubai", "price": "100"}, "Valid number of shares is required"),
    ({"title": "Loft", "location": "Dubai", "price": "100", "shares": -3}, "Valid number of shares is required"),
])
async def test_create_property_validation(payload, message, client, wallet_headers):
    db = mock_supabase(insert={})
    with patch("marketplace.services.properties.supabase", db):
        response = await client.post("/api/properties", json=payload, headers=wallet_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"success": False, "error": message}
    db.insert.assert_not_called()


@pytest.mark.asyncio
async def test_create_property_inserts_row(client):
    db = mock_supabase()

    async def fake_insert(table, row):
        return SupabaseResponse(data=[{**row, "created_at": "2025-06-10T12:00:00+00:00"}])

    db.insert = AsyncMock(side_effect=fake_insert)
    with patch("marketplace.services.properties.supabase", db), \
            patch("marketplace.services.properties.invalidate_properties_cache", new_callable=AsyncMock) as invalidate:
        response = await client.post(
            "/api/properties",
            json={
                "title": "  Marina Loft ",
                "location": "Dubai Marina",
                "price": "250000",
                "shares": 1000,
                "propertyType": "Residential",
                "roi": "8.5",
                "coordinates": {"lat": 25.08, "lng": 55.14},
            },
            headers={"Authorization": f"Bearer {WALLET}"},
        )

    assert response.status_code == status.HTTP_200_OK
    table, row = db.insert.call_args.args
    assert table == "integra_properties"
    assert row["title"] == "Marina Loft"
    assert row["owner_address"] == WALLET.lower()
    assert row["total_shares"] == row["available_shares"] == 1000
    assert row["status"] == "active"
    assert row["property_type"] == "Residential"
    assert row["roi"] == "8.5"
    assert row["tags"] == [] and row["images"] == [] and row["amenities"] == []
    invalidate.assert_awaited_once()

    data = response.json()["data"]
    assert data["availableShares"] == 1000
    assert data["coordinates"] == {"lat": 25.08, "lng": 55.14}


@pytest.mark.asyncio
async def test_create_property_rejects_unknown_type(client, wallet_headers):
    response = await client.post(
        "/api/properties",
        json={"title": "Loft", "location": "Dubai", "price": "10", "shares": 1, "propertyType": "Castle"},
        headers=wallet_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["success"] is False


@pytest.mark.asyncio
@patch("marketplace.routers.properties.get_property", new_callable=AsyncMock)
async def test_get_property_not_found(mock_get, client):
    mock_get.return_value = None

    response = await client.get("/api/properties/does-not-exist")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"success": False, "error": "Property not found"}
    mock_get.assert_awaited_once_with("does-not-exist")


@pytest.mark.asyncio
@patch("marketplace.routers.properties.get_property", new_callable=AsyncMock)
async def test_get_property_success(mock_get, client):
    mock_get.return_value = PropertyOut.from_row(make_property_row(price=250000))

    response = await client.get("/api/properties/1718035200000abc123xyz")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["id"] == "1718035200000abc123xyz"
    assert data["price"] == "250000"
    assert data["yearBuilt"] == 2019


@pytest.mark.asyncio
@patch("marketplace.routers.properties.get_property", new_callable=AsyncMock)
async def test_get_property_database_error(mock_get, client):
    mock_get.side_effect = SupabaseError("timeout", details="Failed to connect to Supabase")

    response = await client.get("/api/properties/abc")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


@pytest.mark.asyncio
@patch("marketplace.services.properties.get_property_row", new_callable=AsyncMock)
async def test_update_property_forbidden_for_non_owner(mock_row, client):
    mock_row.return_value = make_property_row()

    response = await client.put(
        "/api/properties/1718035200000abc123xyz",
        json={"title": "Hijacked"},
        headers={"X-Wallet-Address": OTHER_WALLET},
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "Unauthorized - can only update your own property"


@pytest.mark.asyncio
@patch("marketplace.services.properties.get_property_row", new_callable=AsyncMock)
async def test_update_property_not_found(mock_row, client, wallet_headers):
    mock_row.return_value = None

    response = await client.put("/api/properties/missing", json={"title": "x"}, headers=wallet_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
@patch("marketplace.services.properties.get_property_row", new_callable=AsyncMock)
async def test_update_property_cannot_drop_below_sold_shares(mock_row, client, wallet_headers):
    mock_row.return_value = make_property_row(total_shares=1000, available_shares=600)

    response = await client.put("/api/properties/p1", json={"shares": 300}, headers=wallet_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Cannot reduce shares below the 400 already sold"


@pytest.mark.asyncio
@patch("marketplace.services.properties.invalidate_properties_cache", new_callable=AsyncMock)
@patch("marketplace.services.properties.get_property_row", new_callable=AsyncMock)
async def test_update_property_writes_only_supplied_fields(mock_row, mock_invalidate, client, wallet_headers):
    row = make_property_row(total_shares=1000, available_shares=600)
    mock_row.return_value = row
    db = mock_supabase(update={"return_value": SupabaseResponse(data=[])})

    with patch("marketplace.services.properties.supabase", db):
        response = await client.put(
            "/api/properties/p1",
            json={"shares": 1200, "monthlyIncome": "2100", "status": "sold"},
            headers=wallet_headers,
        )

    assert response.status_code == status.HTTP_200_OK
    table, updates = db.update.call_args.args
    assert db.update.call_args.kwargs == {"where": {"id": "p1"}}
    assert updates["total_shares"] == 1200
    assert updates["available_shares"] == 800
    assert updates["monthly_income"] == "2100"
    assert updates["status"] == "sold"
    assert "title" not in updates
    data = response.json()["data"]
    assert data["availableShares"] == 800
    assert data["status"] == "sold"


@pytest.mark.asyncio
@patch("marketplace.services.properties.get_property_row", new_callable=AsyncMock)
async def test_delete_property_with_investors_rejected(mock_row, client, wallet_headers):
    mock_row.return_value = make_property_row(total_shares=100, available_shares=99)

    response = await client.delete("/api/properties/p1", headers=wallet_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Cannot delete a property with outstanding shares"


@pytest.mark.asyncio
@patch("marketplace.services.properties.get_property_row", new_callable=AsyncMock)
async def test_delete_property_not_found(mock_row, client, wallet_headers):
    mock_row.return_value = None

    response = await client.delete("/api/properties/missing", headers=wallet_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"success": False, "error": "Property not found"}


@pytest.mark.asyncio
@patch("marketplace.services.properties.get_property_row", new_callable=AsyncMock)
async def test_delete_property_forbidden_for_non_owner(mock_row, client):
    mock_row.return_value = make_property_row()
    db = mock_supabase(delete={})

    with patch("marketplace.services.properties.supabase", db):
        response = await client.delete("/api/properties/p1", headers={"X-Wallet-Address": OTHER_WALLET})

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "Unauthorized - can only update your own property"
    db.delete.assert_not_called()


@pytest.mark.asyncio
@patch("marketplace.services.properties.invalidate_properties_cache", new_callable=AsyncMock)
@patch("marketplace.services.properties.get_property_row", new_callable=AsyncMock)
async def test_delete_property_success(mock_row, mock_invalidate, client, wallet_headers):
    mock_row.return_value = make_property_row()
    db = mock_supabase(delete={"return_value": SupabaseResponse(data=[])})

    with patch("marketplace.services.properties.supabase", db):
        response = await client.delete("/api/properties/p1", headers=wallet_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "message": "Property deleted"}
    db.delete.assert_awaited_once_with("integra_properties", where={"id": "p1"})
    mock_invalidate.assert_awaited_once()


@pytest.mark.asyncio
@patch("marketplace.services.properties.fetch_property_rows", new_callable=AsyncMock)
async def test_property_stats_endpoint(mock_rows, client):
    mock_rows.return_value = [
        make_property_row(id="a", price="100000", roi="8", property_type="Residential"),
        make_property_row(id="b", price="50000.50", roi="10", property_type="Commercial"),
        make_property_row(id="c", price="999999", roi="50", status="draft"),
    ]

    response = await client.get("/api/properties/stats")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == {
        "totalProperties": 2,
        "totalValue": "150000.50",
        "averageROI": "9.0%",
        "propertiesByType": {"Residential": 1, "Commercial": 1},
    }


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/api/nothing-here")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["success"] is False
