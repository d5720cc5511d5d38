import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from marketplace.dependencies.rate_limit import read_limiter, write_limiter
from marketplace.main import app

WALLET = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
OTHER_WALLET = "0x1111111111111111111111111111111111111111"


async def override_rate_limiter():
    return None


def make_property_row(**overrides):
    row = {
        "id": "1718035200000abc123xyz",
        "title": "Marina Loft",
        "description": "Two bedroom loft with harbour views",
        "location": "Dubai Marina",
        "price": "250000",
        "total_shares": 1000,
        "available_shares": 1000,
        "image": "https://img.example.com/loft.jpg",
        "images": [],
        "tags": ["Residential"],
        "roi": "8.5",
        "property_type": "Residential",
        "owner_address": WALLET.lower(),
        "status": "active",
        "monthly_income": "1800",
        "total_area": 1200,
        "bedrooms": 2,
        "bathrooms": 2,
        "year_built": 2019,
        "amenities": ["Pool"],
        "coordinates": {"lat": 25.08, "lng": 55.14},
        "created_at": "2025-06-10T12:00:00+00:00",
        "updated_at": "2025-06-10T12:00:00+00:00",
    }
    row.update(overrides)
    return row


def make_user_row(**overrides):
    row = {
        "id": "1718035200000usr000001",
        "wallet_address": WALLET.lower(),
        "email": None,
        "display_name": "Satoshi",
        "status": "pending",
        "role": "user",
        "total_investments": "1250.00",
        "properties_owned": 1,
        "kyc_status": "verified",
        "profile_image": None,
        "bio": "Long-term holder",
        "location": None,
        "investment_preferences": ["residential"],
        "social_links": {"twitter": "@satoshi"},
        "notifications": {"email": True, "sms": False, "push": True},
        "join_date": "2025-06-01T08:00:00+00:00",
        "created_at": "2025-06-01T08:00:00+00:00",
        "updated_at": "2025-06-02T08:00:00+00:00",
    }
    row.update(overrides)
    return row


@pytest.fixture
def wallet_headers():
    return {"X-Wallet-Address": WALLET}


@pytest_asyncio.fixture
async def client():
    app.dependency_overrides[read_limiter] = override_rate_limiter
    app.dependency_overrides[write_limiter] = override_rate_limiter
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides = {}
