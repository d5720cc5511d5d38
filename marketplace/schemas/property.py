from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class PropertyType(str, Enum):
    residential = "Residential"
    commercial = "Commercial"
    industrial = "Industrial"
    retail = "Retail"
    office = "Office"
    luxury = "Luxury"


class PropertyStatus(str, Enum):
    active = "active"
    sold = "sold"
    pending = "pending"
    draft = "draft"


class Coordinates(BaseModel):
    lat: float
    lng: float


def as_text(value: Any) -> Optional[str]:
    """PostgREST hands numeric columns back as JSON numbers; the API exposes them as strings."""
    if value is None:
        return None
    return str(value)


class PropertyOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    location: str
    price: str
    shares: int
    available_shares: int
    image: Optional[str] = None
    images: List[str] = []
    tags: List[str] = []
    roi: str = "0"
    property_type: Optional[str] = None
    owner_address: Optional[str] = None
    status: str
    monthly_income: Optional[str] = None
    total_area: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    year_built: Optional[int] = None
    amenities: List[str] = []
    coordinates: Optional[Coordinates] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PropertyOut":
        return cls(
            id=str(row["id"]),
            title=row["title"],
            description=row.get("description"),
            location=row["location"],
            price=as_text(row.get("price")) or "0",
            shares=row.get("total_shares") or 0,
            available_shares=row.get("available_shares") or 0,
            image=row.get("image"),
            images=row.get("images") or [],
            tags=row.get("tags") or [],
            roi=as_text(row.get("roi")) or "0",
            property_type=row.get("property_type"),
            owner_address=row.get("owner_address"),
            status=row.get("status") or PropertyStatus.active.value,
            monthly_income=as_text(row.get("monthly_income")),
            total_area=row.get("total_area"),
            bedrooms=row.get("bedrooms"),
            bathrooms=row.get("bathrooms"),
            year_built=row.get("year_built"),
            amenities=row.get("amenities") or [],
            coordinates=row.get("coordinates"),
            created_at=as_text(row.get("created_at")),
            updated_at=as_text(row.get("updated_at")),
        )


class PropertyFilters(BaseModel):
    search: Optional[str] = None
    property_type: Optional[str] = None
    location: Optional[str] = None
    status: Optional[str] = PropertyStatus.active.value
    tags: Optional[List[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    limit: Optional[int] = Field(None, ge=0)
    offset: Optional[int] = Field(None, ge=0)


class CreatePropertyRequest(BaseModel):
    # Everything is optional so the route can answer with its own 400 messages.
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    price: Optional[Decimal] = None
    shares: Optional[int] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    roi: Optional[Decimal] = None
    property_type: Optional[PropertyType] = None
    monthly_income: Optional[Decimal] = None
    total_area: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    year_built: Optional[int] = None
    amenities: Optional[List[str]] = None
    coordinates: Optional[Coordinates] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "title": "Marina Loft",
                "description": "Two bedroom loft with harbour views",
                "location": "Dubai Marina",
                "price": "250000",
                "shares": 1000,
                "tags": ["Residential"],
                "roi": "8.5",
                "propertyType": "Residential",
                "monthlyIncome": "1800",
                "bedrooms": 2,
                "bathrooms": 2,
                "amenities": ["Pool", "Gym"],
                "coordinates": {"lat": 25.08, "lng": 55.14},
            }
        }


class UpdatePropertyRequest(CreatePropertyRequest):
    status: Optional[PropertyStatus] = None


class PropertyResponse(BaseModel):
    success: bool = True
    data: PropertyOut


class PropertiesResponse(BaseModel):
    success: bool = True
    data: List[PropertyOut]
    total: int


class PropertyStats(BaseModel):
    total_properties: int
    total_value: str
    average_roi: str = Field(..., alias="averageROI")
    properties_by_type: Dict[str, int]

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PropertyStatsResponse(BaseModel):
    success: bool = True
    data: PropertyStats


class MessageResponse(BaseModel):
    success: bool = True
    message: str
