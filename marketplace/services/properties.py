from collections import Counter
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from structlog import get_logger

from marketplace.config import settings
from marketplace.core.cache import PROPERTIES_CACHE_KEY, cache_get_json, cache_set_json, invalidate_properties_cache
from marketplace.core.errors import ErrorMessage, bad_request, forbidden, not_found
from marketplace.db.supabase import first_row, supabase
from marketplace.schemas.property import (
    CreatePropertyRequest,
    PropertyFilters,
    PropertyOut,
    PropertyStats,
    PropertyStatus,
    UpdatePropertyRequest,
)
from marketplace.utils.ids import generate_id, utc_now_iso

logger = get_logger()


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def shares_sold(row: Dict[str, Any]) -> int:
    return (row.get("total_shares") or 0) - (row.get("available_shares") or 0)


async def fetch_property_rows() -> List[Dict[str, Any]]:
    """All property rows, newest first. Served from Redis when cached."""
    cached = await cache_get_json(PROPERTIES_CACHE_KEY)
    if cached is not None:
        return cached
    result = await supabase.select(settings.PROPERTIES_TABLE, select="*", order="created_at.desc")
    rows = result.data or []
    await cache_set_json(PROPERTIES_CACHE_KEY, rows)
    return rows


def filter_properties(rows: List[Dict[str, Any]], filters: PropertyFilters) -> List[Dict[str, Any]]:
    properties = rows

    if filters.search:
        term = filters.search.lower()
        properties = [
            p for p in properties
            if term in (p.get("title") or "").lower()
            or term in (p.get("location") or "").lower()
            or term in (p.get("description") or "").lower()
        ]

    if filters.property_type and filters.property_type != "All":
        properties = [p for p in properties if p.get("property_type") == filters.property_type]

    if filters.tags:
        wanted = set(filters.tags)
        properties = [p for p in properties if wanted.intersection(p.get("tags") or [])]

    if filters.status:
        properties = [p for p in properties if p.get("status") == filters.status]

    if filters.location:
        needle = filters.location.lower()
        properties = [p for p in properties if needle in (p.get("location") or "").lower()]

    if filters.min_price is not None:
        properties = [p for p in properties if _to_float(p.get("price")) >= filters.min_price]
    if filters.max_price is not None:
        properties = [p for p in properties if _to_float(p.get("price")) <= filters.max_price]

    return properties


async def list_properties(filters: PropertyFilters) -> Tuple[List[PropertyOut], int]:
    rows = await fetch_property_rows()
    matched = filter_properties(rows, filters)
    total = len(matched)

    if filters.offset is not None:
        matched = matched[filters.offset:]
    if filters.limit is not None:
        matched = matched[:filters.limit]

    return [PropertyOut.from_row(row) for row in matched], total


async def get_property_row(property_id: str) -> Optional[Dict[str, Any]]:
    result = await supabase.select(settings.PROPERTIES_TABLE, select="*", where={"id": property_id})
    return first_row(result)


async def get_property(property_id: str) -> Optional[PropertyOut]:
    row = await get_property_row(property_id)
    if not row:
        return None
    return PropertyOut.from_row(row)


def _validate_property_fields(request: CreatePropertyRequest, provided: Optional[set] = None):
    """Check title, location, price and shares.

    With ``provided`` set (partial updates) only the fields present in it are checked.
    """
    def wanted(field: str) -> bool:
        return provided is None or field in provided

    if wanted("title") and (not request.title or not request.title.strip()):
        raise bad_request(ErrorMessage.PROPERTY_TITLE_REQUIRED)
    if wanted("location") and (not request.location or not request.location.strip()):
        raise bad_request(ErrorMessage.PROPERTY_LOCATION_REQUIRED)
    if wanted("price") and (request.price is None or request.price <= 0):
        raise bad_request(ErrorMessage.PROPERTY_PRICE_INVALID)
    if wanted("shares") and (request.shares is None or request.shares <= 0):
        raise bad_request(ErrorMessage.PROPERTY_SHARES_INVALID)


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


async def create_property(owner_address: str, request: CreatePropertyRequest) -> PropertyOut:
    _validate_property_fields(request)

    payload = request.model_dump(mode="json")
    row = {
        "id": generate_id(),
        "title": request.title.strip(),
        "description": _strip(request.description),
        "location": request.location.strip(),
        "price": str(request.price),
        "total_shares": request.shares,
        "available_shares": request.shares,
        "image": request.image,
        "images": request.images or [],
        "tags": request.tags or [],
        "roi": payload["roi"] or "0",
        "property_type": payload["property_type"],
        "owner_address": owner_address.lower(),
        "status": PropertyStatus.active.value,
        "monthly_income": payload["monthly_income"],
        "total_area": request.total_area,
        "bedrooms": request.bedrooms,
        "bathrooms": request.bathrooms,
        "year_built": request.year_built,
        "amenities": request.amenities or [],
        "coordinates": payload["coordinates"],
    }

    result = await supabase.insert(settings.PROPERTIES_TABLE, row)
    saved = first_row(result) or row
    await invalidate_properties_cache()
    logger.info("Property created", property_id=saved.get("id"), owner=row["owner_address"])
    return PropertyOut.from_row(saved)


async def _get_owned_row(property_id: str, caller_address: str) -> Dict[str, Any]:
    row = await get_property_row(property_id)
    if not row:
        raise not_found(ErrorMessage.PROPERTY_NOT_FOUND)
    if (row.get("owner_address") or "").lower() != caller_address.lower():
        raise forbidden(ErrorMessage.PROPERTY_NOT_OWNER)
    return row


async def update_property(property_id: str, caller_address: str, request: UpdatePropertyRequest) -> PropertyOut:
    row = await _get_owned_row(property_id, caller_address)

    provided = request.model_fields_set
    _validate_property_fields(request, provided=provided)

    changes = request.model_dump(mode="json", include=provided)
    updates: Dict[str, Any] = {}
    for field, value in changes.items():
        if field == "shares":
            sold = shares_sold(row)
            if request.shares < sold:
                raise bad_request(f"Cannot reduce shares below the {sold} already sold")
            updates["total_shares"] = request.shares
            updates["available_shares"] = request.shares - sold
        elif field == "price":
            updates["price"] = str(request.price)
        elif field in ("title", "location", "description"):
            updates[field] = _strip(value)
        else:
            updates[field] = value
    updates["updated_at"] = utc_now_iso()

    result = await supabase.update(settings.PROPERTIES_TABLE, updates, where={"id": property_id})
    saved = first_row(result) or {**row, **updates}
    await invalidate_properties_cache()
    logger.info("Property updated", property_id=property_id, fields=sorted(updates))
    return PropertyOut.from_row(saved)


async def delete_property(property_id: str, caller_address: str) -> None:
    row = await _get_owned_row(property_id, caller_address)
    if shares_sold(row) > 0:
        raise bad_request(ErrorMessage.PROPERTY_HAS_INVESTORS)

    await supabase.delete(settings.PROPERTIES_TABLE, where={"id": property_id})
    await invalidate_properties_cache()
    logger.info("Property deleted", property_id=property_id)


def compute_property_stats(rows: List[Dict[str, Any]]) -> PropertyStats:
    active = [row for row in rows if row.get("status") == PropertyStatus.active.value]
    total_value = sum((Decimal(str(row.get("price") or 0)) for row in active), Decimal("0"))
    average_roi = sum(_to_float(row.get("roi")) for row in active) / len(active) if active else 0.0
    by_type = Counter(row.get("property_type") or "Unspecified" for row in active)
    return PropertyStats(
        total_properties=len(active),
        total_value=f"{total_value:.2f}",
        average_roi=f"{average_roi:.1f}%",
        properties_by_type=dict(by_type),
    )


async def get_property_stats() -> PropertyStats:
    return compute_property_stats(await fetch_property_rows())
