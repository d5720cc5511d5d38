from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from structlog import get_logger

from marketplace.core.errors import ApiError, ErrorMessage, bad_request, internal_error, not_found
from marketplace.dependencies.rate_limit import read_limiter, write_limiter
from marketplace.dependencies.wallet import get_wallet_address
from marketplace.schemas.property import (
    CreatePropertyRequest,
    MessageResponse,
    PropertiesResponse,
    PropertyFilters,
    PropertyResponse,
    PropertyStatsResponse,
    PropertyStatus,
    UpdatePropertyRequest,
)
from marketplace.services.properties import (
    create_property,
    delete_property,
    get_property,
    get_property_stats,
    list_properties,
    update_property,
)

logger = get_logger()
router = APIRouter(prefix="/api", tags=["properties"])


@router.get("/properties", response_model=PropertiesResponse, dependencies=[Depends(read_limiter)])
async def list_properties_endpoint(
    search: Optional[str] = None,
    property_type: Optional[str] = Query(None, alias="propertyType"),
    location: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    tags: Optional[str] = Query(None, description="Comma separated; a property matches if it has any of them"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    limit: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
):
    if min_price is not None and max_price is not None and min_price > max_price:
        logger.warning("Invalid price range", min_price=min_price, max_price=max_price)
        raise bad_request("minPrice cannot be greater than maxPrice")

    filters = PropertyFilters(
        search=search or None,
        property_type=property_type or None,
        location=location or None,
        status=status_filter or PropertyStatus.active.value,
        tags=[t for t in tags.split(",") if t] if tags else None,
        min_price=min_price,
        max_price=max_price,
        limit=limit,
        offset=offset,
    )
    try:
        properties, total = await list_properties(filters)
        logger.info("Properties listed", filters=filters.model_dump(exclude_none=True), total=total)
        return PropertiesResponse(data=properties, total=total)
    except ApiError:
        raise
    except Exception as e:
        logger.error("Error fetching properties", error=str(e), exc_info=True)
        raise internal_error()


@router.post("/properties", response_model=PropertyResponse, dependencies=[Depends(write_limiter)])
async def create_property_endpoint(
    request: CreatePropertyRequest,
    wallet: Optional[str] = Depends(get_wallet_address),
):
    if not wallet:
        raise bad_request(ErrorMessage.WALLET_REQUIRED)
    try:
        prop = await create_property(wallet, request)
        return PropertyResponse(data=prop)
    except ApiError:
        raise
    except Exception as e:
        logger.error("Error creating property", owner=wallet, error=str(e), exc_info=True)
        raise internal_error()


@router.get("/properties/stats", response_model=PropertyStatsResponse, dependencies=[Depends(read_limiter)])
async def property_stats_endpoint():
    try:
        return PropertyStatsResponse(data=await get_property_stats())
    except Exception as e:
        logger.error("Error computing property stats", error=str(e), exc_info=True)
        raise internal_error()


@router.get("/properties/{property_id}", response_model=PropertyResponse, dependencies=[Depends(read_limiter)])
async def get_property_endpoint(property_id: str):
    if not property_id.strip():
        raise bad_request(ErrorMessage.PROPERTY_ID_REQUIRED)
    try:
        prop = await get_property(property_id)
    except Exception as e:
        logger.error("Error fetching property", property_id=property_id, error=str(e), exc_info=True)
        raise internal_error()
    if not prop:
        raise not_found(ErrorMessage.PROPERTY_NOT_FOUND)
    return PropertyResponse(data=prop)


@router.put("/properties/{property_id}", response_model=PropertyResponse, dependencies=[Depends(write_limiter)])
async def update_property_endpoint(
    property_id: str,
    request: UpdatePropertyRequest,
    wallet: Optional[str] = Depends(get_wallet_address),
):
    if not wallet:
        raise bad_request(ErrorMessage.WALLET_REQUIRED)
    try:
        prop = await update_property(property_id, wallet, request)
        return PropertyResponse(data=prop)
    except ApiError:
        raise
    except Exception as e:
        logger.error("Error updating property", property_id=property_id, error=str(e), exc_info=True)
        raise internal_error()


@router.delete(
    "/properties/{property_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(write_limiter)],
)
async def delete_property_endpoint(property_id: str, wallet: Optional[str] = Depends(get_wallet_address)):
    if not wallet:
        raise bad_request(ErrorMessage.WALLET_REQUIRED)
    try:
        await delete_property(property_id, wallet)
        return MessageResponse(message="Property deleted")
    except ApiError:
        raise
    except Exception as e:
        logger.error("Error deleting property", property_id=property_id, error=str(e), exc_info=True)
        raise internal_error()
