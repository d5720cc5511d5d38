from typing import Optional

from fastapi import APIRouter, Depends, Header
from structlog import get_logger

from marketplace.core.errors import ApiError, ErrorMessage, bad_request, forbidden, internal_error, not_found
from marketplace.dependencies.rate_limit import read_limiter, write_limiter
from marketplace.dependencies.wallet import extract_wallet_address, get_wallet_address, validate_path_address
from marketplace.schemas.profile import CreateProfileRequest, ProfileResponse, UpdateProfileRequest
from marketplace.services.profiles import get_profile, get_public_profile, save_profile, upsert_profile

logger = get_logger()
router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("", response_model=ProfileResponse, dependencies=[Depends(read_limiter)])
async def get_own_profile(wallet: Optional[str] = Depends(get_wallet_address)):
    if not wallet:
        raise bad_request(ErrorMessage.WALLET_REQUIRED)
    try:
        profile = await get_profile(wallet)
    except Exception as e:
        logger.error("Error fetching profile", address=wallet, error=str(e), exc_info=True)
        raise internal_error()
    if not profile:
        raise not_found(ErrorMessage.PROFILE_NOT_FOUND)
    return ProfileResponse(data=profile)


@router.post("", response_model=ProfileResponse, dependencies=[Depends(write_limiter)])
async def save_own_profile(
    request: CreateProfileRequest,
    authorization: Optional[str] = Header(None),
    x_wallet_address: Optional[str] = Header(None),
):
    wallet = extract_wallet_address(authorization, x_wallet_address, request.address)
    if not wallet:
        raise bad_request(ErrorMessage.WALLET_REQUIRED_WITH_BODY)
    try:
        profile = await save_profile(wallet, request)
        return ProfileResponse(data=profile)
    except ApiError:
        raise
    except Exception as e:
        logger.error("Error saving profile", address=wallet, error=str(e), exc_info=True)
        raise internal_error()


@router.get("/{address}", response_model=ProfileResponse, dependencies=[Depends(read_limiter)])
async def get_profile_by_address(address: str):
    address = validate_path_address(address)
    try:
        return ProfileResponse(data=await get_public_profile(address))
    except Exception as e:
        logger.error("Error fetching profile by address", address=address, error=str(e), exc_info=True)
        raise internal_error()


@router.put("/{address}", response_model=ProfileResponse, dependencies=[Depends(write_limiter)])
async def update_profile_by_address(
    address: str,
    request: UpdateProfileRequest,
    wallet: Optional[str] = Depends(get_wallet_address),
):
    address = validate_path_address(address)
    if not wallet or wallet.lower() != address:
        raise forbidden(ErrorMessage.PROFILE_NOT_OWNER)
    try:
        profile = await upsert_profile(address, request)
        return ProfileResponse(data=profile)
    except ApiError:
        raise
    except Exception as e:
        logger.error("Error creating/updating profile", address=address, error=str(e), exc_info=True)
        raise internal_error()
