from typing import Any, Dict, Optional

from structlog import get_logger

from marketplace.config import settings
from marketplace.core.errors import ErrorMessage, bad_request
from marketplace.db.supabase import first_row, supabase
from marketplace.dependencies.wallet import short_address
from marketplace.schemas.profile import (
    CreateProfileRequest,
    KycStatus,
    NotificationSettings,
    ProfileOut,
    UpdateProfileRequest,
)
from marketplace.utils.ids import generate_id, utc_now_iso

logger = get_logger()


def _clean(value: Optional[str]) -> Optional[str]:
    """Strip whitespace; blank strings are stored as NULL."""
    if value is None:
        return None
    return value.strip() or None


def new_user_row(address: str, **fields: Any) -> Dict[str, Any]:
    now = utc_now_iso()
    row = {
        "id": generate_id(),
        "wallet_address": address.lower(),
        "email": None,
        "display_name": short_address(address),
        "status": "pending",
        "role": "user",
        "total_investments": "0.0",
        "properties_owned": 0,
        "join_date": now,
        "last_active": now,
        "kyc_status": KycStatus.pending.value,
        "profile_image": None,
        "bio": None,
        "location": None,
        "investment_preferences": [],
        "social_links": {},
        "notifications": NotificationSettings().model_dump(),
    }
    row.update(fields)
    return row


async def get_profile_row(address: str) -> Optional[Dict[str, Any]]:
    result = await supabase.select(settings.USERS_TABLE, select="*", where={"wallet_address": address.lower()})
    return first_row(result)


async def get_profile(address: str) -> Optional[ProfileOut]:
    row = await get_profile_row(address)
    return ProfileOut.from_row(row) if row else None


def default_profile(address: str) -> ProfileOut:
    now = utc_now_iso()
    return ProfileOut(
        address=address.lower(),
        display_name=short_address(address),
        investment_preferences=[],
        kyc_status=KycStatus.pending,
        total_invested="0.0",
        properties_owned=0,
        created_at=now,
        updated_at=now,
    )


async def get_public_profile(address: str) -> ProfileOut:
    return await get_profile(address) or default_profile(address)


async def _update_and_reload(address: str, updates: Dict[str, Any]) -> ProfileOut:
    now = utc_now_iso()
    updates["last_active"] = now
    updates["updated_at"] = now
    await supabase.update(settings.USERS_TABLE, updates, where={"wallet_address": address.lower()})

    row = await get_profile_row(address)
    if not row:
        raise RuntimeError("Failed to fetch updated profile")
    return ProfileOut.from_row(row)


async def _insert(row: Dict[str, Any]) -> ProfileOut:
    result = await supabase.insert(settings.USERS_TABLE, row)
    logger.info("Profile created", address=row["wallet_address"])
    return ProfileOut.from_row(first_row(result) or row)


async def save_profile(address: str, request: CreateProfileRequest) -> ProfileOut:
    """Create the caller's profile, or overwrite the editable fields of an existing one."""
    display_name = _clean(request.display_name)
    if not display_name:
        raise bad_request(ErrorMessage.DISPLAY_NAME_REQUIRED)

    social_links = request.social_links.model_dump(exclude_none=True) if request.social_links else {}
    fields = {
        "display_name": display_name,
        "bio": _clean(request.bio),
        "profile_image": _clean(request.profile_picture),
        "social_links": social_links,
        "investment_preferences": request.investment_preferences or [],
    }

    if await get_profile_row(address):
        logger.info("Updating profile", address=address.lower())
        return await _update_and_reload(address, fields)
    return await _insert(new_user_row(address, **fields))


async def upsert_profile(address: str, request: UpdateProfileRequest) -> ProfileOut:
    """Partial update of an existing profile; unknown wallets get a new row."""
    changes = request.model_dump(include=request.model_fields_set, exclude_none=False)
    if request.social_links is not None:
        changes["social_links"] = request.social_links.model_dump(exclude_none=True)

    if await get_profile_row(address):
        logger.info("Updating profile", address=address.lower(), fields=sorted(changes))
        return await _update_and_reload(address, changes)

    fields = {key: value for key, value in changes.items() if value is not None}
    if not fields.get("display_name"):
        fields.pop("display_name", None)
    return await _insert(new_user_row(address, **fields))
