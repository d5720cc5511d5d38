from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from marketplace.schemas.property import as_text


class KycStatus(str, Enum):
    pending = "pending"
    verified = "verified"
    rejected = "rejected"


class SocialLinks(BaseModel):
    twitter: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None
    discord: Optional[str] = None


class NotificationSettings(BaseModel):
    email: bool = True
    sms: bool = False
    push: bool = True


class ProfileOut(BaseModel):
    address: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    profile_picture: Optional[str] = None
    social_links: Optional[Dict[str, Any]] = None
    investment_preferences: List[str] = []
    kyc_status: KycStatus = KycStatus.pending
    total_invested: Optional[str] = None
    properties_owned: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ProfileOut":
        # Freshly inserted rows may not carry created_at yet; join_date is set by us.
        created_at = row.get("created_at") or row.get("join_date")
        return cls(
            address=row["wallet_address"],
            display_name=row.get("display_name"),
            bio=row.get("bio"),
            profile_picture=row.get("profile_image"),
            social_links=row.get("social_links"),
            investment_preferences=row.get("investment_preferences") or [],
            kyc_status=row.get("kyc_status") or KycStatus.pending,
            total_invested=as_text(row.get("total_investments")),
            properties_owned=row.get("properties_owned"),
            created_at=as_text(created_at),
            updated_at=as_text(row.get("updated_at") or created_at),
        )


class CreateProfileRequest(BaseModel):
    address: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    profile_picture: Optional[str] = None
    social_links: Optional[SocialLinks] = None
    investment_preferences: Optional[List[str]] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UpdateProfileRequest(BaseModel):
    """Partial update: only the fields present in the request body are written."""
    email: Optional[str] = None
    display_name: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    investment_preferences: Optional[List[str]] = None
    social_links: Optional[SocialLinks] = None
    notifications: Optional[NotificationSettings] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ProfileResponse(BaseModel):
    success: bool = True
    data: ProfileOut
