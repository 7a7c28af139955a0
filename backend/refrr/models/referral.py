"""
Referral Models
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from enum import Enum

from refrr.models.campaign import RewardType


class ReferralStatus(str, Enum):
    """Referral status: pending, then exactly one terminal state"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({
    ReferralStatus.APPROVED,
    ReferralStatus.REJECTED,
    ReferralStatus.COMPLETED,
    ReferralStatus.EXPIRED,
})

# Outcomes counted as successful on the campaign
SUCCESSFUL_STATUSES = frozenset({ReferralStatus.APPROVED, ReferralStatus.COMPLETED})


class CompletionSource(str, Enum):
    """Who moved the referral to a successful state"""
    REFERRED = "referred"  # referred party redeemed the code
    BUSINESS = "business"  # owner approved/completed it


class ReferralEntryPoint(str, Enum):
    """Frontend route the shareable link points at"""
    REFERRAL = "referral"
    REFER = "refer"


class ReferralCreate(BaseModel):
    """Explicit referral creation (business names the referrer)"""
    campaign_id: UUID
    referrer_email: EmailStr


class ReferralLinkRequest(BaseModel):
    """Self-service link generation"""
    referrer_email: Optional[EmailStr] = None
    entry_point: ReferralEntryPoint = ReferralEntryPoint.REFERRAL


class ReferralCompleteRequest(BaseModel):
    """Redemption by the referred party"""
    referred_email: EmailStr
    referred_name: Optional[str] = Field(None, max_length=255)
    referred_phone: Optional[str] = Field(None, max_length=50)


class ReferralStatusUpdate(BaseModel):
    """Business review action"""
    status: ReferralStatus


class ReferralInDB(BaseModel):
    """Referral in database model"""
    id: UUID
    campaign_id: UUID
    business_id: UUID
    referrer_email: Optional[str] = None
    referred_email: Optional[str] = None
    referred_name: Optional[str] = None
    referred_phone: Optional[str] = None
    code: str
    status: ReferralStatus
    completion_source: Optional[CompletionSource] = None
    view_count: int = 0
    last_viewed: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TrackingData(BaseModel):
    view_count: int = 0
    last_viewed: Optional[datetime] = None


class Referral(BaseModel):
    """Referral response model"""
    id: UUID
    campaign_id: UUID
    business_id: UUID
    referrer_email: Optional[str] = None
    referred_email: Optional[str] = None
    referred_name: Optional[str] = None
    referred_phone: Optional[str] = None
    code: str
    status: ReferralStatus
    completion_source: Optional[CompletionSource] = None
    tracking_data: TrackingData
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_db(cls, referral: ReferralInDB) -> "Referral":
        return cls(
            **referral.model_dump(exclude={"view_count", "last_viewed", "ip_address", "user_agent"}),
            tracking_data=TrackingData(view_count=referral.view_count, last_viewed=referral.last_viewed),
        )


class CampaignSummary(BaseModel):
    """Campaign fields joined onto referral listings"""
    id: UUID
    title: str
    description: Optional[str] = None
    reward_type: RewardType
    reward_value: float
    reward_description: str


class ReferralWithCampaign(Referral):
    """Referral joined with campaign display fields"""
    campaign: Optional[CampaignSummary] = None


class BusinessSummary(BaseModel):
    id: UUID
    name: str
    website: Optional[str] = None


class ReferralPublicView(BaseModel):
    """What the referred party sees when opening a link"""
    code: str
    status: ReferralStatus
    campaign_details: CampaignSummary
    business_details: BusinessSummary


class ReferralLinkResponse(BaseModel):
    """Generated link plus the referral record"""
    referral_link: str
    code: str
    referral: Referral


class ReferralCompleteResponse(BaseModel):
    message: str
    referral: Referral
