"""
Campaign Models
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Dict
from datetime import datetime, timezone
from uuid import UUID
from enum import Enum


class RewardType(str, Enum):
    """Reward types"""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CampaignStatus(str, Enum):
    """Campaign status"""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


def reward_error(reward_type: RewardType, reward_value: float) -> Optional[str]:
    """Return why a reward configuration is invalid, or None"""
    if reward_value <= 0:
        return "reward_value must be greater than 0"
    if reward_type == RewardType.PERCENTAGE and reward_value > 100:
        return "reward_value must be between 0 and 100 for percentage rewards"
    return None


def default_reward_description(reward_type: RewardType, reward_value: float) -> str:
    value = f"{reward_value:g}"
    if reward_type == RewardType.PERCENTAGE:
        return f"{value}% discount"
    return f"{value} points reward"


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CampaignBase(BaseModel):
    """Base campaign model"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    reward_type: RewardType
    reward_value: float
    reward_description: Optional[str] = Field(None, max_length=500)
    expiration_date: Optional[datetime] = None
    max_referrals: Optional[int] = Field(None, ge=1)

    @field_validator("expiration_date")
    @classmethod
    def naive_expiration(cls, value):
        return to_naive_utc(value)


class CampaignCreate(CampaignBase):
    """Campaign creation model"""
    status: CampaignStatus = CampaignStatus.ACTIVE

    @model_validator(mode="after")
    def check_reward(self):
        error = reward_error(self.reward_type, self.reward_value)
        if error:
            raise ValueError(error)
        return self


class CampaignUpdate(BaseModel):
    """Campaign update model"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    reward_type: Optional[RewardType] = None
    reward_value: Optional[float] = None
    reward_description: Optional[str] = Field(None, max_length=500)
    status: Optional[CampaignStatus] = None
    expiration_date: Optional[datetime] = None
    max_referrals: Optional[int] = Field(None, ge=1)

    @field_validator("expiration_date")
    @classmethod
    def naive_expiration(cls, value):
        return to_naive_utc(value)


class CampaignStatusUpdate(BaseModel):
    status: CampaignStatus


class CampaignAnalytics(BaseModel):
    """Stored campaign counters"""
    total_referrals: int = 0
    successful_referrals: int = 0
    conversion_rate: float = 0.0
    reward_redemptions: int = 0
    analytics_updated_at: Optional[datetime] = None


class CampaignInDB(CampaignBase):
    """Campaign in database model"""
    id: UUID
    business_id: UUID
    reward_description: str
    status: CampaignStatus
    start_date: Optional[datetime] = None
    total_referrals: int = 0
    successful_referrals: int = 0
    conversion_rate: float = 0.0
    reward_redemptions: int = 0
    analytics_updated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @property
    def analytics(self) -> CampaignAnalytics:
        return CampaignAnalytics(
            total_referrals=self.total_referrals,
            successful_referrals=self.successful_referrals,
            conversion_rate=self.conversion_rate,
            reward_redemptions=self.reward_redemptions,
            analytics_updated_at=self.analytics_updated_at,
        )


class Campaign(CampaignInDB):
    """Campaign response model"""
    pass


class PublicCampaign(BaseModel):
    """Campaign fields visible without authentication"""
    id: UUID
    business_id: UUID
    title: str
    description: Optional[str] = None
    reward_type: RewardType
    reward_value: float
    reward_description: str
    expiration_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class CampaignAnalyticsReport(BaseModel):
    """Stored counters plus a live per-status breakdown"""
    campaign_id: UUID
    analytics: CampaignAnalytics
    status_counts: Dict[str, int]
