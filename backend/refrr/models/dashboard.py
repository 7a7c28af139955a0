"""
Dashboard Models
"""

from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from refrr.models.referral import ReferralStatus


class RecentReferral(BaseModel):
    """Recent activity row"""
    id: UUID
    code: str
    campaign_id: UUID
    campaign_title: Optional[str] = None
    referrer_email: Optional[str] = None
    referred_email: Optional[str] = None
    status: ReferralStatus
    created_at: datetime
    completed_at: Optional[datetime] = None


class MonthlyCount(BaseModel):
    month: str  # YYYY-MM
    count: int


class StatusCount(BaseModel):
    status: ReferralStatus
    count: int


class CampaignStats(BaseModel):
    total: int
    active: int
    paused: int
    draft: int
    completed: int


class BusinessDashboard(BaseModel):
    """Business dashboard summary"""
    business_id: UUID
    active_campaigns: int
    total_referrals: int
    pending_approvals: int
    total_rewards: float
    referral_stats: Dict[str, int]
    campaign_stats: CampaignStats
    monthly_referrals: List[MonthlyCount]
    status_distribution: List[StatusCount]
    recent_activity: List[RecentReferral]


class CustomerAnalytics(BaseModel):
    """Referrer-side summary for a customer account"""
    total_referrals: int
    successful_referrals: int
    pending_referrals: int
    total_rewards: float
    recent_activity: List[RecentReferral]
