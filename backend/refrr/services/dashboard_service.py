"""
Dashboard Service - read-only summaries for business and customer views
"""

from collections import Counter
from typing import Dict, List
from uuid import UUID

from sqlalchemy import func, select

from refrr.core.tables import campaigns, referrals
from refrr.models.campaign import CampaignStatus, RewardType
from refrr.models.dashboard import (
    BusinessDashboard, CampaignStats, CustomerAnalytics, MonthlyCount, RecentReferral, StatusCount
)
from refrr.models.referral import ReferralStatus, SUCCESSFUL_STATUSES

RECENT_LIMIT = 5


def reward_amount(reward_type: str, reward_value: float) -> float:
    """Fixed rewards count at face value, percentages as a fraction"""
    if RewardType(reward_type) == RewardType.PERCENTAGE:
        return reward_value / 100
    return reward_value


def _zero_filled(rows) -> Dict[str, int]:
    counts = {s.value: 0 for s in ReferralStatus}
    for status_value, count in rows:
        counts[status_value] = count
    return counts


async def _total_rewards(db, *criteria) -> float:
    result = await db.execute(
        select(campaigns.c.reward_type, campaigns.c.reward_value)
        .select_from(referrals.join(campaigns, campaigns.c.id == referrals.c.campaign_id))
        .where(referrals.c.status.in_([s.value for s in SUCCESSFUL_STATUSES]), *criteria)
    )
    return sum(reward_amount(reward_type, value) for reward_type, value in result.all())


async def _recent(db, *criteria) -> List[RecentReferral]:
    result = await db.execute(
        select(
            referrals.c.id,
            referrals.c.code,
            referrals.c.campaign_id,
            campaigns.c.title.label("campaign_title"),
            referrals.c.referrer_email,
            referrals.c.referred_email,
            referrals.c.status,
            referrals.c.created_at,
            referrals.c.completed_at,
        )
        .select_from(referrals.join(campaigns, campaigns.c.id == referrals.c.campaign_id))
        .where(*criteria)
        .order_by(referrals.c.created_at.desc())
        .limit(RECENT_LIMIT)
    )
    return [RecentReferral(**row._mapping) for row in result.all()]


async def get_business_dashboard(db, business_id: UUID) -> BusinessDashboard:
    """Counts, monthly trend and recent activity for one business"""
    campaign_rows = await db.execute(
        select(campaigns.c.status, func.count())
        .where(campaigns.c.business_id == business_id)
        .group_by(campaigns.c.status)
    )
    campaign_counts = {s.value: 0 for s in CampaignStatus}
    campaign_counts.update({status_value: count for status_value, count in campaign_rows.all()})

    referral_rows = await db.execute(
        select(referrals.c.status, func.count())
        .where(referrals.c.business_id == business_id)
        .group_by(referrals.c.status)
    )
    referral_stats = _zero_filled(referral_rows.all())

    # bucketed here so the same query runs on sqlite and postgres
    created = await db.execute(
        select(referrals.c.created_at).where(referrals.c.business_id == business_id)
    )
    months = Counter(created_at.strftime("%Y-%m") for (created_at,) in created.all())

    return BusinessDashboard(
        business_id=business_id,
        active_campaigns=campaign_counts[CampaignStatus.ACTIVE.value],
        total_referrals=sum(referral_stats.values()),
        pending_approvals=referral_stats[ReferralStatus.PENDING.value],
        total_rewards=await _total_rewards(db, referrals.c.business_id == business_id),
        referral_stats=referral_stats,
        campaign_stats=CampaignStats(total=sum(campaign_counts.values()), **campaign_counts),
        monthly_referrals=[MonthlyCount(month=month, count=months[month]) for month in sorted(months)],
        status_distribution=[
            StatusCount(status=ReferralStatus(status_value), count=count)
            for status_value, count in referral_stats.items()
            if count
        ],
        recent_activity=await _recent(db, referrals.c.business_id == business_id),
    )


async def get_customer_analytics(db, email: str) -> CustomerAnalytics:
    """Referrer-side totals for referrals shared from this email"""
    mine = func.lower(referrals.c.referrer_email) == email.lower()
    rows = await db.execute(select(referrals.c.status, func.count()).where(mine).group_by(referrals.c.status))
    counts = _zero_filled(rows.all())

    return CustomerAnalytics(
        total_referrals=sum(counts.values()),
        successful_referrals=sum(counts[s.value] for s in SUCCESSFUL_STATUSES),
        pending_referrals=counts[ReferralStatus.PENDING.value],
        total_rewards=await _total_rewards(db, mine),
        recent_activity=await _recent(db, mine),
    )
