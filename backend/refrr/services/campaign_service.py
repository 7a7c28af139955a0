"""
Campaign Service - campaign CRUD, referenceability rules and analytics counters
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import structlog
from sqlalchemy import func, or_, select

from refrr.core.database import utcnow
from refrr.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from refrr.core.tables import campaigns, referrals
from refrr.models.business import BusinessInDB
from refrr.models.campaign import (
    CampaignAnalyticsReport, CampaignCreate, CampaignInDB, CampaignStatus, CampaignUpdate,
    default_reward_description, reward_error
)
from refrr.models.referral import ReferralStatus, SUCCESSFUL_STATUSES
from refrr.services.business_service import ensure_business_active

logger = structlog.get_logger()

REQUIRED_FIELDS = ("title", "reward_type", "reward_value", "reward_description", "status")


async def get_campaign_by_id(db, campaign_id: UUID) -> Optional[CampaignInDB]:
    """Get campaign by ID"""
    result = await db.execute(select(campaigns).where(campaigns.c.id == campaign_id))
    row = result.first()
    if not row:
        return None
    return CampaignInDB(**row._mapping)


async def get_owned_campaign(db, campaign_id: UUID, business_id: UUID) -> CampaignInDB:
    """Load by id, then check the owner"""
    campaign = await get_campaign_by_id(db, campaign_id)
    if not campaign:
        raise NotFound("Campaign not found")
    if str(campaign.business_id) != str(business_id):
        logger.warning("Campaign ownership mismatch", campaign_id=str(campaign_id), business_id=str(business_id))
        raise Forbidden("Not authorized to access this campaign")
    return campaign


async def create_campaign(db, business: BusinessInDB, data: CampaignCreate) -> CampaignInDB:
    """Create a campaign for a business"""
    ensure_business_active(business)

    now = utcnow()
    result = await db.execute(
        campaigns.insert()
        .values(
            id=uuid4(),
            business_id=business.id,
            title=data.title,
            description=data.description,
            reward_type=data.reward_type.value,
            reward_value=data.reward_value,
            reward_description=data.reward_description
            or default_reward_description(data.reward_type, data.reward_value),
            status=data.status.value,
            start_date=now if data.status == CampaignStatus.ACTIVE else None,
            expiration_date=data.expiration_date,
            max_referrals=data.max_referrals,
            created_at=now,
            updated_at=now,
        )
        .returning(*campaigns.c)
    )
    campaign = CampaignInDB(**result.one()._mapping)
    logger.info("Campaign created", campaign_id=str(campaign.id), business_id=str(business.id))
    return campaign


async def list_campaigns_for_business(db, business_id: UUID) -> List[CampaignInDB]:
    result = await db.execute(
        select(campaigns)
        .where(campaigns.c.business_id == business_id)
        .order_by(campaigns.c.created_at.desc())
    )
    return [CampaignInDB(**row._mapping) for row in result.all()]


async def list_all_campaigns(db) -> List[CampaignInDB]:
    result = await db.execute(select(campaigns).order_by(campaigns.c.created_at.desc()))
    return [CampaignInDB(**row._mapping) for row in result.all()]


def _publicly_visible():
    now = utcnow()
    return (
        campaigns.c.status == CampaignStatus.ACTIVE.value,
        or_(campaigns.c.expiration_date.is_(None), campaigns.c.expiration_date > now),
    )


async def list_public_campaigns(db) -> List[CampaignInDB]:
    """Active, unexpired campaigns across all businesses"""
    result = await db.execute(
        select(campaigns).where(*_publicly_visible()).order_by(campaigns.c.created_at.desc())
    )
    return [CampaignInDB(**row._mapping) for row in result.all()]


async def get_public_campaign(db, campaign_id: UUID) -> CampaignInDB:
    result = await db.execute(
        select(campaigns).where(campaigns.c.id == campaign_id, *_publicly_visible())
    )
    row = result.first()
    if not row:
        raise NotFound("Campaign not found")
    return CampaignInDB(**row._mapping)


async def update_campaign(db, campaign: CampaignInDB, update: CampaignUpdate) -> CampaignInDB:
    """Apply the fields that were sent, re-checking the reward rules"""
    values = update.model_dump(exclude_unset=True)
    # an explicit null on a required column means "leave it"
    for key in REQUIRED_FIELDS:
        if key in values and values[key] is None:
            del values[key]
    if not values:
        return campaign

    reward_type = values.get("reward_type") or campaign.reward_type
    reward_value = values.get("reward_value")
    if reward_value is None:
        reward_value = campaign.reward_value
    error = reward_error(reward_type, reward_value)
    if error:
        raise ValidationFailed(error)

    # keep a generated description in step with the reward
    reward_changed = "reward_type" in values or "reward_value" in values
    if reward_changed and "reward_description" not in values:
        old_default = default_reward_description(campaign.reward_type, campaign.reward_value)
        if campaign.reward_description == old_default:
            values["reward_description"] = default_reward_description(reward_type, reward_value)

    for key in ("reward_type", "status"):
        if values.get(key) is not None:
            values[key] = values[key].value
    if values.get("status") == CampaignStatus.ACTIVE.value and campaign.start_date is None:
        values["start_date"] = utcnow()

    values["updated_at"] = utcnow()
    result = await db.execute(
        campaigns.update()
        .where(campaigns.c.id == campaign.id)
        .values(**values)
        .returning(*campaigns.c)
    )
    row = result.first()
    if not row:
        raise NotFound("Campaign not found")
    logger.info("Campaign updated", campaign_id=str(campaign.id), fields=sorted(values))
    return CampaignInDB(**row._mapping)


async def update_campaign_status(db, campaign: CampaignInDB, new_status: CampaignStatus) -> CampaignInDB:
    return await update_campaign(db, campaign, CampaignUpdate(status=new_status))


async def count_referrals(db, campaign_id: UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(referrals).where(referrals.c.campaign_id == campaign_id)
    )
    return result.scalar_one()


async def delete_campaign(db, campaign: CampaignInDB) -> None:
    """Hard delete; refused while referrals still point at the campaign"""
    if await count_referrals(db, campaign.id):
        raise Conflict("Cannot delete a campaign that has referrals")
    await db.execute(campaigns.delete().where(campaigns.c.id == campaign.id))
    logger.info("Campaign deleted", campaign_id=str(campaign.id))


async def ensure_referenceable(db, campaign: CampaignInDB, now: Optional[datetime] = None) -> None:
    """A new referral needs an active, unexpired campaign with room under its cap"""
    now = now or utcnow()
    if campaign.status != CampaignStatus.ACTIVE:
        raise Conflict("Campaign is not active")
    if campaign.expiration_date is not None and campaign.expiration_date <= now:
        raise Conflict("Campaign has expired")
    if campaign.max_referrals is not None:
        if await count_referrals(db, campaign.id) >= campaign.max_referrals:
            raise Conflict("Campaign has reached its referral limit")


async def status_counts(db, campaign_id: UUID) -> Dict[str, int]:
    """Live referral counts per status, zero-filled"""
    result = await db.execute(
        select(referrals.c.status, func.count())
        .where(referrals.c.campaign_id == campaign_id)
        .group_by(referrals.c.status)
    )
    counts = {s.value: 0 for s in ReferralStatus}
    for status_value, count in result.all():
        counts[status_value] = count
    return counts


def conversion_rate(successful: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return successful / total * 100


async def recalculate_analytics(db, campaign_id: UUID) -> Optional[CampaignInDB]:
    """Re-aggregate the stored counters from the referrals table"""
    counts = await status_counts(db, campaign_id)
    total = sum(counts.values())
    successful = sum(counts[s.value] for s in SUCCESSFUL_STATUSES)
    result = await db.execute(
        campaigns.update()
        .where(campaigns.c.id == campaign_id)
        .values(
            total_referrals=total,
            successful_referrals=successful,
            conversion_rate=conversion_rate(successful, total),
            reward_redemptions=counts[ReferralStatus.COMPLETED.value],
            analytics_updated_at=utcnow(),
        )
        .returning(*campaigns.c)
    )
    row = result.first()
    if not row:
        return None
    return CampaignInDB(**row._mapping)


async def get_analytics_report(db, campaign: CampaignInDB) -> CampaignAnalyticsReport:
    return CampaignAnalyticsReport(
        campaign_id=campaign.id,
        analytics=campaign.analytics,
        status_counts=await status_counts(db, campaign.id),
    )


async def reconcile_campaign_analytics(db) -> int:
    """Recompute every campaign's counters; returns how many were touched"""
    result = await db.execute(select(campaigns.c.id))
    campaign_ids = [row[0] for row in result.all()]
    for campaign_id in campaign_ids:
        await recalculate_analytics(db, campaign_id)
    logger.info("Campaign analytics reconciled", campaigns=len(campaign_ids))
    return len(campaign_ids)
