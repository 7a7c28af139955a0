"""
Campaign Endpoints
"""

from fastapi import APIRouter, Depends, status
from typing import List
from uuid import UUID

from refrr.core.database import get_database
from refrr.services.auth_service import require_business
from refrr.services import campaign_service
from refrr.models.business import CurrentBusiness
from refrr.models.campaign import (
    Campaign, CampaignAnalyticsReport, CampaignCreate, CampaignStatusUpdate, CampaignUpdate, PublicCampaign
)
from refrr.models.common import MessageResponse

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.post("", response_model=Campaign, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    data: CampaignCreate,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Create a campaign"""
    return await campaign_service.create_campaign(db, current.business, data)


@router.get("", response_model=List[Campaign])
async def list_campaigns(
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Campaigns of the caller's business, newest first"""
    return await campaign_service.list_campaigns_for_business(db, current.business.id)


@router.get("/public", response_model=List[PublicCampaign])
async def list_public_campaigns(db = Depends(get_database)):
    """Active campaigns, no authentication"""
    return await campaign_service.list_public_campaigns(db)


@router.get("/public/{campaign_id}", response_model=PublicCampaign)
async def get_public_campaign(campaign_id: UUID, db = Depends(get_database)):
    return await campaign_service.get_public_campaign(db, campaign_id)


@router.get("/{campaign_id}", response_model=Campaign)
async def get_campaign(
    campaign_id: UUID,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    return await campaign_service.get_owned_campaign(db, campaign_id, current.business.id)


@router.put("/{campaign_id}", response_model=Campaign)
async def update_campaign(
    campaign_id: UUID,
    update: CampaignUpdate,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Update campaign"""
    campaign = await campaign_service.get_owned_campaign(db, campaign_id, current.business.id)
    return await campaign_service.update_campaign(db, campaign, update)


@router.patch("/{campaign_id}/status", response_model=Campaign)
async def update_campaign_status(
    campaign_id: UUID,
    update: CampaignStatusUpdate,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Activate, pause or close a campaign"""
    campaign = await campaign_service.get_owned_campaign(db, campaign_id, current.business.id)
    return await campaign_service.update_campaign_status(db, campaign, update.status)


@router.delete("/{campaign_id}", response_model=MessageResponse)
async def delete_campaign(
    campaign_id: UUID,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    campaign = await campaign_service.get_owned_campaign(db, campaign_id, current.business.id)
    await campaign_service.delete_campaign(db, campaign)
    return MessageResponse(message="Campaign deleted")


@router.get("/{campaign_id}/analytics", response_model=CampaignAnalyticsReport)
async def get_campaign_analytics(
    campaign_id: UUID,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Stored counters plus live per-status breakdown"""
    campaign = await campaign_service.get_owned_campaign(db, campaign_id, current.business.id)
    return await campaign_service.get_analytics_report(db, campaign)
