"""
Admin Endpoints
"""

from fastapi import APIRouter, Depends
from typing import List
from uuid import UUID

import structlog

from refrr.core.database import get_database
from refrr.core.exceptions import NotFound
from refrr.services.auth_service import AuthService, require_admin
from refrr.services import business_service, campaign_service, referral_service
from refrr.models.business import Business, BusinessStatusUpdate
from refrr.models.campaign import Campaign, CampaignStatusUpdate
from refrr.models.common import MaintenanceResult
from refrr.models.user import User, UserInDB

router = APIRouter(prefix="/admin", tags=["admin"])
logger = structlog.get_logger()


@router.get("/users", response_model=List[User])
async def list_users(
    admin: UserInDB = Depends(require_admin),
    db = Depends(get_database)
):
    return await AuthService(db).list_users()


@router.get("/businesses", response_model=List[Business])
async def list_businesses(
    admin: UserInDB = Depends(require_admin),
    db = Depends(get_database)
):
    return await business_service.list_businesses(db)


@router.patch("/businesses/{business_id}/status", response_model=Business)
async def update_business_status(
    business_id: UUID,
    update: BusinessStatusUpdate,
    admin: UserInDB = Depends(require_admin),
    db = Depends(get_database)
):
    """Activate, deactivate or suspend a business"""
    business = await business_service.update_business_status(db, business_id, update.status)
    logger.info("Admin changed business status", admin_id=str(admin.id), business_id=str(business_id))
    return business


@router.get("/campaigns", response_model=List[Campaign])
async def list_campaigns(
    admin: UserInDB = Depends(require_admin),
    db = Depends(get_database)
):
    return await campaign_service.list_all_campaigns(db)


@router.patch("/campaigns/{campaign_id}/status", response_model=Campaign)
async def update_campaign_status(
    campaign_id: UUID,
    update: CampaignStatusUpdate,
    admin: UserInDB = Depends(require_admin),
    db = Depends(get_database)
):
    campaign = await campaign_service.get_campaign_by_id(db, campaign_id)
    if not campaign:
        raise NotFound("Campaign not found")
    logger.info("Admin changed campaign status", admin_id=str(admin.id), campaign_id=str(campaign_id))
    return await campaign_service.update_campaign_status(db, campaign, update.status)


@router.post("/maintenance/expire-referrals", response_model=MaintenanceResult)
async def expire_referrals(
    admin: UserInDB = Depends(require_admin),
    db = Depends(get_database)
):
    """Flip stale pending referrals to expired"""
    affected = await referral_service.expire_stale_referrals(db)
    return MaintenanceResult(message="Stale referrals expired", affected=affected)


@router.post("/maintenance/reconcile-campaigns", response_model=MaintenanceResult)
async def reconcile_campaigns(
    admin: UserInDB = Depends(require_admin),
    db = Depends(get_database)
):
    """Recompute every campaign's analytics counters"""
    affected = await campaign_service.reconcile_campaign_analytics(db)
    return MaintenanceResult(message="Campaign analytics reconciled", affected=affected)
