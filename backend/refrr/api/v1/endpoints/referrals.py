"""
Referrals Endpoints - creation, redemption, review and tracking
"""

from fastapi import APIRouter, Depends, Request, status
from typing import List, Optional
from uuid import UUID

from refrr.core.database import get_database
from refrr.core.exceptions import Forbidden
from refrr.services.auth_service import get_current_user, get_optional_user, require_business
from refrr.services.business_service import get_business_by_user
from refrr.services.notification_service import EmailNotifier, get_notifier
from refrr.services import referral_service
from refrr.models.business import CurrentBusiness
from refrr.models.common import MessageResponse
from refrr.models.referral import (
    Referral, ReferralCompleteRequest, ReferralCompleteResponse, ReferralCreate,
    ReferralLinkRequest, ReferralLinkResponse, ReferralPublicView, ReferralStatusUpdate,
    ReferralWithCampaign, TrackingData
)
from refrr.models.user import UserInDB, UserRole

router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.post("", response_model=Referral, status_code=status.HTTP_201_CREATED)
async def create_referral(
    data: ReferralCreate,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Create a referral for a named referrer"""
    referral = await referral_service.create_referral(db, current, data)
    return Referral.from_db(referral)


@router.post("/generate/{campaign_id}", response_model=ReferralLinkResponse, status_code=status.HTTP_201_CREATED)
async def generate_referral_link(
    campaign_id: UUID,
    data: Optional[ReferralLinkRequest] = None,
    caller: Optional[UserInDB] = Depends(get_optional_user),
    notifier: EmailNotifier = Depends(get_notifier),
    db = Depends(get_database)
):
    """Generate a shareable referral link for an active campaign"""
    return await referral_service.generate_referral_link(
        db, notifier, campaign_id, data or ReferralLinkRequest(), caller=caller
    )


@router.get("/code/{code}", response_model=ReferralPublicView)
async def get_referral_by_code(code: str, db = Depends(get_database)):
    """Public view of a pending referral; counts as a view"""
    return await referral_service.view_referral(db, code)


@router.get("/track/{code}", response_model=TrackingData)
async def track_referral_click(code: str, request: Request, db = Depends(get_database)):
    """Record a click on a shared link"""
    referral = await referral_service.track_click(
        db,
        code,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return TrackingData(view_count=referral.view_count, last_viewed=referral.last_viewed)


@router.post("/complete/{code}", response_model=ReferralCompleteResponse)
async def complete_referral(
    code: str,
    data: ReferralCompleteRequest,
    notifier: EmailNotifier = Depends(get_notifier),
    db = Depends(get_database)
):
    """Redeem a referral code"""
    referral = await referral_service.complete_referral(db, notifier, code, data)
    return ReferralCompleteResponse(
        message="Referral completed successfully",
        referral=Referral.from_db(referral),
    )


@router.get("", response_model=List[ReferralWithCampaign])
async def list_referrals(
    current_user: UserInDB = Depends(get_current_user),
    db = Depends(get_database)
):
    """Referrals of the caller's business, or the ones a customer shared"""
    if current_user.role == UserRole.CUSTOMER:
        return await referral_service.list_for_customer(db, current_user.email)

    if current_user.role == UserRole.BUSINESS:
        business = await get_business_by_user(db, current_user.id)
        if business is not None:
            return await referral_service.list_for_business(db, business.id)

    raise Forbidden("Business or customer account required")


@router.get("/{referral_id}", response_model=ReferralWithCampaign)
async def get_referral(
    referral_id: UUID,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    return await referral_service.get_referral_for_business(db, referral_id, current.business.id)


@router.patch("/{referral_id}/status", response_model=Referral)
async def update_referral_status(
    referral_id: UUID,
    update: ReferralStatusUpdate,
    current: CurrentBusiness = Depends(require_business),
    notifier: EmailNotifier = Depends(get_notifier),
    db = Depends(get_database)
):
    """Approve, reject, complete or expire a pending referral"""
    referral = await referral_service.update_referral_status(db, notifier, current, referral_id, update.status)
    return Referral.from_db(referral)


@router.delete("/{referral_id}", response_model=MessageResponse)
async def delete_referral(
    referral_id: UUID,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Hard delete"""
    await referral_service.delete_referral(db, current, referral_id)
    return MessageResponse(message="Referral deleted")
