"""
Business Profile Endpoints
"""

from fastapi import APIRouter, Depends

from refrr.core.database import get_database
from refrr.services.auth_service import require_business
from refrr.services import business_service
from refrr.models.business import Business, BusinessUpdate, CurrentBusiness

router = APIRouter(prefix="/businesses", tags=["businesses"])


@router.get("/me", response_model=Business)
async def get_my_business(current: CurrentBusiness = Depends(require_business)):
    """Business profile of the caller"""
    return current.business


@router.put("/me", response_model=Business)
async def update_my_business(
    update: BusinessUpdate,
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Update business profile"""
    return await business_service.update_business(db, current.business.id, update)
