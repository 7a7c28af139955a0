"""
Dashboard Endpoints
"""

from fastapi import APIRouter, Depends

from refrr.core.database import get_database
from refrr.services.auth_service import require_business, require_customer
from refrr.services import dashboard_service
from refrr.models.business import CurrentBusiness
from refrr.models.dashboard import BusinessDashboard, CustomerAnalytics
from refrr.models.user import UserInDB

router = APIRouter(tags=["dashboards"])


@router.get("/dashboard/stats", response_model=BusinessDashboard)
async def get_dashboard_stats(
    current: CurrentBusiness = Depends(require_business),
    db = Depends(get_database)
):
    """Business dashboard summary (campaigns, referrals, monthly trend)"""
    return await dashboard_service.get_business_dashboard(db, current.business.id)


@router.get("/customers/me/analytics", response_model=CustomerAnalytics)
async def get_customer_analytics(
    current_user: UserInDB = Depends(require_customer),
    db = Depends(get_database)
):
    """Referral totals for the customer's own shares"""
    return await dashboard_service.get_customer_analytics(db, current_user.email)
