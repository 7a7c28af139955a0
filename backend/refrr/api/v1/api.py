"""
API v1 Router
"""

from fastapi import APIRouter

from refrr.api.v1.endpoints import (
    auth,
    businesses,
    campaigns,
    referrals,
    dashboards,
    admin
)

api_router = APIRouter()

# Include all endpoint routers with proper prefixes
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(businesses.router)
api_router.include_router(campaigns.router)
api_router.include_router(referrals.router)
api_router.include_router(dashboards.router)
api_router.include_router(admin.router)
