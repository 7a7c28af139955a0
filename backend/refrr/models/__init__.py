# Models package - Export all models

from .common import MessageResponse, MaintenanceResult, HealthStatus

from .user import (
    User, UserCreate, UserInDB, UserLogin, UserRole,
    BusinessRegister, Token, TokenData, RefreshRequest
)

from .business import (
    Business, BusinessInDB, BusinessUpdate, BusinessStatus, BusinessStatusUpdate,
    CurrentBusiness
)

from .campaign import (
    Campaign, CampaignCreate, CampaignUpdate, CampaignInDB, CampaignStatusUpdate,
    CampaignAnalytics, CampaignAnalyticsReport, PublicCampaign,
    CampaignStatus, RewardType
)

from .referral import (
    Referral, ReferralCreate, ReferralInDB, ReferralWithCampaign,
    ReferralLinkRequest, ReferralLinkResponse,
    ReferralCompleteRequest, ReferralCompleteResponse,
    ReferralStatusUpdate, ReferralPublicView, CampaignSummary, BusinessSummary,
    ReferralStatus, CompletionSource, ReferralEntryPoint,
    TERMINAL_STATUSES, SUCCESSFUL_STATUSES
)

from .dashboard import (
    BusinessDashboard, CustomerAnalytics, RecentReferral,
    MonthlyCount, StatusCount, CampaignStats
)

__all__ = [
    # Common models
    "MessageResponse", "MaintenanceResult", "HealthStatus",

    # User models
    "User", "UserCreate", "UserInDB", "UserLogin", "UserRole",
    "BusinessRegister", "Token", "TokenData", "RefreshRequest",

    # Business models
    "Business", "BusinessInDB", "BusinessUpdate", "BusinessStatus", "BusinessStatusUpdate",
    "CurrentBusiness",

    # Campaign models
    "Campaign", "CampaignCreate", "CampaignUpdate", "CampaignInDB", "CampaignStatusUpdate",
    "CampaignAnalytics", "CampaignAnalyticsReport", "PublicCampaign",
    "CampaignStatus", "RewardType",

    # Referral models
    "Referral", "ReferralCreate", "ReferralInDB", "ReferralWithCampaign",
    "ReferralLinkRequest", "ReferralLinkResponse",
    "ReferralCompleteRequest", "ReferralCompleteResponse",
    "ReferralStatusUpdate", "ReferralPublicView", "CampaignSummary", "BusinessSummary",
    "ReferralStatus", "CompletionSource", "ReferralEntryPoint",
    "TERMINAL_STATUSES", "SUCCESSFUL_STATUSES",

    # Dashboard models
    "BusinessDashboard", "CustomerAnalytics", "RecentReferral",
    "MonthlyCount", "StatusCount", "CampaignStats"
]
