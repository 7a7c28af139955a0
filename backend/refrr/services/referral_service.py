"""
Referral Service - referral creation, redemption, review and tracking
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID, uuid4

import structlog
from sqlalchemy import func, select

from refrr.core.config import settings
from refrr.core.database import insert_ignoring_conflicts, utcnow
from refrr.core.exceptions import Conflict, Forbidden, NotFound, Unavailable, ValidationFailed
from refrr.core.tables import campaigns, referrals
from refrr.models.business import CurrentBusiness
from refrr.models.campaign import CampaignInDB
from refrr.models.referral import (
    BusinessSummary, CampaignSummary, CompletionSource, Referral, ReferralCompleteRequest, ReferralCreate,
    ReferralEntryPoint, ReferralInDB, ReferralLinkRequest, ReferralLinkResponse,
    ReferralPublicView, ReferralStatus, ReferralWithCampaign,
    SUCCESSFUL_STATUSES, TERMINAL_STATUSES
)
from refrr.models.user import UserInDB, UserRole
from refrr.services.business_service import ensure_business_active, get_business_by_id, get_business_by_user
from refrr.services.campaign_service import (
    ensure_referenceable, get_campaign_by_id, get_owned_campaign, recalculate_analytics
)
from refrr.services.code_generator import generate_unique_code
from refrr.services.notification_service import EmailNotifier

logger = structlog.get_logger()

# Inserts attempted per referral; a lost race on the unique code gets one retry
INSERT_ATTEMPTS = 2

ALLOWED_TRANSITIONS = {
    ReferralStatus.PENDING: frozenset({
        ReferralStatus.APPROVED,
        ReferralStatus.REJECTED,
        ReferralStatus.COMPLETED,
        ReferralStatus.EXPIRED,
    }),
}


def expiry_window() -> timedelta:
    return timedelta(days=settings.REFERRAL_EXPIRY_DAYS)


def is_expired(referral: ReferralInDB, now: Optional[datetime] = None) -> bool:
    """Older than the expiry window; exactly on the boundary still counts as live"""
    now = now or utcnow()
    return now - referral.created_at > expiry_window()


def check_transition(current: ReferralStatus, target: ReferralStatus) -> None:
    """Only pending referrals move, and only to one of the review outcomes"""
    if current in TERMINAL_STATUSES:
        raise Conflict(f"Referral has already been {current.value}")
    if target == ReferralStatus.PENDING:
        raise ValidationFailed("Invalid status value: pending is not a review outcome")
    if target == current or target not in ALLOWED_TRANSITIONS.get(current, ()):
        raise Conflict(f"Cannot change referral status from {current.value} to {target.value}")


def build_referral_link(code: str, entry_point: ReferralEntryPoint = ReferralEntryPoint.REFERRAL) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/{entry_point.value}/{code}"


def _not_redeemable_message(referral: ReferralInDB) -> str:
    if referral.status == ReferralStatus.EXPIRED:
        return "Referral has expired"
    return f"Referral has already been {referral.status.value}"


async def get_referral_by_id(db, referral_id: UUID) -> Optional[ReferralInDB]:
    """Get referral by ID"""
    result = await db.execute(select(referrals).where(referrals.c.id == referral_id))
    row = result.first()
    if not row:
        return None
    return ReferralInDB(**row._mapping)


async def get_referral_by_code(db, code: str) -> Optional[ReferralInDB]:
    result = await db.execute(select(referrals).where(referrals.c.code == code))
    row = result.first()
    if not row:
        return None
    return ReferralInDB(**row._mapping)


async def code_exists(db, code: str) -> bool:
    result = await db.execute(select(referrals.c.id).where(referrals.c.code == code))
    return result.first() is not None


async def get_owned_referral(db, referral_id: UUID, business_id: UUID) -> ReferralInDB:
    """Load by id, then compare the owning business"""
    referral = await get_referral_by_id(db, referral_id)
    if not referral:
        raise NotFound("Referral not found")
    if str(referral.business_id) != str(business_id):
        logger.warning("Referral ownership mismatch", referral_id=str(referral_id), business_id=str(business_id))
        raise Forbidden("Not authorized to access this referral")
    return referral


async def insert_referral(
    db,
    campaign: CampaignInDB,
    referrer_email: Optional[str],
    code_source: Optional[Callable[[], str]] = None,
) -> ReferralInDB:
    """Insert a pending referral under a freshly drawn code.

    The unique constraint on code is authoritative: an insert that hits it is
    retried once with a new code, a second hit is surfaced as Unavailable.
    """
    for attempt in range(1, INSERT_ATTEMPTS + 1):
        code = await generate_unique_code(lambda candidate: code_exists(db, candidate), draw=code_source)
        now = utcnow()
        result = await db.execute(
            insert_ignoring_conflicts(db, referrals)
            .values(
                id=uuid4(),
                campaign_id=campaign.id,
                # always copied from the campaign's current owner
                business_id=campaign.business_id,
                referrer_email=referrer_email,
                code=code,
                status=ReferralStatus.PENDING.value,
                view_count=0,
                created_at=now,
                updated_at=now,
            )
            .returning(*referrals.c)
        )
        row = result.first()
        if row:
            referral = ReferralInDB(**row._mapping)
            logger.info(
                "Referral created",
                referral_id=str(referral.id),
                code=code,
                campaign_id=str(campaign.id),
                business_id=str(campaign.business_id),
            )
            return referral
        logger.warning("Referral code taken at insert", code=code, attempt=attempt)

    raise Unavailable("Could not allocate a unique referral code")


async def create_referral(
    db,
    current: CurrentBusiness,
    data: ReferralCreate,
    code_source: Optional[Callable[[], str]] = None,
) -> ReferralInDB:
    """Business attaches a referrer to one of its campaigns"""
    ensure_business_active(current.business)
    campaign = await get_owned_campaign(db, data.campaign_id, current.business.id)
    await ensure_referenceable(db, campaign)

    referral = await insert_referral(db, campaign, data.referrer_email, code_source)
    await recalculate_analytics(db, campaign.id)
    return referral


async def generate_referral_link(
    db,
    notifier: EmailNotifier,
    campaign_id: UUID,
    request: ReferralLinkRequest,
    caller: Optional[UserInDB] = None,
    code_source: Optional[Callable[[], str]] = None,
) -> ReferralLinkResponse:
    """Self-service link: a code now, the referred party later"""
    campaign = await get_campaign_by_id(db, campaign_id)
    if not campaign:
        raise NotFound("Campaign not found")

    if caller is not None and caller.role == UserRole.BUSINESS:
        business = await get_business_by_user(db, caller.id)
        if business is None or str(business.id) != str(campaign.business_id):
            raise Forbidden("Not authorized to generate links for this campaign")

    owner = await get_business_by_id(db, campaign.business_id)
    if owner is None:
        raise NotFound("Business not found")
    ensure_business_active(owner)
    await ensure_referenceable(db, campaign)

    referrer_email = request.referrer_email
    if referrer_email is None and caller is not None and caller.role == UserRole.CUSTOMER:
        referrer_email = caller.email

    referral = await insert_referral(db, campaign, referrer_email, code_source)
    await recalculate_analytics(db, campaign.id)
    await db.commit()

    referral_link = build_referral_link(referral.code, request.entry_point)
    if referrer_email:
        await notifier.notify_link_generated(referrer_email, referral_link, campaign)

    return ReferralLinkResponse(
        referral_link=referral_link,
        code=referral.code,
        referral=Referral.from_db(referral),
    )


async def _persist_expiry(db, referral: ReferralInDB) -> None:
    """Flip a stale pending referral to expired and commit before the caller raises"""
    result = await db.execute(
        referrals.update()
        .where(referrals.c.id == referral.id, referrals.c.status == ReferralStatus.PENDING.value)
        .values(status=ReferralStatus.EXPIRED.value, updated_at=utcnow())
        .returning(referrals.c.id)
    )
    if result.first():
        await recalculate_analytics(db, referral.campaign_id)
        logger.info("Referral expired on access", referral_id=str(referral.id), code=referral.code)
    await db.commit()


async def _ensure_redeemable(db, referral: ReferralInDB) -> None:
    if referral.status != ReferralStatus.PENDING:
        raise Conflict(_not_redeemable_message(referral))
    if is_expired(referral):
        await _persist_expiry(db, referral)
        raise Conflict("Referral has expired")


async def view_referral(db, code: str) -> ReferralPublicView:
    """Public lookup by code; every successful read counts as a view"""
    referral = await get_referral_by_code(db, code)
    if not referral:
        raise NotFound("Referral not found")
    await _ensure_redeemable(db, referral)

    result = await db.execute(
        referrals.update()
        .where(referrals.c.id == referral.id)
        .values(view_count=referrals.c.view_count + 1, last_viewed=utcnow())
        .returning(*referrals.c)
    )
    referral = ReferralInDB(**result.one()._mapping)

    campaign = await get_campaign_by_id(db, referral.campaign_id)
    business = await get_business_by_id(db, referral.business_id)
    if not campaign or not business:
        raise NotFound("Campaign not found")

    return ReferralPublicView(
        code=referral.code,
        status=referral.status,
        campaign_details=CampaignSummary(
            id=campaign.id,
            title=campaign.title,
            description=campaign.description,
            reward_type=campaign.reward_type,
            reward_value=campaign.reward_value,
            reward_description=campaign.reward_description,
        ),
        business_details=BusinessSummary(id=business.id, name=business.name, website=business.website),
    )


async def track_click(db, code: str, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> ReferralInDB:
    """Lightweight click tracking; no state checks"""
    result = await db.execute(
        referrals.update()
        .where(referrals.c.code == code)
        .values(
            view_count=referrals.c.view_count + 1,
            last_viewed=utcnow(),
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        .returning(*referrals.c)
    )
    row = result.first()
    if not row:
        raise NotFound("Referral not found")
    return ReferralInDB(**row._mapping)


async def complete_referral(
    db,
    notifier: EmailNotifier,
    code: str,
    data: ReferralCompleteRequest,
) -> ReferralInDB:
    """Redemption by the referred party"""
    referral = await get_referral_by_code(db, code)
    if not referral:
        raise NotFound("Referral not found")
    await _ensure_redeemable(db, referral)

    if referral.referrer_email and referral.referrer_email.lower() == data.referred_email.lower():
        raise ValidationFailed("You cannot refer yourself")

    now = utcnow()
    result = await db.execute(
        referrals.update()
        .where(referrals.c.id == referral.id, referrals.c.status == ReferralStatus.PENDING.value)
        .values(
            referred_email=data.referred_email,
            referred_name=data.referred_name,
            referred_phone=data.referred_phone,
            status=ReferralStatus.COMPLETED.value,
            completion_source=CompletionSource.REFERRED.value,
            completed_at=now,
            updated_at=now,
        )
        .returning(*referrals.c)
    )
    row = result.first()
    if not row:
        # another request redeemed it between our read and this update
        raise Conflict("Referral has already been processed")
    referral = ReferralInDB(**row._mapping)

    campaign = await recalculate_analytics(db, referral.campaign_id)
    await db.commit()
    logger.info("Referral completed", referral_id=str(referral.id), code=code)

    if campaign:
        await notifier.notify_referral_completed(referral, campaign)
    return referral


async def update_referral_status(
    db,
    notifier: EmailNotifier,
    current: CurrentBusiness,
    referral_id: UUID,
    target: ReferralStatus,
) -> ReferralInDB:
    """Business review: approve, reject, complete or expire a pending referral"""
    referral = await get_owned_referral(db, referral_id, current.business.id)
    check_transition(referral.status, target)
    if target != ReferralStatus.EXPIRED and is_expired(referral):
        await _persist_expiry(db, referral)
        raise Conflict("Referral has expired")

    now = utcnow()
    values = {"status": target.value, "updated_at": now}
    if target in SUCCESSFUL_STATUSES:
        values["completion_source"] = CompletionSource.BUSINESS.value
        values["completed_at"] = now

    result = await db.execute(
        referrals.update()
        .where(referrals.c.id == referral.id, referrals.c.status == ReferralStatus.PENDING.value)
        .values(**values)
        .returning(*referrals.c)
    )
    row = result.first()
    if not row:
        raise Conflict("Referral has already been processed")
    referral = ReferralInDB(**row._mapping)

    campaign = await recalculate_analytics(db, referral.campaign_id)
    await db.commit()
    logger.info(
        "Referral status updated",
        referral_id=str(referral.id),
        status=target.value,
        business_id=str(current.business.id),
    )

    if campaign:
        if target in SUCCESSFUL_STATUSES:
            await notifier.notify_referral_approved(referral, campaign)
        else:
            await notifier.notify_referral_closed(referral, campaign)
    return referral


async def delete_referral(db, current: CurrentBusiness, referral_id: UUID) -> None:
    """Hard delete by the owning business"""
    referral = await get_owned_referral(db, referral_id, current.business.id)
    await db.execute(referrals.delete().where(referrals.c.id == referral.id))
    await recalculate_analytics(db, referral.campaign_id)
    logger.info("Referral deleted", referral_id=str(referral.id), business_id=str(current.business.id))


def _with_campaign_select():
    return select(
        referrals,
        campaigns.c.title.label("campaign_title"),
        campaigns.c.description.label("campaign_description"),
        campaigns.c.reward_type.label("campaign_reward_type"),
        campaigns.c.reward_value.label("campaign_reward_value"),
        campaigns.c.reward_description.label("campaign_reward_description"),
    ).join(campaigns, campaigns.c.id == referrals.c.campaign_id)


def _referral_with_campaign(row) -> ReferralWithCampaign:
    data = dict(row._mapping)
    summary = CampaignSummary(
        id=data["campaign_id"],
        title=data.pop("campaign_title"),
        description=data.pop("campaign_description"),
        reward_type=data.pop("campaign_reward_type"),
        reward_value=data.pop("campaign_reward_value"),
        reward_description=data.pop("campaign_reward_description"),
    )
    referral = Referral.from_db(ReferralInDB(**data))
    return ReferralWithCampaign(**referral.model_dump(), campaign=summary)


async def get_referral_for_business(db, referral_id: UUID, business_id: UUID) -> ReferralWithCampaign:
    await get_owned_referral(db, referral_id, business_id)
    result = await db.execute(_with_campaign_select().where(referrals.c.id == referral_id))
    return _referral_with_campaign(result.one())


async def list_for_business(db, business_id: UUID) -> List[ReferralWithCampaign]:
    """All referrals of a business, newest first"""
    result = await db.execute(
        _with_campaign_select()
        .where(referrals.c.business_id == business_id)
        .order_by(referrals.c.created_at.desc())
    )
    return [_referral_with_campaign(row) for row in result.all()]


async def list_for_customer(db, email: str) -> List[ReferralWithCampaign]:
    """Referrals the customer shared, newest first"""
    result = await db.execute(
        _with_campaign_select()
        .where(func.lower(referrals.c.referrer_email) == email.lower())
        .order_by(referrals.c.created_at.desc())
    )
    return [_referral_with_campaign(row) for row in result.all()]


async def expire_stale_referrals(db, now: Optional[datetime] = None) -> int:
    """Bulk pending -> expired for referrals past the expiry window"""
    now = now or utcnow()
    result = await db.execute(
        referrals.update()
        .where(
            referrals.c.status == ReferralStatus.PENDING.value,
            referrals.c.created_at < now - expiry_window(),
        )
        .values(status=ReferralStatus.EXPIRED.value, updated_at=now)
        .returning(referrals.c.campaign_id)
    )
    rows = result.all()
    campaign_ids = {row[0] for row in rows}

    for campaign_id in campaign_ids:
        await recalculate_analytics(db, campaign_id)
    logger.info("Stale referrals expired", expired=len(rows), campaigns=len(campaign_ids))
    return len(rows)
