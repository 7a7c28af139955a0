from datetime import timedelta

import pytest
from sqlalchemy import select

from refrr.core.database import utcnow
from refrr.core.exceptions import Conflict, Forbidden, NotFound, Unavailable, ValidationFailed
from refrr.core.tables import referrals
from refrr.models.business import CurrentBusiness
from refrr.models.campaign import CampaignCreate, RewardType
from refrr.models.referral import (
    CompletionSource, ReferralCompleteRequest, ReferralCreate, ReferralEntryPoint, ReferralInDB, ReferralStatus
)
from refrr.models.user import UserRole
from refrr.services import referral_service
from refrr.services.auth_service import AuthService
from refrr.services.business_service import create_business
from refrr.services.campaign_service import create_campaign, get_campaign_by_id


async def _business(db, email, name):
    user = await AuthService(db).create_user(email=email, password="secret123", role=UserRole.BUSINESS)
    business = await create_business(db, user_id=user.id, name=name, contact_email=email)
    return CurrentBusiness(user=user, business=business)


@pytest.fixture
async def owner(db):
    return await _business(db, "owner@acme.com", "Acme Coffee")


@pytest.fixture
async def campaign(db, owner):
    return await create_campaign(
        db,
        owner.business,
        CampaignCreate(title="Bring a friend", reward_type=RewardType.PERCENTAGE, reward_value=10),
    )


async def _set_created_at(db, referral_id, created_at):
    await db.execute(referrals.update().where(referrals.c.id == referral_id).values(created_at=created_at))


def _codes(*codes):
    source = iter(codes)
    return lambda: next(source)


async def test_create_copies_business_from_campaign(db, owner, campaign):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
    )

    assert referral.status == ReferralStatus.PENDING
    assert referral.business_id == campaign.business_id == owner.business.id
    assert referral.referred_email is None
    assert len(referral.code) == 8


async def test_create_for_someone_elses_campaign_is_forbidden(db, campaign):
    other = await _business(db, "other@rival.com", "Rival Tea")
    with pytest.raises(Forbidden):
        await referral_service.create_referral(
            db, other, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
        )


async def test_insert_conflict_is_retried_with_a_new_code(db, owner, campaign, monkeypatch):
    await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="a@acme.com"),
        code_source=_codes("DUPL1CAT"),
    )

    # pretend the pre-check raced with another insert
    async def never_exists(db, code):
        return False
    monkeypatch.setattr(referral_service, "code_exists", never_exists)

    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="b@acme.com"),
        code_source=_codes("DUPL1CAT", "FRESH001"),
    )
    assert referral.code == "FRESH001"


async def test_second_insert_conflict_is_unavailable(db, owner, campaign, monkeypatch):
    await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="a@acme.com"),
        code_source=_codes("DUPL1CAT"),
    )

    async def never_exists(db, code):
        return False
    monkeypatch.setattr(referral_service, "code_exists", never_exists)

    with pytest.raises(Unavailable):
        await referral_service.create_referral(
            db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="b@acme.com"),
            code_source=lambda: "DUPL1CAT",
        )

    result = await db.execute(select(referrals.c.id))
    assert len(result.all()) == 1


def test_expiry_boundary():
    now = utcnow()
    referral = ReferralInDB(
        id="00000000-0000-0000-0000-000000000001",
        campaign_id="00000000-0000-0000-0000-000000000002",
        business_id="00000000-0000-0000-0000-000000000003",
        code="ABCDEFGH",
        status=ReferralStatus.PENDING,
        created_at=now - timedelta(days=30),
        updated_at=now,
    )
    assert not referral_service.is_expired(referral, now)
    assert referral_service.is_expired(referral, now + timedelta(seconds=1))
    assert not referral_service.is_expired(referral, now - timedelta(days=1))


@pytest.mark.parametrize("terminal", [
    ReferralStatus.APPROVED, ReferralStatus.REJECTED, ReferralStatus.COMPLETED, ReferralStatus.EXPIRED,
])
def test_terminal_states_accept_no_transition(terminal):
    for target in ReferralStatus:
        with pytest.raises(Conflict):
            referral_service.check_transition(terminal, target)


def test_pending_is_not_a_review_outcome():
    with pytest.raises(ValidationFailed, match="Invalid status value"):
        referral_service.check_transition(ReferralStatus.PENDING, ReferralStatus.PENDING)


async def test_self_referral_leaves_record_untouched(db, notifier, owner, campaign):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="a@x.com")
    )

    with pytest.raises(ValidationFailed, match="cannot refer yourself"):
        await referral_service.complete_referral(
            db, notifier, referral.code, ReferralCompleteRequest(referred_email="A@X.com")
        )

    stored = await referral_service.get_referral_by_id(db, referral.id)
    assert stored.status == ReferralStatus.PENDING
    assert stored.referred_email is None
    assert notifier.sent == []


async def test_complete_sets_referred_fields_and_counters(db, notifier, owner, campaign):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
    )
    await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="other@acme.com")
    )

    completed = await referral_service.complete_referral(
        db, notifier, referral.code,
        ReferralCompleteRequest(referred_email="new@buyer.com", referred_name="Nia"),
    )

    assert completed.status == ReferralStatus.COMPLETED
    assert completed.completion_source == CompletionSource.REFERRED
    assert completed.completed_at is not None
    assert completed.referred_name == "Nia"

    refreshed = await get_campaign_by_id(db, campaign.id)
    assert refreshed.total_referrals == 2
    assert refreshed.successful_referrals == 1
    assert refreshed.conversion_rate == pytest.approx(50.0)
    assert refreshed.reward_redemptions == 1
    assert sorted(notifier.recipients()) == ["friend@acme.com", "new@buyer.com"]


async def test_expired_referral_is_persisted_as_expired(db, notifier, owner, campaign):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
    )
    await _set_created_at(db, referral.id, utcnow() - timedelta(days=31))

    with pytest.raises(Conflict, match="expired"):
        await referral_service.complete_referral(
            db, notifier, referral.code, ReferralCompleteRequest(referred_email="new@buyer.com")
        )

    stored = await referral_service.get_referral_by_id(db, referral.id)
    assert stored.status == ReferralStatus.EXPIRED


async def test_unknown_code_is_not_found(db, notifier):
    with pytest.raises(NotFound):
        await referral_service.complete_referral(
            db, notifier, "NOPE0000", ReferralCompleteRequest(referred_email="new@buyer.com")
        )


async def test_view_tracking_increments_by_one(db, owner, campaign):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
    )

    for _ in range(3):
        view = await referral_service.view_referral(db, referral.code)
        assert view.status == ReferralStatus.PENDING
        assert view.code == referral.code

    stored = await referral_service.get_referral_by_id(db, referral.id)
    assert stored.view_count == 3
    assert stored.last_viewed is not None
    assert stored.status == ReferralStatus.PENDING


async def test_business_approval_records_source(db, notifier, owner, campaign):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
    )

    approved = await referral_service.update_referral_status(
        db, notifier, owner, referral.id, ReferralStatus.APPROVED
    )

    assert approved.status == ReferralStatus.APPROVED
    assert approved.completion_source == CompletionSource.BUSINESS
    assert notifier.recipients() == ["friend@acme.com"]


async def test_rejection_notifies_referrer_only(db, notifier, owner, campaign):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
    )

    rejected = await referral_service.update_referral_status(
        db, notifier, owner, referral.id, ReferralStatus.REJECTED
    )

    assert rejected.status == ReferralStatus.REJECTED
    assert rejected.completion_source is None
    assert notifier.recipients() == ["friend@acme.com"]
    assert "rejected" in notifier.sent[0]["subject"]


async def test_expire_stale_referrals(db, owner, campaign):
    stale = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="a@acme.com")
    )
    fresh = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="b@acme.com")
    )
    await _set_created_at(db, stale.id, utcnow() - timedelta(days=40))

    assert await referral_service.expire_stale_referrals(db) == 1

    assert (await referral_service.get_referral_by_id(db, stale.id)).status == ReferralStatus.EXPIRED
    assert (await referral_service.get_referral_by_id(db, fresh.id)).status == ReferralStatus.PENDING
    assert await referral_service.expire_stale_referrals(db) == 0


def test_referral_link_uses_entry_point():
    link = referral_service.build_referral_link("ABCD1234", ReferralEntryPoint.REFER)
    assert link == "https://app.refrr.test/refer/ABCD1234"


async def test_redemption_that_loses_the_race_conflicts(db, notifier, owner, campaign, monkeypatch):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
    )
    stale = await referral_service.get_referral_by_code(db, referral.code)

    await referral_service.complete_referral(
        db, notifier, referral.code, ReferralCompleteRequest(referred_email="first@buyer.com")
    )

    # the second request read the row while it was still pending
    async def stale_read(db, code):
        return stale
    monkeypatch.setattr(referral_service, "get_referral_by_code", stale_read)

    with pytest.raises(Conflict, match="Referral has already been processed"):
        await referral_service.complete_referral(
            db, notifier, referral.code, ReferralCompleteRequest(referred_email="second@buyer.com")
        )

    monkeypatch.undo()
    stored = await referral_service.get_referral_by_id(db, referral.id)
    assert stored.status == ReferralStatus.COMPLETED
    assert stored.referred_email == "first@buyer.com"


async def test_review_that_loses_the_race_conflicts(db, notifier, owner, campaign, monkeypatch):
    referral = await referral_service.create_referral(
        db, owner, ReferralCreate(campaign_id=campaign.id, referrer_email="friend@acme.com")
    )
    stale = await referral_service.get_referral_by_id(db, referral.id)

    await referral_service.complete_referral(
        db, notifier, referral.code, ReferralCompleteRequest(referred_email="first@buyer.com")
    )

    async def stale_read(db, referral_id):
        return stale
    monkeypatch.setattr(referral_service, "get_referral_by_id", stale_read)

    with pytest.raises(Conflict, match="Referral has already been processed"):
        await referral_service.update_referral_status(db, notifier, owner, referral.id, ReferralStatus.REJECTED)

    monkeypatch.undo()
    stored = await referral_service.get_referral_by_id(db, referral.id)
    assert stored.status == ReferralStatus.COMPLETED
