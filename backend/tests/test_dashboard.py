import pytest

from refrr.core.database import utcnow

API = "/api/v1"


async def test_business_dashboard(client, make_business, make_campaign, make_referral):
    owner = await make_business()
    percent = await make_campaign(owner, title="Ten off")
    fixed = await make_campaign(owner, title="Points", reward_type="fixed", reward_value=25)
    await make_campaign(owner, title="Later", status="draft")

    approved = await make_referral(owner, percent["id"], referrer_email="a@acme.com")
    completed = await make_referral(owner, fixed["id"], referrer_email="b@acme.com")
    await make_referral(owner, fixed["id"], referrer_email="c@acme.com")

    await client.patch(f"{API}/referrals/{approved['id']}/status", json={"status": "approved"}, headers=owner)
    await client.post(f"{API}/referrals/complete/{completed['code']}", json={"referred_email": "new@buyer.com"})

    response = await client.get(f"{API}/dashboard/stats", headers=owner)

    assert response.status_code == 200
    stats = response.json()
    assert stats["active_campaigns"] == 2
    assert stats["total_referrals"] == 3
    assert stats["pending_approvals"] == 1
    assert stats["total_rewards"] == pytest.approx(25.1)
    assert stats["referral_stats"] == {
        "pending": 1, "approved": 1, "rejected": 0, "completed": 1, "expired": 0,
    }
    assert stats["campaign_stats"] == {"total": 3, "active": 2, "paused": 0, "draft": 1, "completed": 0}
    assert stats["monthly_referrals"] == [{"month": utcnow().strftime("%Y-%m"), "count": 3}]
    assert {s["status"]: s["count"] for s in stats["status_distribution"]} == {
        "pending": 1, "approved": 1, "completed": 1,
    }
    assert len(stats["recent_activity"]) == 3
    assert {r["campaign_title"] for r in stats["recent_activity"]} == {"Ten off", "Points"}


async def test_empty_dashboard(client, make_business):
    owner = await make_business()

    stats = (await client.get(f"{API}/dashboard/stats", headers=owner)).json()

    assert stats["total_referrals"] == 0
    assert stats["total_rewards"] == 0
    assert stats["monthly_referrals"] == []
    assert stats["recent_activity"] == []


async def test_customer_analytics(client, make_business, make_customer, make_campaign, make_referral):
    owner = await make_business()
    campaign = await make_campaign(owner, reward_type="fixed", reward_value=40)
    customer = await make_customer(email="fan@acme.com")

    mine = await make_referral(owner, campaign["id"], referrer_email="Fan@acme.com")
    await make_referral(owner, campaign["id"], referrer_email="fan@acme.com")
    await make_referral(owner, campaign["id"], referrer_email="someone@else.com")
    await client.post(f"{API}/referrals/complete/{mine['code']}", json={"referred_email": "new@buyer.com"})

    response = await client.get(f"{API}/customers/me/analytics", headers=customer)

    assert response.status_code == 200
    body = response.json()
    assert body["total_referrals"] == 2
    assert body["successful_referrals"] == 1
    assert body["pending_referrals"] == 1
    assert body["total_rewards"] == pytest.approx(40)
    assert len(body["recent_activity"]) == 2


async def test_dashboards_are_role_scoped(client, make_business, make_customer):
    owner = await make_business()
    customer = await make_customer()

    assert (await client.get(f"{API}/dashboard/stats", headers=customer)).status_code == 403
    assert (await client.get(f"{API}/customers/me/analytics", headers=owner)).status_code == 403
