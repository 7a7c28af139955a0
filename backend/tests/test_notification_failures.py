import httpx
import pytest

from refrr.core.config import EmailSettings
from refrr.services.notification_service import EmailNotifier

API = "/api/v1"


def _exploding(request):
    raise RuntimeError("transport blew up")


@pytest.fixture
def notifier():
    # replaces the recording notifier for every request in this module
    return EmailNotifier(EmailSettings(enabled=True, api_key="sg-key"), transport=httpx.MockTransport(_exploding))


@pytest.fixture
async def owner(make_business):
    return await make_business()


@pytest.fixture
async def campaign(owner, make_campaign):
    return await make_campaign(owner)


async def test_unexpected_transport_error_is_not_raised(notifier):
    assert await notifier.send("friend@acme.com", "Hello", "body") is False


async def test_unencodable_api_key_is_not_raised():
    notifier = EmailNotifier(EmailSettings(enabled=True, api_key="kéy–x"))

    assert await notifier.send("friend@acme.com", "Hello", "body") is False


async def test_redemption_succeeds_when_email_fails(client, owner, campaign, make_referral):
    referral = await make_referral(owner, campaign["id"])

    response = await client.post(
        f"{API}/referrals/complete/{referral['code']}", json={"referred_email": "new@buyer.com"}
    )

    assert response.status_code == 200
    assert response.json()["referral"]["status"] == "completed"
    stored = (await client.get(f"{API}/referrals/{referral['id']}", headers=owner)).json()
    assert stored["status"] == "completed"


async def test_review_succeeds_when_email_fails(client, owner, campaign, make_referral):
    referral = await make_referral(owner, campaign["id"])

    response = await client.patch(
        f"{API}/referrals/{referral['id']}/status", json={"status": "rejected"}, headers=owner
    )

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"


async def test_link_generation_succeeds_when_email_fails(client, campaign):
    response = await client.post(
        f"{API}/referrals/generate/{campaign['id']}", json={"referrer_email": "friend@acme.com"}
    )

    assert response.status_code == 201
    assert response.json()["referral"]["status"] == "pending"
