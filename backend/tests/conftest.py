import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["PASSWORD_HASH_ROUNDS"] = "1000"
os.environ["EMAILS_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["FRONTEND_URL"] = "https://app.refrr.test"

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from refrr.core.config import EmailSettings
from refrr.core.database import get_database, utcnow
from refrr.core.tables import metadata, referrals
from refrr.main import create_app
from refrr.models.user import UserRole
from refrr.services.auth_service import AuthService, issue_tokens
from refrr.services.notification_service import EmailNotifier, get_notifier

PASSWORD = "secret123"


class RecordingNotifier(EmailNotifier):
    """Keeps every outgoing email instead of calling SendGrid"""

    def __init__(self):
        super().__init__(EmailSettings(enabled=True, api_key="test-key"))
        self.sent = []

    async def send(self, to_email, subject, text_content, html_content=None):
        self.sent.append({"to": to_email, "subject": subject, "text": text_content, "html": html_content})
        return True

    def recipients(self):
        return [message["to"] for message in self.sent]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def client(session_factory, notifier):
    app = create_app()

    async def override_get_database():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_database] = override_get_database
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def bearer(token_response: dict) -> dict:
    return {"Authorization": f"Bearer {token_response['access_token']}"}


@pytest.fixture
def make_business(client):
    async def _make(email="owner@acme.com", name="Acme Coffee"):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": PASSWORD, "business_name": name},
        )
        assert response.status_code == 201, response.text
        return bearer(response.json())
    return _make


@pytest.fixture
def make_customer(client):
    async def _make(email="fan@acme.com"):
        response = await client.post(
            "/api/v1/auth/register/customer",
            json={"email": email, "password": PASSWORD},
        )
        assert response.status_code == 201, response.text
        return bearer(response.json())
    return _make


@pytest.fixture
def make_campaign(client):
    async def _make(headers, **overrides):
        payload = {"title": "Bring a friend", "reward_type": "percentage", "reward_value": 10}
        payload.update(overrides)
        response = await client.post("/api/v1/campaigns", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
def make_referral(client):
    async def _make(headers, campaign_id, referrer_email="friend@acme.com"):
        response = await client.post(
            "/api/v1/referrals",
            json={"campaign_id": campaign_id, "referrer_email": referrer_email},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
async def admin_headers(session_factory):
    async with session_factory() as session:
        user = await AuthService(session).create_user(
            email="admin@refrr.com", password=PASSWORD, role=UserRole.ADMIN
        )
        await session.commit()
    return bearer(issue_tokens(user))


@pytest.fixture
def backdate(session_factory):
    """Move a referral's created_at into the past"""
    async def _backdate(code, days, seconds=0):
        async with session_factory() as session:
            await session.execute(
                referrals.update()
                .where(referrals.c.code == code)
                .values(created_at=utcnow() - timedelta(days=days, seconds=seconds))
            )
            await session.commit()
    return _backdate
