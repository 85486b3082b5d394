"""Test configuration and fixtures."""
import os

# Settings are read at import time
os.environ["OTP_HASH_ROUNDS"] = "4"
os.environ["AUTH_SECRET_KEY"] = "test-secret-key"
for key in ("EMAIL_HOST", "EMAIL_PORT", "EMAIL_USER", "EMAIL_PASS"):
    os.environ.pop(key, None)

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from otp_service.api.deps import get_notification_sender
from otp_service.config import settings
from otp_service.core.auth import token_issuer
from otp_service.core.exceptions import DeliveryError
from otp_service.core.otp import OTPPurpose
from otp_service.main import app
from otp_service.models.base import Base
from otp_service.services.auth_flow import AuthFlowController
from otp_service.services.notification import DeliveryResult, NotificationSender
from otp_service.services.user_store import UserStore


@dataclass
class SentOTP:
    email: str
    code: str
    purpose: OTPPurpose


class RecordingSender(NotificationSender):
    """Keeps sent codes in memory; optionally fails every delivery."""

    mode = "test"

    def __init__(self, fail: bool = False):
        super().__init__()
        self.fail = fail
        self.sent: List[SentOTP] = []

    async def send(self, email, code, purpose=OTPPurpose.VERIFICATION):
        if self.fail:
            raise DeliveryError()
        self.sent.append(SentOTP(email=email, code=code, purpose=purpose))
        return DeliveryResult(success=True, message_id=f"test-{len(self.sent)}", mode=self.mode)

    def last_code(self, email: str) -> str:
        for sent in reversed(self.sent):
            if sent.email == email:
                return sent.code
        raise AssertionError(f"no code sent to {email}")


class FrozenClock:
    """Controllable clock for expiry checks."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """Create async engine for tests."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'unit.db'}",
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine):
    """Create async session for tests."""
    session_factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def store(async_session):
    return UserStore(async_session)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def controller(store, sender, clock):
    return AuthFlowController(store, sender, token_issuer, clock=clock)


@pytest.fixture
def http_sender():
    return RecordingSender()


@pytest.fixture
def client(tmp_path, monkeypatch, http_sender):
    """Create test client backed by a throwaway SQLite database."""
    monkeypatch.setattr(
        settings.database, "url", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"
    )
    app.dependency_overrides[get_notification_sender] = lambda: http_sender

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def verified_user(client, http_sender):
    """Register and verify a user over HTTP; returns (email, token)."""
    email = "ann@x.com"
    client.post("/api/auth/register", json={"name": "Ann", "email": email})
    response = client.post(
        "/api/auth/verify-otp",
        json={"email": email, "otp": http_sender.last_code(email)}
    )
    assert response.status_code == 200
    return email, response.json()["data"]["token"]


@pytest.fixture
def auth_headers(verified_user):
    _, token = verified_user
    return {"Authorization": f"Bearer {token}"}
