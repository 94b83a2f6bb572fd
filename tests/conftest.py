import os

# Settings are read at import time, so the environment is fixed before any app import
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("CLIENT_URL", "http://client.test")
os.environ.setdefault("JWT_ACCOUNT_ACTIVATION", "test-activation-secret")
os.environ.setdefault("JWT_SECRET", "test-session-secret")
os.environ.setdefault("JWT_RESET_PASSWORD", "test-reset-secret")
os.environ.setdefault("APPLICATION_ERROR_CODE", "400")

import httpx
import pytest
import pytest_asyncio

from common.types import EmailTemplate
from config.database import build_engine, build_session_factory, get_db
from core.exceptions import DeliveryError
from models.database.base import Base
import models.database.account  # noqa: F401
from services.accounts.account_store import AccountStore
from services.auth.auth_service import AuthService
from services.send_mail.notification_service import NotificationSender
from api.v1.dependencies import get_notification_sender

CLIENT_URL = "http://client.test"


class RecordingNotificationSender(NotificationSender):
    """Keeps sent emails in memory; set `fail` to simulate a delivery outage"""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, template, recipient_email, variables):
        if self.fail:
            raise DeliveryError("SMTP unavailable")
        self.sent.append({
            "template": EmailTemplate(template),
            "to": recipient_email,
            "variables": dict(variables),
        })

    def last_token(self) -> str:
        return self.sent[-1]["variables"]["action_url"].rsplit("/", 1)[-1]


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session):
    return AccountStore(db_session)


@pytest.fixture
def notifier():
    return RecordingNotificationSender()


@pytest.fixture
def auth_service(store, notifier):
    return AuthService(store, notifier, client_url=CLIENT_URL)


@pytest_asyncio.fixture
async def client(session_factory, notifier):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_sender] = lambda: notifier

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()
