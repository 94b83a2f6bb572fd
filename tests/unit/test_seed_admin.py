import pytest

from config.settings import get_settings
from models.database.account import Account
from services.bootstrap.seed_admin import seed_admin
from utils.password_utils import hash_password


@pytest.fixture
def admin_settings(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "admin@x.com")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "admin-pass")
    return settings


@pytest.mark.asyncio
async def test_seed_skipped_without_credentials(db_session, store, monkeypatch):
    monkeypatch.setattr(get_settings(), "ADMIN_EMAIL", None)

    assert await seed_admin(db_session) is None
    assert await store.find_by_email("admin@x.com") is None


@pytest.mark.asyncio
async def test_seed_creates_admin_once(db_session, store, admin_settings):
    first = await seed_admin(db_session)
    second = await seed_admin(db_session)

    assert first is not None
    assert first == second
    account = await store.find_by_email("admin@x.com")
    assert account.is_admin()
    assert account.authenticate("admin-pass")


@pytest.mark.asyncio
async def test_seed_leaves_existing_regular_account_unchanged(db_session, store, admin_settings, auth_service, notifier):
    await auth_service.register("Ann", "admin@x.com", "p1")
    await auth_service.activate(notifier.last_token())

    account_id = await seed_admin(db_session)

    account = await store.find_by_email("admin@x.com")
    assert account_id == str(account.id)
    assert not account.is_admin()


@pytest.mark.asyncio
async def test_seed_does_not_collide_with_an_existing_admin_handle(db_session, store, admin_settings):
    await store.create(
        Account(username="admin", name="Other", email="other@x.com", hashed_password=hash_password("p1"))
    )

    account_id = await seed_admin(db_session)

    account = await store.find_by_email("admin@x.com")
    assert account_id == str(account.id)
    assert account.is_admin()
    assert account.username != "admin"
