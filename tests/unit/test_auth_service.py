import asyncio
from datetime import timedelta

import pytest

from common.types import EmailTemplate, TokenKind
from core.exceptions import (
    DeliveryError,
    DuplicateEmailError,
    ExpiredOrInvalidTokenError,
    InvalidCredentialError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from config.database import build_engine, build_session_factory
from models.database.account import Account
from models.database.base import Base
from services.accounts.account_store import AccountStore
from services.auth.auth_service import AuthService
from utils.datetime_utils import DateTimeManager
from utils.jwt_utils import JWTManager, issue_activation_token, issue_reset_token
from utils.password_utils import hash_password


async def _register_and_activate(auth_service, notifier, name="Ann", email="a@x.com", password="p1"):
    await auth_service.register(name, email, password)
    await auth_service.activate(notifier.last_token())
    return await auth_service.store.find_by_email(email)


@pytest.mark.asyncio
async def test_register_sends_activation_link_without_creating_account(auth_service, notifier, store):
    body = await auth_service.register("Ann", "a@x.com", "p1")

    assert body == {
        "message": "Email has been sent to a@x.com. Follow the instructions to complete your registration"
    }
    assert await store.find_by_email("a@x.com") is None
    assert len(notifier.sent) == 1
    sent = notifier.sent[0]
    assert sent["template"] is EmailTemplate.ACTIVATION
    assert sent["to"] == "a@x.com"
    assert sent["variables"]["action_url"].startswith("http://client.test/auth/activate/")

    claims = JWTManager.verify(notifier.last_token(), TokenKind.ACTIVATION).payload
    assert (claims["name"], claims["email"], claims["password"]) == ("Ann", "a@x.com", "p1")


@pytest.mark.asyncio
async def test_register_rejects_taken_email(auth_service, notifier):
    await _register_and_activate(auth_service, notifier)
    notifier.sent.clear()

    with pytest.raises(DuplicateEmailError) as exc_info:
        await auth_service.register("Other", "a@x.com", "p2")

    assert exc_info.value.message == "Email is taken"
    assert exc_info.value.status_code == 400
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_register_reports_delivery_failure(auth_service, notifier):
    notifier.fail = True

    with pytest.raises(DeliveryError) as exc_info:
        await auth_service.register("Ann", "a@x.com", "p1")

    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "We could not verify your email a@x.com. Please try again"


@pytest.mark.asyncio
async def test_activate_creates_regular_account_with_hashed_password(auth_service, notifier):
    await auth_service.register("Ann", "a@x.com", "p1")

    body = await auth_service.activate(notifier.last_token())

    assert body == {"message": "Registration success. Please login."}
    account = await auth_service.store.find_by_email("a@x.com")
    assert account.name == "Ann"
    assert account.role == "regular"
    assert account.hashed_password != "p1"
    assert account.authenticate("p1")
    assert account.username


@pytest.mark.asyncio
async def test_activate_twice_rejects_second_use(auth_service, notifier):
    await auth_service.register("Ann", "a@x.com", "p1")
    token = notifier.last_token()
    await auth_service.activate(token)

    with pytest.raises(DuplicateEmailError) as exc_info:
        await auth_service.activate(token)

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Email is already taken"


@pytest.mark.asyncio
async def test_activate_race_is_caught_by_store(auth_service, notifier, monkeypatch):
    await auth_service.register("Ann", "a@x.com", "p1")
    token = notifier.last_token()
    await auth_service.activate(token)

    async def nobody(email):
        return None

    # Simulates a concurrent activation that passed the existence check
    monkeypatch.setattr(auth_service.store, "find_by_email", nobody)

    with pytest.raises(DuplicateEmailError) as exc_info:
        await auth_service.activate(token)

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_activate_rejects_expired_or_foreign_tokens(auth_service):
    expired = issue_activation_token(
        "Ann", "a@x.com", "p1", now=DateTimeManager.utc_now() - timedelta(hours=1)
    )
    reset_token = issue_reset_token("Ann")

    for token in (expired, reset_token, "garbage", None):
        with pytest.raises(ExpiredOrInvalidTokenError) as exc_info:
            await auth_service.activate(token)
        assert exc_info.value.message == "Expired link. Try again"

    assert await auth_service.store.find_by_email("a@x.com") is None


@pytest.mark.asyncio
async def test_activate_rejects_incomplete_payload(auth_service):
    token = JWTManager.issue({"name": "Ann", "email": "a@x.com"}, TokenKind.ACTIVATION, timedelta(minutes=5))

    with pytest.raises(ExpiredOrInvalidTokenError):
        await auth_service.activate(token)


@pytest.mark.asyncio
async def test_activate_maps_storage_failure(auth_service, notifier, monkeypatch):
    await auth_service.register("Ann", "a@x.com", "p1")

    async def broken_create(account):
        raise PersistenceError("disk full")

    monkeypatch.setattr(auth_service.store, "create", broken_create)

    with pytest.raises(PersistenceError) as exc_info:
        await auth_service.activate(notifier.last_token())

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Unable to save your data. Try again."


@pytest.mark.asyncio
async def test_login_returns_session_token_and_public_user(auth_service, notifier):
    account = await _register_and_activate(auth_service, notifier)

    body = await auth_service.login("a@x.com", "p1")

    assert body["user"] == {"id": str(account.id), "name": "Ann", "email": "a@x.com", "role": "regular"}
    verification = JWTManager.verify(body["token"], TokenKind.SESSION)
    assert verification.valid
    assert verification.payload["user_id"] == str(account.id)


@pytest.mark.asyncio
async def test_login_failures(auth_service, notifier):
    await _register_and_activate(auth_service, notifier)

    with pytest.raises(NotFoundError) as missing:
        await auth_service.login("b@x.com", "p1")
    assert missing.value.message == "User with that email doesn't exists. Please register."

    with pytest.raises(InvalidCredentialError) as mismatch:
        await auth_service.login("a@x.com", "wrong")
    assert mismatch.value.message == "Password isn't match. Please try again."
    assert mismatch.value.status_code == 400


@pytest.mark.asyncio
async def test_forget_password_stores_token_before_sending(auth_service, notifier):
    account = await _register_and_activate(auth_service, notifier)
    notifier.sent.clear()

    body = await auth_service.forget_password("a@x.com")

    assert body == {"message": "Email has been sent to a@x.com. Click on the link to reset password"}
    sent = notifier.sent[-1]
    assert sent["template"] is EmailTemplate.RESET
    assert sent["variables"]["action_url"].startswith("http://client.test/auth/password/reset/")
    token = notifier.last_token()
    assert account.reset_password_link == token
    assert JWTManager.verify(token, TokenKind.RESET).payload["name"] == "Ann"


@pytest.mark.asyncio
async def test_forget_password_unknown_email(auth_service, notifier):
    with pytest.raises(NotFoundError) as exc_info:
        await auth_service.forget_password("b@x.com")

    assert exc_info.value.message == "User with that email does not exists"
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_forget_password_delivery_failure_keeps_stored_token(auth_service, notifier):
    account = await _register_and_activate(auth_service, notifier)
    notifier.fail = True

    with pytest.raises(DeliveryError) as exc_info:
        await auth_service.forget_password("a@x.com")

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == (
        "We could not send reset password link to your email. Please try again later"
    )
    assert account.reset_password_link != ""


@pytest.mark.asyncio
async def test_forget_password_storage_failure_sends_nothing(auth_service, notifier, monkeypatch):
    await _register_and_activate(auth_service, notifier)
    notifier.sent.clear()

    async def broken_update(account_id, patch):
        raise PersistenceError("disk full")

    monkeypatch.setattr(auth_service.store, "update", broken_update)

    with pytest.raises(PersistenceError) as exc_info:
        await auth_service.forget_password("a@x.com")

    assert exc_info.value.message == "Reset password is failed. Try later."
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_reset_password_is_single_use(auth_service, notifier):
    await _register_and_activate(auth_service, notifier)
    await auth_service.forget_password("a@x.com")
    token = notifier.last_token()

    body = await auth_service.reset_password(token, "p2")

    assert body == {"message": "Reset password is success."}
    account = await auth_service.store.find_by_email("a@x.com")
    assert account.reset_password_link == ""
    assert account.authenticate("p2")
    assert not account.authenticate("p1")

    with pytest.raises(NotFoundError) as exc_info:
        await auth_service.reset_password(token, "p3")
    assert exc_info.value.message == "Password reset failed. Try again later."


@pytest.mark.asyncio
async def test_only_latest_reset_token_is_accepted(auth_service, notifier):
    await _register_and_activate(auth_service, notifier)
    await auth_service.forget_password("a@x.com")
    first = notifier.last_token()
    await auth_service.forget_password("a@x.com")
    second = notifier.last_token()

    assert first != second
    with pytest.raises(NotFoundError):
        await auth_service.reset_password(first, "p2")

    await auth_service.reset_password(second, "p2")
    assert (await auth_service.login("a@x.com", "p2"))["token"]


@pytest.mark.asyncio
async def test_reset_password_rejects_missing_or_invalid_link(auth_service):
    with pytest.raises(ValidationError) as missing:
        await auth_service.reset_password(None, "p2")
    assert missing.value.status_code == 400
    assert missing.value.message == "Reset password link is required"

    expired = issue_reset_token("Ann", now=DateTimeManager.utc_now() - timedelta(hours=3))
    with pytest.raises(ExpiredOrInvalidTokenError) as invalid:
        await auth_service.reset_password(expired, "p2")
    assert invalid.value.message == "Token is expired. Try again later."


@pytest.mark.asyncio
async def test_reset_password_maps_storage_failure(auth_service, notifier, monkeypatch):
    await _register_and_activate(auth_service, notifier)
    await auth_service.forget_password("a@x.com")
    token = notifier.last_token()

    async def broken_consume(account_id, token, new_password):
        raise PersistenceError("disk full")

    monkeypatch.setattr(auth_service.store, "consume_reset_token", broken_consume)

    with pytest.raises(PersistenceError) as exc_info:
        await auth_service.reset_password(token, "p2")

    assert exc_info.value.message == "Saving your new password is failed. Try again later."


@pytest.mark.asyncio
async def test_reset_link_consumed_after_lookup_is_rejected(auth_service, notifier, monkeypatch):
    await _register_and_activate(auth_service, notifier)
    await auth_service.forget_password("a@x.com")
    token = notifier.last_token()
    account = await auth_service.store.find_by_email("a@x.com")

    async def stale_lookup(link):
        return account

    await auth_service.reset_password(token, "p2")
    # The lookup still sees the link, as a request racing the one above would
    monkeypatch.setattr(auth_service.store, "find_by_reset_token", stale_lookup)

    with pytest.raises(NotFoundError) as exc_info:
        await auth_service.reset_password(token, "p3")

    assert exc_info.value.message == "Password reset failed. Try again later."
    fresh = await auth_service.store.find_by_email("a@x.com")
    assert fresh.authenticate("p2")


@pytest.mark.asyncio
async def test_concurrent_resets_with_one_link_change_password_once(tmp_path, notifier):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = build_session_factory(engine)

    async with session_factory() as session:
        store = AccountStore(session)
        account = await store.create(
            Account(username="ann01", name="Ann", email="a@x.com", hashed_password=hash_password("p1"))
        )
        token = issue_reset_token("Ann")
        await store.update(account.id, {"reset_password_link": token})

    lookups = []
    both_looked_up = asyncio.Event()
    write_lock = asyncio.Lock()

    class InterleavedStore(AccountStore):
        """Both requests find the link before either writes; writes take turns like a row lock"""

        async def find_by_reset_token(self, link):
            account = await super().find_by_reset_token(link)
            lookups.append(account)
            if len(lookups) == 2:
                both_looked_up.set()
            await both_looked_up.wait()
            return account

        async def consume_reset_token(self, account_id, link, new_password):
            async with write_lock:
                return await super().consume_reset_token(account_id, link, new_password)

    async def reset(new_password):
        async with session_factory() as session:
            service = AuthService(InterleavedStore(session), notifier, client_url="http://client.test")
            return await service.reset_password(token, new_password)

    try:
        results = await asyncio.gather(reset("new1"), reset("new2"), return_exceptions=True)

        successes = [r for r in results if isinstance(r, dict)]
        failures = [r for r in results if isinstance(r, NotFoundError)]
        assert successes == [{"message": "Reset password is success."}]
        assert len(failures) == 1
        assert all(found is not None for found in lookups)

        winner = "new1" if results[0] == successes[0] else "new2"
        async with session_factory() as session:
            stored = await AccountStore(session).find_by_email("a@x.com")
            assert stored.reset_password_link == ""
            assert stored.authenticate(winner)
    finally:
        await engine.dispose()
