import pytest
from pydantic import ValidationError

from config.settings import Settings


def test_token_secrets_must_differ():
    with pytest.raises(ValidationError):
        Settings(JWT_ACCOUNT_ACTIVATION="same", JWT_SECRET="same", JWT_RESET_PASSWORD="other")


def test_database_url_uses_async_drivers():
    assert Settings(DATABASE_URL="postgresql://u:p@db/accounts").database_url == (
        "postgresql+asyncpg://u:p@db/accounts"
    )
    assert Settings(DATABASE_URL="sqlite:///./accounts.db").database_url == "sqlite+aiosqlite:///./accounts.db"


def test_cors_origins_accept_csv_and_json():
    assert Settings(CORS_ORIGINS="http://a.test, http://b.test").CORS_ORIGINS == ["http://a.test", "http://b.test"]
    assert Settings(CORS_ORIGINS='["http://a.test"]').CORS_ORIGINS == ["http://a.test"]
    assert Settings(CORS_ORIGINS="").CORS_ORIGINS == []


def test_unknown_email_backend_is_rejected():
    with pytest.raises(ValidationError):
        Settings(EMAIL_BACKEND="carrier-pigeon")


def test_client_url_must_be_an_absolute_url():
    with pytest.raises(ValidationError):
        Settings(CLIENT_URL="")
    with pytest.raises(ValidationError):
        Settings(CLIENT_URL="evil.example")

    assert Settings(CLIENT_URL="https://app.example/").CLIENT_URL == "https://app.example"
