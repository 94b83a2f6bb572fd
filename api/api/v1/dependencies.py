"""
Request-scoped providers for the store, the notification sender and the auth service
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import get_settings
from services.accounts.account_store import AccountStore
from services.auth.auth_service import AuthService
from services.send_mail.notification_service import NotificationSender, build_notification_sender


async def get_account_store(db: AsyncSession = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_notification_sender(request: Request) -> NotificationSender:
    """Process-wide sender created at startup and kept on app.state"""
    sender = getattr(request.app.state, "notification_sender", None)
    if sender is None:
        sender = build_notification_sender()
        request.app.state.notification_sender = sender
    return sender


async def get_auth_service(
    store: AccountStore = Depends(get_account_store),
    notifier: NotificationSender = Depends(get_notification_sender),
) -> AuthService:
    # Emailed links always use the configured front-end, never the caller's headers
    return AuthService(store, notifier, client_url=get_settings().CLIENT_URL)
