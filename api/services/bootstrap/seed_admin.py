from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from common.types import UserRole
from config.settings import get_settings
from core.exceptions import DuplicateEmailError
from models.database.account import Account, generate_username
from services.accounts.account_store import AccountStore
from utils.logging import get_logger
from utils.password_utils import hash_password

logger = get_logger(__name__)


async def seed_admin(db: AsyncSession) -> Optional[str]:
    """
    Seed an admin account if not exists.
    Uses settings to avoid hard-code:
      ADMIN_NAME, ADMIN_EMAIL, ADMIN_PASSWORD
    Returns account id if created or found.
    """
    settings = get_settings()
    email = settings.ADMIN_EMAIL
    password = settings.ADMIN_PASSWORD

    if not (email and password):
        logger.info("Admin seed skipped: missing ADMIN_* settings")
        return None

    store = AccountStore(db)
    account = await store.find_by_email(email)
    if account:
        if not account.is_admin():
            logger.warning("Admin seed: account exists without admin role; leaving it unchanged")
        else:
            logger.info("Admin already exists; skipping creation")
        return str(account.id)

    account = Account(
        username=generate_username(),
        name=settings.ADMIN_NAME,
        email=email,
        hashed_password=hash_password(password),
        role=UserRole.ADMIN.value,
    )
    try:
        account = await store.create(account)
    except DuplicateEmailError:
        existing = await store.find_by_email(email)
        return str(existing.id) if existing else None

    logger.info(f"Admin account created: {account.id}")
    return str(account.id)
