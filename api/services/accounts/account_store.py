import uuid
from typing import Any, Dict, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import DuplicateEmailError, NotFoundError, PersistenceError
from models.database.account import Account
from utils.logging import get_logger
from utils.password_utils import hash_password

logger = get_logger(__name__)

UPDATABLE_FIELDS = {"name", "password", "reset_password_link", "role"}


class AccountStore:
    """
    Persistence for accounts keyed by email / id / reset token.
    Email uniqueness is enforced by the `uq_account_email` constraint, so a
    concurrent duplicate create fails in the database even when both callers
    passed their own existence check.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[Account]:
        if not email:
            return None
        result = await self.db.execute(select(Account).where(Account.email == email))
        return result.scalar_one_or_none()

    async def find_by_id(self, account_id: Union[str, uuid.UUID]) -> Optional[Account]:
        try:
            key = account_id if isinstance(account_id, uuid.UUID) else uuid.UUID(str(account_id))
        except (TypeError, ValueError):
            return None
        return await self.db.get(Account, key)

    async def find_by_reset_token(self, token: str) -> Optional[Account]:
        if not token:
            return None
        result = await self.db.execute(
            select(Account).where(Account.reset_password_link == token)
        )
        return result.scalars().first()

    async def _email_taken(self, email: str) -> bool:
        result = await self.db.execute(select(Account.id).where(Account.email == email))
        return result.first() is not None

    async def create(self, account: Account) -> Account:
        """Insert a new account; DuplicateEmailError if the email is already stored"""
        try:
            self.db.add(account)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if await self._email_taken(account.email):
                logger.warning("Account create rejected: duplicate email")
                raise DuplicateEmailError() from e
            logger.error(f"Account create failed on constraint: {e.orig}")
            raise PersistenceError("Unable to save account") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Account create failed: {e}")
            raise PersistenceError("Unable to save account") from e

        logger.info(f"Account created: {account.id}")
        return account

    async def update(self, account_id: Union[str, uuid.UUID], patch: Dict[str, Any]) -> Account:
        """Apply patch to an account; a `password` key is hashed before storing"""
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update account fields: {sorted(unknown)}")

        account = await self.find_by_id(account_id)
        if not account:
            raise NotFoundError("Account not found")

        for key, value in patch.items():
            if key == "password":
                account.set_password(value)
            else:
                setattr(account, key, value)

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Account update failed for {account_id}: {e}")
            raise PersistenceError("Unable to update account") from e

        return account

    async def consume_reset_token(
        self,
        account_id: Union[str, uuid.UUID],
        token: str,
        new_password: str,
    ) -> Account:
        """
        Set a new password only while `token` is still the stored reset link.
        The link is cleared in the same UPDATE, so of two requests carrying
        the same token exactly one matches a row.
        """
        if not token:
            raise NotFoundError("Reset link not found")
        key = account_id if isinstance(account_id, uuid.UUID) else uuid.UUID(str(account_id))

        stmt = (
            update(Account)
            .where(Account.id == key, Account.reset_password_link == token)
            .values(hashed_password=hash_password(new_password), reset_password_link="")
        )
        try:
            result = await self.db.execute(stmt)
            if result.rowcount != 1:
                await self.db.rollback()
                logger.warning(f"Reset link already consumed for account {key}")
                raise NotFoundError("Reset link not found")
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Password reset write failed for {key}: {e}")
            raise PersistenceError("Unable to update account") from e

        return await self.find_by_id(key)
