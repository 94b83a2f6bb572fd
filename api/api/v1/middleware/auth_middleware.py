"""
Authentication gates for FastAPI Depends()
- RequireSignIn: valid bearer session token
- RequireAccount: token resolves to a stored account
- RequireAdmin: resolved account has the admin role
"""
from typing import Dict, Any

from fastapi import Depends, Request

from api.v1.dependencies import get_account_store
from common.types import TokenKind
from core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from models.database.account import Account
from services.accounts.account_store import AccountStore
from utils.jwt_utils import JWTManager
from utils.logging import get_logger
from utils.request_utils import get_bearer_token

logger = get_logger(__name__)


class RequireSignIn:
    """
    Require a valid session token
    Attaches the decoded claims to request.state.auth
    """

    async def __call__(self, request: Request) -> Dict[str, Any]:
        token = get_bearer_token(request)
        if not token:
            raise AuthenticationError("No authorization token was found")

        verification = JWTManager.verify(token, TokenKind.SESSION)
        if not verification.valid or not verification.payload.get("user_id"):
            logger.warning(f"Sign-in gate rejected token: {verification.reason or 'missing user_id'}")
            raise AuthenticationError("Invalid or expired token")

        request.state.auth = verification.payload
        return verification.payload


class RequireAccount:
    """
    Require a signed-in user whose account still exists
    Attaches the account to request.state.profile
    """

    async def __call__(
        self,
        request: Request,
        auth: Dict[str, Any] = Depends(RequireSignIn()),
        store: AccountStore = Depends(get_account_store),
    ) -> Account:
        account = await store.find_by_id(auth["user_id"])
        if not account:
            logger.warning(f"Account gate: account {auth['user_id']} not found")
            raise NotFoundError("User is not found")

        request.state.profile = account
        return account


class RequireAdmin:
    """
    Require a signed-in admin
    """

    async def __call__(
        self,
        account: Account = Depends(RequireAccount()),
    ) -> Account:
        if not account.is_admin():
            logger.warning(f"Admin gate: access denied for account {account.id}")
            raise AuthorizationError("Admin resource. Access is denied.")

        logger.info(f"Admin access granted for account {account.id}")
        return account


require_account = RequireAccount()
require_admin = RequireAdmin()

AuthenticatedAccount = Depends(require_account)
AdminOnly = Depends(require_admin)
