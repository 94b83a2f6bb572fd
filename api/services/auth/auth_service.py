from typing import Optional, Dict, Any

from common.types import EmailTemplate, TokenKind
from config.settings import get_settings
from core.exceptions import (
    DeliveryError,
    DuplicateEmailError,
    ExpiredOrInvalidTokenError,
    InvalidCredentialError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from models.database.account import Account, generate_username
from services.accounts.account_store import AccountStore
from services.send_mail.notification_service import NotificationSender
from utils.jwt_utils import (
    JWTManager,
    issue_activation_token,
    issue_reset_token,
    issue_session_token,
)
from utils.logging import get_logger
from utils.password_utils import hash_password

logger = get_logger(__name__)


class AuthService:
    """
    Account lifecycle workflows
    - register: email ownership proven by an activation token, no row written
    - activate: consumes the activation token and creates the account
    - login: password check, issues a session token
    - forget_password / reset_password: single-use reset token mirrored
      into `reset_password_link`

    Each method returns the JSON body for success and raises a
    BaseAPIException subclass for failure.
    """

    def __init__(self, store: AccountStore, notifier: NotificationSender, client_url: str = ""):
        self.store = store
        self.notifier = notifier
        self.client_url = client_url.rstrip("/")
        self.settings = get_settings()

    def _activation_link(self, token: str) -> str:
        return f"{self.client_url}/auth/activate/{token}"

    def _reset_link(self, token: str) -> str:
        return f"{self.client_url}/auth/password/reset/{token}"

    async def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        if await self.store.find_by_email(email):
            logger.warning("Register rejected: email is taken")
            raise DuplicateEmailError("Email is taken", status_code=400)

        token = issue_activation_token(name, email, password)

        try:
            await self.notifier.send(
                EmailTemplate.ACTIVATION,
                email,
                {
                    "name": name,
                    "action_url": self._activation_link(token),
                    "expires_in_minutes": self.settings.JWT_EXPIRED_MINUTES,
                },
            )
        except DeliveryError as e:
            logger.error(f"Register: activation email not delivered - {e.message}")
            raise DeliveryError(
                f"We could not verify your email {email}. Please try again",
                status_code=422,
            ) from e

        logger.info("Register: activation email sent")
        return {
            "message": f"Email has been sent to {email}. Follow the instructions to complete your registration"
        }

    async def activate(self, token: Optional[str]) -> Dict[str, Any]:
        verification = JWTManager.verify(token, TokenKind.ACTIVATION)
        if not verification.valid:
            raise ExpiredOrInvalidTokenError("Expired link. Try again")

        claims = verification.payload
        name, email, password = claims.get("name"), claims.get("email"), claims.get("password")
        if not (name and email and password):
            logger.warning("Activate rejected: token payload incomplete")
            raise ExpiredOrInvalidTokenError("Expired link. Try again")

        if await self.store.find_by_email(email):
            logger.warning("Activate rejected: email already taken")
            raise DuplicateEmailError("Email is already taken", status_code=401)

        account = Account(
            username=generate_username(),
            name=name,
            email=email,
            hashed_password=hash_password(password),
        )
        try:
            account = await self.store.create(account)
        except DuplicateEmailError as e:
            # Lost the race against a concurrent activation of the same email
            raise DuplicateEmailError("Email is already taken", status_code=401) from e
        except PersistenceError as e:
            raise PersistenceError("Unable to save your data. Try again.", status_code=401) from e

        logger.info(f"Activate: account {account.id} created")
        return {"message": "Registration success. Please login."}

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        account = await self.store.find_by_email(email)
        if not account:
            raise NotFoundError("User with that email doesn't exists. Please register.")

        if not account.authenticate(password):
            logger.warning(f"Login rejected: password mismatch for account {account.id}")
            raise InvalidCredentialError("Password isn't match. Please try again.")

        token = issue_session_token(str(account.id))
        logger.info(f"Login: account {account.id} signed in")
        return {"token": token, "user": account.to_public()}

    async def forget_password(self, email: str) -> Dict[str, Any]:
        account = await self.store.find_by_email(email)
        if not account:
            raise NotFoundError("User with that email does not exists")

        token = issue_reset_token(account.name)

        # Stored before sending so every delivered link matches a stored value
        try:
            await self.store.update(account.id, {"reset_password_link": token})
        except (PersistenceError, NotFoundError) as e:
            logger.error(f"Forget password: reset link not stored for account {account.id}")
            raise PersistenceError("Reset password is failed. Try later.") from e

        try:
            await self.notifier.send(
                EmailTemplate.RESET,
                email,
                {
                    "name": account.name,
                    "action_url": self._reset_link(token),
                    "expires_in_minutes": self.settings.RESET_TOKEN_TTL_MINUTES,
                },
            )
        except DeliveryError as e:
            logger.error(f"Forget password: reset email not delivered for account {account.id}")
            raise DeliveryError(
                "We could not send reset password link to your email. Please try again later",
                status_code=self.settings.APPLICATION_ERROR_CODE,
            ) from e

        logger.info(f"Forget password: reset email sent for account {account.id}")
        return {"message": f"Email has been sent to {email}. Click on the link to reset password"}

    async def reset_password(self, reset_password_link: Optional[str], new_password: str) -> Dict[str, Any]:
        if not reset_password_link:
            raise ValidationError("Reset password link is required")

        verification = JWTManager.verify(reset_password_link, TokenKind.RESET)
        if not verification.valid:
            raise ExpiredOrInvalidTokenError("Token is expired. Try again later.")

        account = await self.store.find_by_reset_token(reset_password_link)
        if not account:
            logger.warning("Reset password rejected: link not found or already used")
            raise NotFoundError("Password reset failed. Try again later.")

        try:
            await self.store.consume_reset_token(account.id, reset_password_link, new_password)
        except NotFoundError as e:
            # Another request consumed the same link first
            raise NotFoundError("Password reset failed. Try again later.") from e
        except PersistenceError as e:
            raise PersistenceError("Saving your new password is failed. Try again later.") from e

        logger.info(f"Reset password: account {account.id} password changed")
        return {"message": "Reset password is success."}
