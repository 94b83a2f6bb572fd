"""
Signed, expiring tokens for account activation, password reset and sessions
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from datetime import datetime, timedelta
from jose import ExpiredSignatureError, JWTError, jwt
import uuid

from common.types import TokenKind
from config.settings import get_settings
from utils.datetime_utils import DateTimeManager
from utils.logging import get_logger

logger = get_logger(__name__)

_RESERVED_CLAIMS = ("iat", "exp", "jti", "type")


@dataclass
class TokenVerification:
    """Outcome of verifying a token; never raised, always returned"""
    valid: bool
    payload: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None

    @classmethod
    def failure(cls, reason: str) -> "TokenVerification":
        return cls(valid=False, reason=reason)


class JWTManager:
    """
    JWT token management
    - one secret per TokenKind so a token of one kind never verifies as another
    - every token carries iat, exp, a random jti and its kind in `type`
    """

    @staticmethod
    def secret_for(kind: TokenKind) -> str:
        settings = get_settings()
        secrets = {
            TokenKind.ACTIVATION: settings.JWT_ACCOUNT_ACTIVATION,
            TokenKind.RESET: settings.JWT_RESET_PASSWORD,
            TokenKind.SESSION: settings.JWT_SECRET,
        }
        return secrets[kind]

    @staticmethod
    def issue(
        payload: Dict[str, Any],
        kind: TokenKind,
        ttl: timedelta,
        now: Optional[datetime] = None,
    ) -> str:
        """Sign payload with the secret of `kind`, expiring `ttl` after `now`"""
        issued_at = DateTimeManager.to_utc(now) if now else DateTimeManager.utc_now()
        claims = {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS}
        jti = str(uuid.uuid4())
        claims.update({
            "iat": issued_at,
            "exp": issued_at + ttl,
            "jti": jti,
            "type": kind.value,
        })

        token = jwt.encode(
            claims,
            JWTManager.secret_for(kind),
            algorithm=get_settings().JWT_ALGORITHM
        )
        logger.debug(f"Token issued: type={kind.value}, jti={jti}")
        return token

    @staticmethod
    def verify(token: Any, kind: TokenKind) -> TokenVerification:
        """
        Verify signature, expiry and kind of a token.
        Attacker-controlled input never raises; failures come back as a
        TokenVerification with valid=False.
        """
        if not isinstance(token, str) or not token.strip():
            return TokenVerification.failure("missing token")

        try:
            payload = jwt.decode(
                token,
                JWTManager.secret_for(kind),
                algorithms=[get_settings().JWT_ALGORITHM],
                options={"verify_aud": False}
            )
        except ExpiredSignatureError:
            logger.info(f"Token verification failed: {kind.value} token expired")
            return TokenVerification.failure("expired")
        except JWTError as e:
            logger.info(f"Token verification failed: {kind.value} token invalid - {e}")
            return TokenVerification.failure("invalid")
        except Exception as e:
            logger.warning(f"Token verification failed: malformed {kind.value} token - {type(e).__name__}")
            return TokenVerification.failure("malformed")

        if not isinstance(payload, dict) or payload.get("type") != kind.value:
            logger.info(f"Token verification failed: expected {kind.value} token")
            return TokenVerification.failure("wrong token type")

        if "exp" not in payload:
            return TokenVerification.failure("missing expiry")

        return TokenVerification(valid=True, payload=payload)


def issue_activation_token(name: str, email: str, password: str, now: Optional[datetime] = None) -> str:
    settings = get_settings()
    return JWTManager.issue(
        {"name": name, "email": email, "password": password},
        TokenKind.ACTIVATION,
        timedelta(minutes=settings.JWT_EXPIRED_MINUTES),
        now=now,
    )


def issue_reset_token(name: str, now: Optional[datetime] = None) -> str:
    settings = get_settings()
    return JWTManager.issue(
        {"name": name},
        TokenKind.RESET,
        timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
        now=now,
    )


def issue_session_token(account_id: str, now: Optional[datetime] = None) -> str:
    settings = get_settings()
    return JWTManager.issue(
        {"user_id": account_id},
        TokenKind.SESSION,
        timedelta(days=settings.SESSION_EXPIRE_DAYS),
        now=now,
    )
