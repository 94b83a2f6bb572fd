from passlib.context import CryptContext

_password_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt ignores everything after the first 72 bytes
MAX_PASSWORD_BYTES = 72


def password_too_long(plain_password: str) -> bool:
    return len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain_password: str) -> str:
    """Salted bcrypt hash of a plaintext password"""
    if password_too_long(plain_password):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return _password_ctx.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time check of a plaintext password against a stored hash"""
    if not plain_password or not hashed_password:
        return False
    if password_too_long(plain_password):
        return False
    try:
        return _password_ctx.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False
