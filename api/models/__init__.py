from .database.account import Account
from common.types import UserRole

__all__ = [
    "Account",
    "UserRole",
]
