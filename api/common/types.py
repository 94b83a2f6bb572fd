"""
Common types and enums for the entire system
Single source of truth to avoid duplicates and ensure consistency
"""
from enum import Enum


class UserRole(Enum):
    """Enum define account roles"""
    REGULAR = "regular"
    ADMIN = "admin"


class TokenKind(Enum):
    """Enum define signed token kinds; each kind has its own secret"""
    ACTIVATION = "activation"
    RESET = "reset"
    SESSION = "session"


class EmailTemplate(Enum):
    """Enum define transactional email templates"""
    ACTIVATION = "activation"
    RESET = "reset"
