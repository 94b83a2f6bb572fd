"""Common package for the whole system"""

from .types import (
    UserRole,
    TokenKind,
    EmailTemplate,
)

__all__ = [
    "UserRole",
    "TokenKind",
    "EmailTemplate",
]
