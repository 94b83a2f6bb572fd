"""
Account model
"""
import secrets
from typing import Dict, Any
from sqlalchemy import Column, String, UniqueConstraint, Index

from common.types import UserRole
from models.database.base import BaseModel
from utils.password_utils import hash_password, verify_password


def generate_username() -> str:
    """Random public handle for a new account"""
    return secrets.token_urlsafe(6)


class Account(BaseModel):

    __tablename__ = "accounts"

    username = Column(
        String(32),
        nullable=False,
        comment="Generated public handle"
    )

    name = Column(
        String(100),
        nullable=False,
        comment="Display name"
    )

    email = Column(
        String(255),
        nullable=False,
        comment="Email address, unique and case-sensitive as stored"
    )

    hashed_password = Column(
        String(255),
        nullable=False,
        comment="bcrypt hash, salt embedded"
    )

    role = Column(
        String(20),
        nullable=False,
        default=UserRole.REGULAR.value,
        server_default=UserRole.REGULAR.value,
        comment="Account role: regular, admin"
    )

    reset_password_link = Column(
        String(1024),
        nullable=False,
        default="",
        server_default="",
        comment="Most recently issued password reset token, empty when none is pending"
    )

    __table_args__ = (
        UniqueConstraint('email', name='uq_account_email'),
        UniqueConstraint('username', name='uq_account_username'),
        Index('idx_account_reset_link', 'reset_password_link'),
    )

    def __repr__(self) -> str:
        return f"<Account(id='{self.id}', username='{self.username}', role='{self.role}')>"

    def set_password(self, password: str) -> None:
        self.hashed_password = hash_password(password)

    def authenticate(self, password: str) -> bool:
        """Check a plaintext password against the stored hash"""
        return verify_password(password, self.hashed_password)

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_public(self) -> Dict[str, Any]:
        """Fields safe to return to clients"""
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "role": self.role,
        }
