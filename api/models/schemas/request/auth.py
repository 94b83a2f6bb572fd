"""
Authentication request schemas
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from utils.password_utils import MAX_PASSWORD_BYTES, password_too_long


class RegisterRequest(BaseModel):
    name: str = Field(..., max_length=100, description="Display name")
    email: EmailStr = Field(..., description="Email address to verify")
    password: str = Field(..., description="Password")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError('Name is required')
        return v.strip()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if not v:
            raise ValueError('Password is required')
        if password_too_long(v):
            raise ValueError(f'Password must be at most {MAX_PASSWORD_BYTES} bytes')
        return v


class ActivateRequest(BaseModel):
    token: str = Field(..., description="Activation token from the email link")


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Email")
    password: str = Field(..., description="Password")

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if not v:
            raise ValueError('Password is required')
        return v


class ForgetPasswordRequest(BaseModel):
    email: EmailStr = Field(..., description="Email to send the reset link to")


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reset_password_link: Optional[str] = Field(
        None, alias="resetPasswordLink", description="Reset token from the email link"
    )
    new_password: str = Field(..., alias="newPassword", description="New password")

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        if not v:
            raise ValueError('New password is required')
        if password_too_long(v):
            raise ValueError(f'New password must be at most {MAX_PASSWORD_BYTES} bytes')
        return v
