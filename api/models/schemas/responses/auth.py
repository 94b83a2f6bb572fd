from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    message: str


class PublicUser(BaseModel):
    """Account fields safe to return to clients"""
    id: str
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    token: str = Field(..., description="Session token, send as `Authorization: Bearer <token>`")
    user: PublicUser
