from fastapi import APIRouter

from api.v1.middleware.auth_middleware import AuthenticatedAccount, AdminOnly
from models.database.account import Account
from models.schemas.responses.auth import PublicUser

router = APIRouter()


@router.get(
    "/user",
    response_model=PublicUser,
    operation_id="user_profile",
    summary="Profile of the signed-in account",
)
async def read_profile(account: Account = AuthenticatedAccount):
    return account.to_public()


@router.get(
    "/admin",
    response_model=PublicUser,
    operation_id="admin_profile",
    summary="Profile of the signed-in admin",
)
async def read_admin_profile(account: Account = AdminOnly):
    return account.to_public()
