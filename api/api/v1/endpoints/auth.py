from fastapi import APIRouter, Depends

from api.v1.dependencies import get_auth_service
from models.schemas.request.auth import (
    RegisterRequest,
    ActivateRequest,
    LoginRequest,
    ForgetPasswordRequest,
    ResetPasswordRequest,
)
from models.schemas.responses.auth import (
    MessageResponse,
    LoginResponse,
)
from services.auth.auth_service import AuthService
from utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post(
    "/register",
    response_model=MessageResponse,
    operation_id="auth_register",
    summary="Send an account activation link",
)
async def register(payload: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    return await service.register(payload.name, str(payload.email), payload.password)


@router.post(
    "/register/activate",
    response_model=MessageResponse,
    operation_id="auth_register_activate",
    summary="Create the account from an activation token",
)
async def register_activate(payload: ActivateRequest, service: AuthService = Depends(get_auth_service)):
    return await service.activate(payload.token)


@router.post(
    "/login",
    response_model=LoginResponse,
    operation_id="auth_login",
    summary="User login",
)
async def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)):
    return await service.login(str(payload.email), payload.password)


@router.post(
    "/forget-password",
    response_model=MessageResponse,
    operation_id="auth_forget_password",
    summary="Send a password reset link",
)
async def forget_password(payload: ForgetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return await service.forget_password(str(payload.email))


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    operation_id="auth_reset_password",
    summary="Set a new password with a reset token",
)
async def reset_password(payload: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return await service.reset_password(payload.reset_password_link, payload.new_password)
