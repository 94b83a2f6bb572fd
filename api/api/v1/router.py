from fastapi import APIRouter
from api.v1.endpoints import (
    auth,
    users,
    health,
)

api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
