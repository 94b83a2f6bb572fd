from typing import Optional
from fastapi import Request


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header"""
    auth_header = request.headers.get("authorization")
    if not auth_header:
        return None
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()
