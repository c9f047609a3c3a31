"""
Authentication dependencies for FastAPI.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from imagestudio.config import Settings
from imagestudio.dependencies.context import get_settings
from imagestudio.services.jwt_service import JWTService


# Security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    """JWT token payload model."""
    sub: str      # user_id
    email: str | None = None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings)
) -> TokenPayload:
    """
    Dependency that requires valid JWT token.

    Returns token payload if valid, raises 401 if missing or invalid.

    Usage:
        @app.get("/protected")
        async def protected_route(user: TokenPayload = Depends(get_current_user)):
            ...
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = JWTService(settings).verify_token(credentials.credentials)

    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenPayload(**payload)
