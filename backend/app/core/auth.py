"""Bearer-token guard for library management routes.

When LIBRARY_API_TOKEN is empty the guard is open (local development).
"""
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import settings

security = HTTPBearer(auto_error=False)


async def require_library_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    expected = settings.LIBRARY_API_TOKEN
    if not expected:
        return

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
