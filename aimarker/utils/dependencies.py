"""
FastAPI Dependencies
Authentication dependencies
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional, Annotated
import logging

from aimarker.utils.security import verify_token

logger = logging.getLogger(__name__)

# Missing credentials are reported by get_current_user, not by the scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> dict:
    """
    Get current authenticated user from the Bearer access token

    Args:
        credentials: HTTP Authorization header with Bearer token

    Returns:
        dict: id, username and role of the user

    Raises:
        HTTPException: 401 without a token, 403 when it is invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token"
        )

    return {
        'id': payload['id'],
        'username': payload.get('username'),
        'role': payload.get('role', 'user')
    }


# Type aliases for dependency injection
CurrentUser = Annotated[dict, Depends(get_current_user)]
