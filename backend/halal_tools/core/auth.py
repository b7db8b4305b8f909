"""
Authentication dependencies
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from halal_tools.core.database import get_db
from halal_tools.models.user import User
from halal_tools.services.auth_service import AuthService

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Get current user if a valid token was sent, otherwise None (no exception)

    An invalid or expired token is treated like no token, so anonymous
    endpoints keep working with a stale token in the browser.
    """
    if not credentials or not credentials.credentials:
        return None
    return AuthService(db).get_user_from_token(credentials.credentials)


async def get_current_user_required(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    """
    Require authentication: return User or raise 401
    """
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
