"""
API dependencies for FastAPI dependency injection.

Provides common dependencies like database sessions and authentication.
"""
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from salonbook.api.middleware.error_handler import ForbiddenException, UnauthorizedException
from salonbook.lib.db import get_db as get_db_session
from salonbook.lib.jwt import verify_token
from salonbook.models.users import User, UserRole


# Re-export get_db for convenience
get_db = get_db_session


# HTTP Bearer token security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to get current authenticated user from JWT token.

    Args:
        credentials: Bearer token from Authorization header
        db: Database session

    Returns:
        Authenticated, active user

    Raises:
        UnauthorizedException: 401 if token missing/invalid or user not found
    """
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    try:
        payload = verify_token(credentials.credentials)
        user_id = UUID(payload["sub"])  # JWT standard: user_id in 'sub' claim
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise UnauthorizedException("Invalid authentication token")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedException("User not found")

    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Dependency to get current user if authenticated, None otherwise.

    Useful for endpoints that work with or without authentication.
    """
    if credentials is None:
        return None

    try:
        return get_current_user(credentials, db)
    except UnauthorizedException:
        return None


def require_customer(user: User = Depends(get_current_user)) -> User:
    """Dependency allowing only principals acting as customers."""
    if user.role != UserRole.CUSTOMER:
        raise ForbiddenException("Only customers can perform this action")
    return user
