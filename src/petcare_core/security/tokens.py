"""
JWT bearer tokens for authenticating API callers.

Tokens carry the user id (``sub``), email and role, and are signed with
``JWT_SECRET`` using python-jose.
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError
from jose import jwt as jose_jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import AuthenticationException
from ..models.user import User, UserRole
from ..utils.config import SecuritySettings
from ..utils.datetime_utils import get_current_utc

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def create_access_token(
    user: User,
    settings: SecuritySettings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token for ``user``.

    Args:
        user: Authenticated user
        settings: Secret, algorithm and default lifetime
        expires_delta: Override for the token lifetime
    """
    now = get_current_utc()
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expires_minutes))
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": UserRole(user.role).value,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jose_jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: SecuritySettings) -> Dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        AuthenticationException: If the token is invalid, expired or has no subject
    """
    try:
        payload = jose_jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise AuthenticationException("Invalid or expired token")

    if not payload.get("sub"):
        raise AuthenticationException("Invalid or expired token")
    return payload


def extract_bearer_token(authorization_header: Optional[str]) -> str:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthenticationException: If the header is missing or not a bearer token
    """
    if not authorization_header or not authorization_header.startswith(BEARER_PREFIX):
        raise AuthenticationException("Authentication required")
    token = authorization_header[len(BEARER_PREFIX) :].strip()
    if not token:
        raise AuthenticationException("Authentication required")
    return token


async def authenticate_bearer(
    session: AsyncSession,
    authorization_header: Optional[str],
    settings: SecuritySettings,
) -> User:
    """
    Resolve an ``Authorization`` header to an active user.

    Raises:
        AuthenticationException: If the token is missing or invalid, or the
            user no longer exists
    """
    payload = decode_access_token(extract_bearer_token(authorization_header), settings)

    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise AuthenticationException("Invalid or expired token")

    result = await session.execute(
        select(User).where(User.id == user_id, User.create_query_filter_active())
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise AuthenticationException("User not found")
    return user
