"""
Authentication and authorization for API routes.

This module provides:
1. Verification of HS256 JWT bearer tokens (issued by the auth service)
2. A lookup of the token subject in our users table
3. A central policy table mapping each route (by endpoint) to the roles
   allowed to call it, evaluated by one dependency mounted on each router

SECURITY: Never trust a user id or role from client parameters.
Always use the AuthContext returned by these dependencies.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.database import get_db
from models.user import User, UserRole

logger = logging.getLogger(__name__)

SYNC_ROLES: frozenset[str] = frozenset({UserRole.ADMIN.value, UserRole.TEAM_LEADER.value})
ADMIN_ROLES: frozenset[str] = frozenset({UserRole.ADMIN.value})

# Routes are identified by their endpoint function ("module.function"),
# which is the same however the router is mounted or nested. Routes not
# listed only require a valid token.
ROUTE_POLICIES: dict[str, frozenset[str]] = {
    "api.routes.integrations.sync_group_commits": SYNC_ROLES,
    "api.routes.integrations.sync_group_issues": SYNC_ROLES,
    "api.routes.settings.get_integration_settings": ADMIN_ROLES,
    "api.routes.settings.save_integration_settings": ADMIN_ROLES,
}

# Routes reachable without a token
PUBLIC_ROUTES: frozenset[str] = frozenset({
    "api.routes.settings.get_integration_status",
})


@dataclass
class AuthContext:
    """
    Verified authentication context.

    Values come from the verified token subject and our database.
    """
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def _extract_token(authorization: Optional[str]) -> str:
    """
    Extract the JWT token from the Authorization header.

    Raises:
        HTTPException: If header is missing or malformed
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return parts[1]


def _verify_jwt(token: str) -> dict:
    """Verify the token signature and expiry and return its payload."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError as e:
        logger.warning("JWT verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def _get_user_from_token(session: AsyncSession, payload: dict) -> User:
    """Look up the active user named by the token's ``sub`` claim."""
    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: malformed subject",
        )

    result = await session.execute(
        select(User).where(User.id == user_id, User.active())
    )
    user: Optional[User] = result.scalar_one_or_none()
    if not user:
        logger.warning("User not found for JWT subject: %s", sub)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


async def get_current_auth(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    session: AsyncSession = Depends(get_db),
) -> AuthContext:
    """
    FastAPI dependency that verifies the JWT and returns AuthContext.

    Raises:
        HTTPException: If authentication fails
    """
    token = _extract_token(authorization)
    payload = _verify_jwt(token)
    user = await _get_user_from_token(session, payload)
    return AuthContext(user_id=user.id, email=user.email, role=user.role)


def route_id(endpoint: Callable[..., Any]) -> str:
    """Policy-table name of an endpoint function."""
    return f"{endpoint.__module__}.{endpoint.__name__}"


def _route_key(request: Request) -> str:
    """
    Identify the matched route by its endpoint function.

    Raises:
        HTTPException: 403 if the route cannot be identified
    """
    endpoint = request.scope.get("endpoint")
    if endpoint is None:
        endpoint = getattr(request.scope.get("route"), "endpoint", None)
    if endpoint is None:
        logger.warning("No endpoint resolved for %s %s", request.method, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Route is not covered by an access policy",
        )
    return route_id(endpoint)


async def authorize(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    session: AsyncSession = Depends(get_db),
) -> Optional[AuthContext]:
    """
    Router-level dependency enforcing ROUTE_POLICIES.

    Public routes return None; every other route requires a valid token,
    and routes listed in the table additionally require one of its roles.
    """
    key = _route_key(request)
    if key in PUBLIC_ROUTES:
        return None

    auth = await get_current_auth(authorization, session)

    allowed: Optional[frozenset[str]] = ROUTE_POLICIES.get(key)
    if allowed is not None and auth.role not in allowed:
        logger.info(
            "Denied %s %s (%s) for role %s",
            request.method,
            request.url.path,
            key,
            auth.role,
            extra={"user_id": auth.user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient role for this operation",
        )
    return auth
