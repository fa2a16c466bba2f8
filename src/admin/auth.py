"""Session identity and authorization dependencies.

The session credential is an HS256 JWT in the `auth_token` cookie with the
user id as `sub`. A suspended user resolves to "not authenticated": while a
deletion is pending the account must not be usable.
"""

from __future__ import annotations

import logging
import secrets
import uuid

import jwt
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.db.engine import get_session
from src.models.admin_role import AdminRole
from src.models.user import User

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def decode_session_token(token: str) -> uuid.UUID | None:
    """Return the user id carried by a valid session token, else None."""
    if not settings.security.jwt_secret:
        logger.error("JWT_SECRET not configured, rejecting session token")
        return None
    try:
        payload = jwt.decode(
            token,
            settings.security.jwt_secret,
            algorithms=[settings.security.jwt_algorithm],
        )
        return uuid.UUID(str(payload["sub"]))
    except (jwt.PyJWTError, KeyError, ValueError):
        return None


async def resolve_user(request: Request, db: AsyncSession) -> User | None:
    """Who is calling: the active user behind the session cookie, or None."""
    token = request.cookies.get(settings.security.auth_cookie_name)
    if not token:
        return None
    user_id = decode_session_token(token)
    if user_id is None:
        return None
    user = await db.get(User, user_id)
    if user is None or user.is_suspended:
        return None
    return user


async def require_user(
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> User:
    """FastAPI dependency: authenticated, non-suspended user or 401."""
    user = await resolve_user(request, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


async def is_admin(db: AsyncSession, user_id: uuid.UUID) -> bool:
    result = await db.execute(select(AdminRole.id).where(AdminRole.user_id == user_id))
    return result.first() is not None


async def require_admin(
    user: User = Depends(require_user),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> User:
    """FastAPI dependency: authenticated administrator, 401/403 otherwise."""
    if not await is_admin(db, user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Admin access required",
        )
    return user


async def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),  # noqa: B008
) -> None:
    """FastAPI dependency: bearer token of the external scheduler."""
    expected = settings.security.cron_secret
    if not expected:
        logger.error("[CRON] CRON_SECRET not configured in environment")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="CRON_SECRET not configured",
        )
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode("utf-8"),
        expected.encode("utf-8"),
    ):
        logger.warning("[CRON] Invalid CRON_SECRET provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def clear_session_cookie(response: Response) -> None:
    """Expire the session credential on the client."""
    response.delete_cookie(
        settings.security.auth_cookie_name,
        path="/",
        secure=settings.security.secure_cookies,
        httponly=True,
        samesite="lax",
    )


def client_ip(request: Request) -> str | None:
    """Best-effort origin address for the audit ledger."""
    forwarded = request.headers.get("cf-connecting-ip") or request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
