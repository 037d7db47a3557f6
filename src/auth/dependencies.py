"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Session token extraction (Bearer header, then session cookie)
- Current user resolution into an explicit SessionUser
- Role-kind access control
- Session revocation at logout
"""

from typing import Annotated, Any

import redis.asyncio as redis
import structlog
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from pydantic import ValidationError

from src.auth.permissions import RoleKind, UserRole
from src.auth.schemas import SessionUser
from src.auth.security import decode_access_token, token_ttl_seconds
from src.config.settings import get_settings
from src.core.context import bind_session
from src.core.redis import get_redis, revoked_session_key


logger = structlog.get_logger(__name__)


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def get_session_token(request: Request) -> str | None:
    """Session token from the Authorization header, else from the cookie."""
    token = get_token_from_header(request)
    if token:
        return token
    return request.cookies.get(get_settings().auth_cookie_name)


# ==============================================================================
# Revocation
# ==============================================================================


async def is_session_revoked(jti: str) -> bool:
    """Check the revocation list. Without Redis nothing is revoked."""
    client = get_redis()
    if client is None:
        return False
    try:
        return bool(await client.exists(revoked_session_key(jti)))
    except redis.RedisError as e:
        logger.warning("session_revocation_check_failed", error=str(e))
        return False


async def revoke_session(payload: dict[str, Any]) -> bool:
    """Put a token's jti on the revocation list until it expires.

    Returns:
        True if the session was recorded as revoked
    """
    client = get_redis()
    ttl = token_ttl_seconds(payload)
    if client is None or ttl <= 0:
        return False
    try:
        await client.set(revoked_session_key(payload["jti"]), "1", ex=ttl)
    except redis.RedisError as e:
        logger.warning("session_revocation_failed", error=str(e))
        return False
    return True


def session_user_from_payload(payload: dict[str, Any]) -> SessionUser:
    """Build the SessionUser from decoded claims.

    Raises:
        ValidationError: If a claim is malformed (unknown role tag, bad UUID)
    """
    return SessionUser(
        id=payload["sub"],
        username=payload["username"],
        role=payload["role"],
        tenant_id=payload["tenant_id"],
        jti=payload["jti"],
    )


# ==============================================================================
# Current User
# ==============================================================================


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str | None, Depends(get_session_token)],
) -> SessionUser:
    """Get the authenticated caller from the session token.

    This is the main authentication dependency.

    Raises:
        HTTPException(401): If token is missing, invalid, expired or revoked
    """
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_access_token(token)
        user = session_user_from_payload(payload)
    except (JWTError, ValidationError) as e:
        raise _unauthorized("Invalid or expired session") from e

    if await is_session_revoked(user.jti):
        raise _unauthorized("Session has ended")

    bind_session(user.id, user.tenant_id)
    return user


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_session_token)],
) -> SessionUser | None:
    """Get current user if authenticated, None otherwise."""
    if not token:
        return None

    try:
        payload = decode_access_token(token)
        user = session_user_from_payload(payload)
    except (JWTError, ValidationError):
        return None

    if await is_session_revoked(user.jti):
        return None

    bind_session(user.id, user.tenant_id)
    return user


def require_kind(kind: RoleKind):
    """Create dependency requiring a role kind.

    Example:
        @router.get("/admin-only")
        async def admin_endpoint(
            user: Annotated[SessionUser, Depends(require_kind(RoleKind.ADMIN))]
        ):
            ...
    """

    async def kind_checker(
        user: Annotated[SessionUser, Depends(get_current_user)],
    ) -> SessionUser:
        if user.kind is not kind:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return kind_checker


async def require_superadmin(
    user: Annotated[SessionUser, Depends(get_current_user)],
) -> SessionUser:
    """Require the SUPERADMIN tag."""
    if user.role is not UserRole.SUPERADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return user


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

# Basic authenticated user
CurrentUser = Annotated[SessionUser, Depends(get_current_user)]

# Optional user (for endpoints that work both ways)
OptionalUser = Annotated[SessionUser | None, Depends(get_current_user_optional)]

# Role-kind dependencies (superadmin counts as ADMIN)
AdminUser = Annotated[SessionUser, Depends(require_kind(RoleKind.ADMIN))]
StudentUser = Annotated[SessionUser, Depends(require_kind(RoleKind.STUDENT))]
SuperAdminUser = Annotated[SessionUser, Depends(require_superadmin)]

# Raw token (logout needs it to revoke the session)
SessionToken = Annotated[str | None, Depends(get_session_token)]
