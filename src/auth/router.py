"""Authentication API endpoints.

Session endpoints (under /api):
- POST /register - Create account
- POST /login - Authenticate, returns token and sets session cookie
- POST /logout - End session
- GET /user - Current user profile

User management (under /api/users):
- GET / - Users of the caller's tenant (admin)
- GET /{user_id} - User details (admin)
- PUT /{user_id} - Update profile (self or admin)
"""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from jose import JWTError

from src.activity.dependencies import ActivityWriterDep
from src.activity.models import ActivityType
from src.auth.dependencies import (
    AdminUser,
    CurrentUser,
    SessionToken,
    revoke_session,
)
from src.auth.permissions import UserRole
from src.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UpdateUserRequest,
    UserResponse,
)
from src.auth.security import decode_access_token
from src.auth.service import AuthError, AuthService
from src.config.settings import get_settings


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])
users_router = APIRouter(prefix="/api/users", tags=["users"])


# ==============================================================================
# Dependency for AuthService
# ==============================================================================

# Module-level reference to be overridden by main.py
_auth_service_getter: Callable[[], AuthService] | None = None


def set_auth_service_getter(getter: Callable[[], AuthService]) -> None:
    """Set the auth service getter function.

    Called by main.py during app initialization.
    """
    global _auth_service_getter  # noqa: PLW0603 - Required for DI pattern
    _auth_service_getter = getter


def get_auth_service() -> AuthService:
    """Get AuthService instance."""
    if _auth_service_getter is None:
        raise RuntimeError(
            "AuthService not configured - call set_auth_service_getter first"
        )
    return _auth_service_getter()


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


# ==============================================================================
# Error Handling
# ==============================================================================


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException."""
    status_map = {
        "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
        "user_exists": status.HTTP_400_BAD_REQUEST,
        "invalid_tenant": status.HTTP_400_BAD_REQUEST,
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "auth_error": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


# ==============================================================================
# Session Endpoints
# ==============================================================================


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={
        400: {"description": "Invalid tenant or username already exists"},
        422: {"description": "Validation error"},
    },
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Register a new user account.

    Accounts are students; only the first account of the system is an admin.
    """
    try:
        user = await auth_service.register_user(data)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    responses={401: {"description": "Invalid credentials"}},
)
async def login(
    data: LoginRequest,
    response: Response,
    auth_service: AuthServiceDep,
    activity: ActivityWriterDep,
) -> LoginResponse:
    """Authenticate user.

    Returns the session token in the body and sets it in an httpOnly cookie.
    """
    settings = get_settings()

    try:
        user = await auth_service.authenticate_user(data.username, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e

    token = auth_service.create_session_token(user)

    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=settings.auth_cookie_httponly,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        max_age=settings.session_max_age_seconds,
        path="/",
    )

    activity.emit(user.tenant_id, user.id, ActivityType.LOGIN)
    logger.info("user_logged_in", user_id=str(user.id))

    return LoginResponse(
        user=auth_service.to_response(user),
        access_token=token,
        expires_in=settings.session_max_age_seconds,
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="User logout",
)
async def logout(response: Response, token: SessionToken) -> None:
    """End the session: revoke its token and clear the cookie."""
    settings = get_settings()

    if token:
        try:
            payload = decode_access_token(token)
        except JWTError:
            payload = None
        if payload is not None and await revoke_session(payload):
            logger.info("session_revoked", user_id=payload.get("sub"))

    response.delete_cookie(key=settings.auth_cookie_name, path="/")


@router.get(
    "/user",
    response_model=UserResponse,
    summary="Get current user",
)
async def get_me(
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Get the current user's full profile."""
    db_user = await auth_service.get_user_by_id(user.id)
    if db_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return auth_service.to_response(db_user)


# ==============================================================================
# User Management
# ==============================================================================


@users_router.get(
    "",
    response_model=list[UserResponse],
    summary="List tenant users (admin)",
)
async def list_users(
    user: AdminUser,
    auth_service: AuthServiceDep,
    role: Annotated[UserRole | None, Query()] = None,
) -> list[UserResponse]:
    """List users of the caller's tenant, optionally filtered by role."""
    users = await auth_service.list_tenant_users(user.tenant_id, role)
    return [auth_service.to_response(u) for u in users]


@users_router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user (admin)",
)
async def get_user(
    user_id: UUID,
    user: AdminUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """User details. Users of another tenant answer 403."""
    try:
        target = await auth_service.get_tenant_user(user, user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(target)


@users_router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
)
async def update_user(
    user_id: UUID,
    data: UpdateUserRequest,
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Update a profile. Allowed for the user themselves or a tenant admin."""
    try:
        updated = await auth_service.update_user(user, user_id, data)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(updated)
