"""Pydantic schemas for authentication.

Request and response models for:
- User registration and login
- Session (the decoded token passed to handlers)
- User profile and admin updates
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.auth.permissions import RoleKind, UserRole, role_kind


USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request.

    A `role` sent by the client is accepted for compatibility and ignored:
    the first account of the whole system becomes admin, everyone else student.
    """

    username: str = Field(
        ..., min_length=3, max_length=50, pattern=USERNAME_PATTERN
    )
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    tenant_id: UUID
    mobile_number: str | None = Field(None, max_length=20)
    gender: str | None = Field(None, max_length=20)
    date_of_birth: date | None = None
    profile_photo: str | None = Field(None, max_length=500)
    education_level: str | None = Field(None, max_length=100)
    school_college: str | None = Field(None, max_length=200)
    year_of_study: str | None = Field(None, max_length=50)
    role: str | None = Field(None, description="Ignored")

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Must not be blank"
            raise ValueError(msg)
        return v


class LoginRequest(BaseModel):
    """User login request."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UpdateUserRequest(BaseModel):
    """Profile update. Only fields that are set are written."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    mobile_number: str | None = Field(None, max_length=20)
    gender: str | None = Field(None, max_length=20)
    date_of_birth: date | None = None
    profile_photo: str | None = Field(None, max_length=500)
    education_level: str | None = Field(None, max_length=100)
    school_college: str | None = Field(None, max_length=200)
    year_of_study: str | None = Field(None, max_length=50)
    password: str | None = Field(None, min_length=6, max_length=128)
    role: UserRole | None = Field(None, description="Admins only")


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(BaseModel):
    """User response (public profile)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    username: str
    first_name: str
    last_name: str
    email: str
    mobile_number: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    profile_photo: str | None = None
    education_level: str | None = None
    school_college: str | None = None
    year_of_study: str | None = None
    role: str
    created_at: datetime
    updated_at: datetime | None = None


class LoginResponse(BaseModel):
    """Login response: the user plus the session token."""

    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")


class SessionUser(BaseModel):
    """Authenticated caller, decoded from the session token.

    Handlers receive it explicitly; there is no global current user.
    """

    id: UUID
    username: str
    role: UserRole
    tenant_id: UUID
    jti: str

    @property
    def kind(self) -> RoleKind:
        return role_kind(self.role)

    @property
    def is_admin(self) -> bool:
        return self.kind is RoleKind.ADMIN
